import pytest
from web3 import Web3

from fakechain import ALLOCATOR, MARKET, UNDERLYING, addr

from vaults_curation.constants import VAULT_ABI, adapter_abi, BYZANTINE_ADAPTER_TYPES
from vaults_curation.encoding import (
    adapter_id_data,
    allocation_id,
    collateral_id_data,
    decode_call,
    encode_call,
    function_selector,
    function_signature,
    market_id_data,
    selector_of_signature,
)


def test_selector_of_signature_matches_known_erc20_selector():
    assert selector_of_signature("transfer(address,uint256)") == bytes.fromhex("a9059cbb")


def test_function_signature_canonicalizes_tuples():
    assert function_signature(VAULT_ABI, "increaseAbsoluteCap") == "increaseAbsoluteCap(bytes,uint256)"
    assert function_signature(VAULT_ABI, "decreaseTimelock") == "decreaseTimelock(bytes4,uint256)"
    market_abi = adapter_abi(BYZANTINE_ADAPTER_TYPES[3])
    assert function_signature(market_abi, "ids") == "ids((address,address,address,address,uint256))"


def test_encode_call_prefixes_selector_and_decodes_back():
    data = encode_call(VAULT_ABI, "setIsAllocator", [ALLOCATOR, True])
    assert data[:4] == function_selector(VAULT_ABI, "setIsAllocator")
    fn, args = decode_call(VAULT_ABI, data)
    assert fn == "setIsAllocator"
    assert args[0].lower() == ALLOCATOR
    assert args[1] is True


def test_decode_call_accepts_hex_strings():
    data = encode_call(VAULT_ABI, "setMaxRate", [123])
    fn, args = decode_call(VAULT_ABI, "0x" + data.hex())
    assert (fn, args) == ("setMaxRate", (123,))


def test_encode_call_rejects_wrong_arity():
    with pytest.raises(ValueError, match="expects 2"):
        encode_call(VAULT_ABI, "setIsAdapter", [UNDERLYING])


def test_decode_call_rejects_unknown_selector():
    with pytest.raises(ValueError, match="Unknown selector"):
        decode_call(VAULT_ABI, bytes.fromhex("deadbeef"))


def test_unknown_function_is_reported():
    with pytest.raises(ValueError, match="not found"):
        function_signature(VAULT_ABI, "doesNotExist")


def test_allocation_ids_are_keccak_of_id_data_and_distinct_per_kind():
    adapter = addr(0xADA)
    by_adapter = adapter_id_data(adapter)
    by_collateral = collateral_id_data(MARKET.collateral_token)
    by_market = market_id_data(adapter, MARKET)

    assert allocation_id(by_adapter) == bytes(Web3.keccak(by_adapter))
    ids = {allocation_id(by_adapter), allocation_id(by_collateral), allocation_id(by_market)}
    assert len(ids) == 3
    assert all(len(i) == 32 for i in ids)


def test_adapter_id_data_is_case_insensitive_on_address():
    adapter = "0x" + "ab" * 20
    assert adapter_id_data(adapter) == adapter_id_data(Web3.to_checksum_address(adapter))
