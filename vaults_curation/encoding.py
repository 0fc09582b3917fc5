"""ABI calldata encoding, selectors and allocation-id derivation."""

from collections.abc import Sequence
from typing import Any

import eth_abi
from web3 import Web3

from vaults_curation.formatters import hex_to_bytes
from vaults_curation.models import MarketParams

MARKET_PARAMS_TYPE = "(address,address,address,address,uint256)"

ID_KIND_ADAPTER = "this"
ID_KIND_COLLATERAL = "collateralToken"
ID_KIND_MARKET = "this/marketParams"


def _canonical_type(param: dict) -> str:
    type_ = param["type"]
    if type_.startswith("tuple"):
        inner = ",".join(_canonical_type(c) for c in param["components"])
        return f"({inner}){type_[len('tuple'):]}"
    return type_


def find_function(abi: Sequence[dict], fn_name: str) -> dict:
    for entry in abi:
        if entry.get("type") == "function" and entry.get("name") == fn_name:
            return entry
    raise ValueError(f"Function {fn_name!r} not found in ABI")


def input_types(entry: dict) -> list[str]:
    return [_canonical_type(p) for p in entry.get("inputs", [])]


def function_signature(abi: Sequence[dict], fn_name: str) -> str:
    """Canonical signature, e.g. `increaseAbsoluteCap(bytes,uint256)`."""
    entry = find_function(abi, fn_name)
    return f"{fn_name}({','.join(input_types(entry))})"


def selector_of_signature(signature: str) -> bytes:
    """First 4 bytes of keccak256(signature)."""
    return bytes(Web3.keccak(text=signature)[:4])


def function_selector(abi: Sequence[dict], fn_name: str) -> bytes:
    return selector_of_signature(function_signature(abi, fn_name))


def encode_call(abi: Sequence[dict], fn_name: str, args: Sequence[Any] = ()) -> bytes:
    """Encode `fn_name(*args)` as calldata."""
    entry = find_function(abi, fn_name)
    types = input_types(entry)
    if len(types) != len(args):
        raise ValueError(f"{fn_name} expects {len(types)} argument(s), got {len(args)}")
    return function_selector(abi, fn_name) + eth_abi.encode(types, list(args))


def decode_call(abi: Sequence[dict], data) -> tuple[str, tuple]:
    """Decode calldata produced by encode_call back into (function name, args)."""
    raw = hex_to_bytes(data)
    selector = raw[:4]
    for entry in abi:
        if entry.get("type") != "function":
            continue
        if function_selector(abi, entry["name"]) == selector:
            return entry["name"], tuple(eth_abi.decode(input_types(entry), raw[4:]))
    raise ValueError(f"Unknown selector 0x{selector.hex()}")


def adapter_id_data(adapter: str) -> bytes:
    """idData of an adapter-wide allocation id."""
    return eth_abi.encode(["string", "address"], [ID_KIND_ADAPTER, adapter])


def collateral_id_data(token: str) -> bytes:
    """idData shared by every market using `token` as collateral."""
    return eth_abi.encode(["string", "address"], [ID_KIND_COLLATERAL, token])


def market_id_data(adapter: str, market_params: MarketParams) -> bytes:
    """idData of a single lending market behind a market adapter."""
    return eth_abi.encode(
        ["string", "address", MARKET_PARAMS_TYPE],
        [ID_KIND_MARKET, adapter, market_params.as_tuple()],
    )


def allocation_id(id_data: bytes) -> bytes:
    """AllocationID = keccak256(idData)."""
    return bytes(Web3.keccak(id_data))
