import json
from types import SimpleNamespace

import pytest

from fakechain import ALLOCATOR, ASSET, CHAIN_ID, COMET, FACTORIES, UNDERLYING, VAULT, FakeAdapter, FakeChain, addr

from vaults_curation import cli
from vaults_curation.adapters import AdapterRegistry
from vaults_curation.cli import _run, main, parse_args
from vaults_curation.constants import (
    COMPOUND_V3,
    ERC4626,
    GOVERNED_FUNCTIONS,
    MORPHO_MARKET_V1,
    MORPHO_VAULT_V1,
    NETWORKS,
    VAULT_ABI,
)
from vaults_curation.contracts import get_network_config, load_chain_config, resolve_chain_config
from vaults_curation.encoding import encode_call
from vaults_curation.errors import PreconditionError
from vaults_curation.executor import CallExecutor
from vaults_curation.formatters import normalize_hex_str


@pytest.mark.parametrize("chain_id", sorted(NETWORKS))
def test_builtin_networks_resolve(chain_id):
    config = get_network_config(chain_id)
    assert config.chain_id == chain_id
    assert config.factory_for(ERC4626)
    assert [spec.name for spec in config.adapter_types][0] == ERC4626


def test_base_factories_and_links():
    config = get_network_config(8453)
    assert config.name == "Base Mainnet"
    assert config.factory_for(COMPOUND_V3) == "0xbab80daae43ebdf77b12c0b95af9b95c44172f3c"
    assert config.tx_link("0xabc") == "https://basescan.org/tx/0xabc"


def test_unsupported_chain():
    with pytest.raises(PreconditionError, match="Unsupported chain id 1"):
        get_network_config(1)


def test_load_chain_config_for_morpho_family(tmp_path):
    path = tmp_path / "chain.json"
    path.write_text(
        json.dumps(
            {
                "chain_id": CHAIN_ID,
                "family": "morpho",
                "adapter_factories": {MORPHO_VAULT_V1: "0x" + "01" * 20, MORPHO_MARKET_V1: "0x" + "02" * 20},
            }
        ),
        encoding="utf-8",
    )
    config = load_chain_config(path)
    assert [spec.name for spec in config.adapter_types] == [MORPHO_VAULT_V1, MORPHO_MARKET_V1]
    assert resolve_chain_config(FakeChain(), path) == config


def test_chain_config_rejects_unknown_types_and_mismatched_chain(tmp_path):
    path = tmp_path / "chain.json"
    path.write_text(json.dumps({"chain_id": 5, "adapter_factories": {"aaveV3": "0x" + "01" * 20}}), encoding="utf-8")
    with pytest.raises(PreconditionError, match="aaveV3"):
        load_chain_config(path)

    path.write_text(json.dumps({"chain_id": 5}), encoding="utf-8")
    with pytest.raises(PreconditionError, match="RPC node is on chain"):
        resolve_chain_config(FakeChain(), path)


def test_parse_args_subcommands():
    args = parse_args(["snapshot", "0xvault", "--account", "0xme", "--json"])
    assert (args.command, args.vault, args.account, args.json) == ("snapshot", "0xvault", "0xme", True)

    args = parse_args(["find-adapter", "0xvault", "0xunderlying", "--type", COMPOUND_V3, "--extra", "0xrewards"])
    assert (args.adapter_type, args.extra) == (COMPOUND_V3, "0xrewards")

    args = parse_args(["--rpc-url", "http://node", "setup", "0xvault", "settings.json", "--wait"])
    assert (args.rpc_url, args.settings, args.wait) == ("http://node", "settings.json", True)

    args = parse_args(["pending", "0xvault", "0x1234"])
    assert args.data == "0x1234"


def test_parse_args_requires_a_command():
    with pytest.raises(SystemExit):
        parse_args([])


def test_main_requires_rpc_url(monkeypatch, capsys):
    monkeypatch.delenv("ETH_RPC_URL", raising=False)
    assert main(["classify", "0xadapter"]) == 2
    assert "RPC URL is required" in capsys.readouterr().err


def test_main_requires_private_key_for_writes(monkeypatch, capsys):
    monkeypatch.setenv("ETH_RPC_URL", "http://127.0.0.1:1")
    monkeypatch.delenv("PRIVATE_KEY", raising=False)
    assert main(["setup", "0xvault", "settings.json"]) == 2
    assert "PRIVATE_KEY" in capsys.readouterr().err


def run(chain, config, argv: list[str]) -> int:
    executor = CallExecutor(chain)
    return _run(parse_args(argv), executor, AdapterRegistry(executor, config))


def test_snapshot_report_uses_asset_decimals(chain, config, capsys):
    assert run(chain, config, ["snapshot", VAULT]) == 0
    out = capsys.readouterr().out
    assert "Curated USDC (cUSDC)" in out
    assert "💤 Idle assets:    1\n" in out


def test_snapshot_report_falls_back_to_18_decimals(chain, config, capsys):
    chain.fail(ASSET, "decimals", ConnectionError("down"))
    assert run(chain, config, ["snapshot", VAULT]) == 0
    captured = capsys.readouterr()
    assert "assuming 18" in captured.err
    assert "💤 Idle assets:    0\n" in captured.out


def test_snapshot_json(chain, config, capsys):
    assert run(chain, config, ["snapshot", VAULT, "--account", ALLOCATOR, "--json"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["name"] == "Curated USDC"
    assert data["idle_assets"] == 1_000_000
    assert data["is_allocator"] is False
    assert [d["function"] for d in data["delays"]] == list(GOVERNED_FUNCTIONS)


def test_delays_exit_code_reflects_read_failures(chain, config, capsys):
    assert run(chain, config, ["delays", VAULT]) == 0
    assert "setIsAdapter" in capsys.readouterr().out

    chain.fail(VAULT, "timelock", ConnectionError("nope"))
    assert run(chain, config, ["delays", VAULT]) == 1


def test_find_and_deploy_adapter(chain, config, capsys):
    assert run(chain, config, ["find-adapter", VAULT, UNDERLYING]) == 1
    assert "No adapter deployed" in capsys.readouterr().out

    assert run(chain, config, ["deploy-adapter", VAULT, UNDERLYING, "--type", ERC4626]) == 0
    deployed = capsys.readouterr().out
    assert f"Deployed {ERC4626} adapter" in deployed

    assert run(chain, config, ["find-adapter", VAULT, UNDERLYING]) == 0
    address = capsys.readouterr().out.strip()
    assert address in deployed

    assert run(chain, config, ["classify", address]) == 0
    assert capsys.readouterr().out.strip() == ERC4626


def test_classify_unknown_factory(chain, config, capsys):
    foreign = addr(0xF0F0)
    chain.deploy(foreign, FakeAdapter(addr(0xFFFF), ERC4626, VAULT, UNDERLYING))
    assert run(chain, config, ["classify", foreign]) == 1
    assert "is not a known adapter factory" in capsys.readouterr().out


def test_pending_decodes_calldata(chain, config, timelock, capsys):
    data = normalize_hex_str(encode_call(VAULT_ABI, "setIsAllocator", (ALLOCATOR, True)))
    assert run(chain, config, ["pending", VAULT, data]) == 0
    assert "Nothing pending" in capsys.readouterr().out

    chain.vault.set_delay("setIsAllocator", 100)
    timelock.submit("setIsAllocator", (ALLOCATOR, True))
    assert run(chain, config, ["pending", VAULT, data]) == 0
    out = capsys.readouterr().out
    assert "setIsAllocator executable at" in out
    assert "in 1m 40s" in out


def test_pending_rejects_unknown_selector(chain, config):
    with pytest.raises(PreconditionError, match="Unknown selector"):
        run(chain, config, ["pending", VAULT, "0xdeadbeef"])


def test_setup_exit_code(chain, config, tmp_path, capsys):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"allocators": [ALLOCATOR]}), encoding="utf-8")
    assert run(chain, config, ["setup", VAULT, str(path)]) == 0
    assert "CURATOR SETUP" in capsys.readouterr().out
    assert chain.vault.isAllocator(ALLOCATOR)

    path.write_text(json.dumps({"underlyings": [{"type": COMPOUND_V3, "address": COMET}]}), encoding="utf-8")
    assert run(chain, config, ["setup", VAULT, str(path)]) == 1
    assert "1 failed" in capsys.readouterr().out


def test_main_reports_operation_failures(chain, tmp_path, monkeypatch, capsys):
    path = tmp_path / "chain.json"
    path.write_text(json.dumps({"chain_id": CHAIN_ID, "name": "Testnet", "adapter_factories": FACTORIES}), encoding="utf-8")
    chain.w3 = SimpleNamespace(is_connected=lambda: True)
    monkeypatch.setenv("ETH_RPC_URL", "http://node")
    monkeypatch.setattr(cli.Web3Transport, "from_rpc_url", staticmethod(lambda rpc_url, private_key: chain))

    assert main(["--chain-config", str(path), "classify", addr(0xDEAD)]) == 1
    err = capsys.readouterr().err
    assert "ℹ️ Connected to Testnet" in err
    assert "❌ factory failed on" in err
