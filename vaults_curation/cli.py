"""CLI and main logic."""

import argparse
import json
import os
import sys

from vaults_curation.adapters import AdapterRegistry
from vaults_curation.console import (
    print_delays,
    print_deploy_result,
    print_pending,
    print_step_results,
    print_vault_snapshot,
)
from vaults_curation.constants import ERC20_MIN_ABI, STATUS_FAILED, VAULT_ABI
from vaults_curation.contracts import resolve_chain_config
from vaults_curation.encoding import decode_call
from vaults_curation.errors import PreconditionError, VaultsError
from vaults_curation.executor import CallExecutor
from vaults_curation.flows import load_curator_settings, setup_curator
from vaults_curation.formatters import as_jsonable, hex_to_bytes, is_zero_address, normalize_hex_str
from vaults_curation.models import PendingChange
from vaults_curation.snapshot import SnapshotReader
from vaults_curation.transport import Web3Transport
from vaults_curation.validation import validate_vault_snapshot


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse command-line arguments."""
    p = argparse.ArgumentParser(
        prog="vaults-curation",
        description="Curate Morpho VaultV2-style vaults: snapshots, timelocks, adapters and caps.",
    )
    p.add_argument(
        "--rpc-url",
        default=None,
        help="Execution-layer RPC URL. Required if ETH_RPC_URL environment variable is not set.",
    )
    p.add_argument(
        "--chain-config",
        default=None,
        help="JSON file overriding the built-in adapter factory addresses for the connected chain.",
    )
    sub = p.add_subparsers(dest="command", required=True)

    snap = sub.add_parser("snapshot", help="Print a read-only snapshot of a vault.")
    snap.add_argument("vault")
    snap.add_argument("--account", default=None, help="Also report sentinel/allocator roles of this account.")
    snap.add_argument("--json", action="store_true", help="Emit JSON instead of the console report.")
    snap.add_argument("--progress", action="store_true", help="Show progress bars on stderr.")

    delays = sub.add_parser("delays", help="Print the timelock of every governed function.")
    delays.add_argument("vault")

    find = sub.add_parser("find-adapter", help="Look up the adapter deployed for (vault, underlying).")
    find.add_argument("vault")
    find.add_argument("underlying")
    find.add_argument("--type", dest="adapter_type", default=None, help="Adapter type (default: probe all types).")
    find.add_argument("--extra", default=None, help="Extra factory argument, e.g. cometRewards for compoundV3.")

    deploy = sub.add_parser("deploy-adapter", help="Deploy an adapter unless one already exists (needs PRIVATE_KEY).")
    deploy.add_argument("vault")
    deploy.add_argument("underlying")
    deploy.add_argument("--type", dest="adapter_type", required=True)
    deploy.add_argument("--extra", default=None)

    classify = sub.add_parser("classify", help="Identify the type of an adapter from its factory.")
    classify.add_argument("adapter")

    pending = sub.add_parser("pending", help="Show when submitted calldata becomes executable.")
    pending.add_argument("vault")
    pending.add_argument("data", help="0x-prefixed calldata of the governed call.")

    setup = sub.add_parser("setup", help="Apply a curator settings JSON file to a vault (needs PRIVATE_KEY).")
    setup.add_argument("vault")
    setup.add_argument("settings")
    setup.add_argument("--wait", action="store_true", help="Wait out timelocks and execute instead of leaving them pending.")

    return p.parse_args(argv)


def _needs_signer(args: argparse.Namespace) -> bool:
    return args.command in {"deploy-adapter", "setup"}


def main(argv: list[str]) -> int:
    """Main entry point."""
    args = parse_args(argv)

    # Require RPC URL to be provided either via --rpc-url or ETH_RPC_URL environment variable
    rpc_url = args.rpc_url or os.getenv("ETH_RPC_URL")
    if not rpc_url:
        print(
            "Error: RPC URL is required. Provide --rpc-url or set ETH_RPC_URL environment variable.",
            file=sys.stderr,
        )
        return 2

    private_key = os.getenv("PRIVATE_KEY")
    if _needs_signer(args) and not private_key:
        print(f"Error: {args.command} sends transactions; set the PRIVATE_KEY environment variable.", file=sys.stderr)
        return 2

    transport = Web3Transport.from_rpc_url(rpc_url, private_key)
    if not transport.w3.is_connected():
        print(f"Error: failed to connect to RPC at {rpc_url}", file=sys.stderr)
        return 2

    try:
        config = resolve_chain_config(transport, args.chain_config)
    except (PreconditionError, OSError, json.JSONDecodeError) as ex:
        print(f"Error: {ex}", file=sys.stderr)
        return 2
    print(f"ℹ️ Connected to {config.name} (chain {config.chain_id})", file=sys.stderr)

    executor = CallExecutor(transport)
    registry = AdapterRegistry(executor, config)

    try:
        return _run(args, executor, registry)
    except VaultsError as ex:
        print(f"❌ {ex}", file=sys.stderr)
        return 1


def _asset_decimals(executor: CallExecutor, asset: str) -> int:
    try:
        return int(executor.read(asset, ERC20_MIN_ABI, "decimals"))
    except VaultsError as ex:
        print(f"⚠️  Could not read decimals of asset {asset}, assuming 18: {ex}", file=sys.stderr)
        return 18


def _run(args: argparse.Namespace, executor: CallExecutor, registry: AdapterRegistry) -> int:
    if args.command == "snapshot":
        reader = SnapshotReader(executor, registry, progress=args.progress)
        snapshot = reader.snapshot(args.vault, args.account)
        issues = validate_vault_snapshot(snapshot, warn_only=True)
        if issues:
            print("⚠️  Validation warnings:", file=sys.stderr)
            for issue in issues:
                print(f"   {issue}", file=sys.stderr)
        if args.json:
            print(json.dumps(as_jsonable(snapshot), indent=2))
        else:
            print_vault_snapshot(snapshot, decimals=_asset_decimals(executor, snapshot.asset))
        return 0

    if args.command == "delays":
        delays = SnapshotReader(executor, registry).read_delays(args.vault)
        print_delays(delays)
        return 1 if any(d.error for d in delays) else 0

    if args.command == "find-adapter":
        address = registry.find(args.vault, args.underlying, args.adapter_type, args.extra)
        if is_zero_address(address):
            print("⚪ No adapter deployed for this pair")
            return 1
        print(address)
        return 0

    if args.command == "deploy-adapter":
        result = registry.deploy(args.adapter_type, args.vault, args.underlying, args.extra)
        print_deploy_result(result, tx_link=registry.config.tx_link(result.tx_hash) if result.tx_hash else None)
        return 0

    if args.command == "classify":
        adapter_type = registry.classify(args.adapter)
        if adapter_type is None:
            print(f"⚪ {args.adapter}: factory {registry.factory_of(args.adapter)} is not a known adapter factory")
            return 1
        print(adapter_type)
        return 0

    if args.command == "pending":
        data = hex_to_bytes(args.data)
        try:
            function, _ = decode_call(VAULT_ABI, data)
        except ValueError as ex:
            raise PreconditionError(str(ex)) from ex
        executable_at = int(executor.read(args.vault, VAULT_ABI, "executableAt", data))
        change = PendingChange(function, normalize_hex_str(data), executable_at) if executable_at else None
        print_pending(change, now=executor.block_timestamp())
        return 0

    if args.command == "setup":
        settings = load_curator_settings(args.settings)
        results = setup_curator(executor, registry, args.vault, settings, wait=args.wait)
        print_step_results(results)
        return 1 if any(r.status == STATUS_FAILED for r in results) else 0

    raise PreconditionError(f"Unknown command {args.command}")  # pragma: no cover
