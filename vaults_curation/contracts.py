"""Chain configuration resolution."""

import json
from pathlib import Path

from vaults_curation.constants import ADAPTER_FAMILIES, NETWORKS
from vaults_curation.errors import PreconditionError
from vaults_curation.models import ChainConfig


def chain_config_from_dict(chain_id: int, raw: dict) -> ChainConfig:
    """Build a ChainConfig from a NETWORKS-style dict."""
    family = raw.get("family", "byzantine")
    if family not in ADAPTER_FAMILIES:
        raise PreconditionError(f"Unknown adapter family {family!r} (expected one of {sorted(ADAPTER_FAMILIES)})")
    adapter_types = ADAPTER_FAMILIES[family]
    factories = {str(k): str(v) for k, v in (raw.get("adapter_factories") or {}).items()}
    known = {spec.name for spec in adapter_types}
    unknown = sorted(set(factories) - known)
    if unknown:
        raise PreconditionError(f"Unknown adapter type(s) for family {family!r}: {', '.join(unknown)}")
    return ChainConfig(
        chain_id=int(chain_id),
        name=str(raw.get("name") or f"chain {chain_id}"),
        vault_factory=str(raw.get("vault_factory") or ""),
        adapter_factories=factories,
        adapter_types=adapter_types,
        scan_link=str(raw.get("scan_link") or ""),
    )


def get_network_config(chain_id: int) -> ChainConfig:
    """Look up the built-in deployment table for `chain_id`."""
    raw = NETWORKS.get(int(chain_id))
    if raw is None:
        supported = ", ".join(str(c) for c in sorted(NETWORKS))
        raise PreconditionError(f"Unsupported chain id {chain_id} (supported: {supported})")
    return chain_config_from_dict(chain_id, raw)


def load_chain_config(path: str | Path) -> ChainConfig:
    """Load a chain config JSON file: {"chain_id": ..., "name": ..., "adapter_factories": {...}}."""
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(raw, dict) or "chain_id" not in raw:
        raise PreconditionError(f"{path}: expected a JSON object with a chain_id field")
    return chain_config_from_dict(int(raw["chain_id"]), raw)


def resolve_chain_config(transport, override_path: str | Path | None = None) -> ChainConfig:
    """Pick the chain config for the connected node, honouring an optional override file.

    An override must describe the chain the transport is actually connected to.
    """
    chain_id = transport.chain_id()
    if override_path is None:
        return get_network_config(chain_id)
    config = load_chain_config(override_path)
    if config.chain_id != chain_id:
        raise PreconditionError(f"{override_path} describes chain {config.chain_id}, but the RPC node is on chain {chain_id}")
    return config
