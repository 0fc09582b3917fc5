"""Data models for vault curation."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class AdapterTypeSpec:
    """Descriptor of one adapter type and the factory/adapter functions that serve it."""

    name: str
    create_fn: str
    lookup_fn: str
    membership_fn: str
    # Getter on the adapter returning its underlying protocol address.
    underlying_fn: str
    # "single": the adapter exposes one allocation id via `ids()`.
    # "markets": one allocation-id set per entry of `marketParamsList`.
    id_style: str
    # Name of the extra factory argument (e.g. cometRewards), if the type needs one.
    extra_param: str | None = None


@dataclass(frozen=True)
class ChainConfig:
    """Per-chain deployment addresses: vault factory plus one factory per adapter type."""

    chain_id: int
    name: str
    vault_factory: str
    adapter_factories: dict[str, str]
    adapter_types: tuple[AdapterTypeSpec, ...]
    scan_link: str = ""

    def factory_for(self, adapter_type: str) -> str | None:
        return self.adapter_factories.get(adapter_type)

    def tx_link(self, tx_hash: str) -> str:
        return f"{self.scan_link}/tx/{tx_hash}" if self.scan_link else tx_hash


@dataclass(frozen=True)
class TxResult:
    """Outcome of a committed transaction."""

    tx_hash: str
    block_number: int | None = None
    status: int | None = None
    receipt: Any = field(default=None, compare=False, repr=False)

    @property
    def confirmed(self) -> bool:
        return self.block_number is not None


@dataclass(frozen=True)
class MarketParams:
    """Morpho Blue market identity (loan token, collateral, oracle, IRM, LLTV)."""

    loan_token: str
    collateral_token: str
    oracle: str
    irm: str
    lltv: int

    def as_tuple(self) -> tuple[str, str, str, str, int]:
        return (self.loan_token, self.collateral_token, self.oracle, self.irm, self.lltv)

    @classmethod
    def from_value(cls, value: Any) -> "MarketParams":
        """Build from a decoded ABI tuple or a JSON-style dict."""
        if isinstance(value, MarketParams):
            return value
        if isinstance(value, dict):
            return cls(
                loan_token=str(value["loanToken"]),
                collateral_token=str(value["collateralToken"]),
                oracle=str(value["oracle"]),
                irm=str(value["irm"]),
                lltv=int(value["lltv"]),
            )
        loan, collateral, oracle, irm, lltv = value
        return cls(str(loan), str(collateral), str(oracle), str(irm), int(lltv))


@dataclass(frozen=True)
class DeployResult:
    """Result of a find-or-deploy adapter request."""

    adapter_type: str
    address: str
    # False when the transaction was sent without waiting for inclusion.
    confirmed: bool
    # False when an existing adapter was returned instead of deploying a new one.
    created: bool
    tx_hash: str | None = None


@dataclass(frozen=True)
class PendingChange:
    """A submitted, not yet executed, timelocked call."""

    function: str
    data: str
    executable_at: int


@dataclass(frozen=True)
class TimelockOutcome:
    """Result of applying a governed change through the timelock."""

    function: str
    args: tuple
    path: str
    status: str
    data: str
    executable_at: int = 0
    tx_hashes: tuple[str, ...] = ()


@dataclass(frozen=True)
class CapOutcome:
    """Result of reconciling one cap field of one allocation id."""

    field: str
    current: int | None
    desired: int
    path: str | None
    status: str
    detail: str = ""
    executable_at: int = 0


@dataclass(frozen=True)
class CapResolution:
    """All cap outcomes for one allocation id."""

    allocation_id: str
    label: str
    outcomes: tuple[CapOutcome, ...]

    @property
    def ok(self) -> bool:
        return all(o.status != "failed" for o in self.outcomes)


@dataclass(frozen=True)
class AllocationSnapshot:
    """Caps and current allocation of one allocation id."""

    allocation_id: str
    absolute_cap: int | None
    relative_cap: int | None
    allocation: int | None
    error: str | None = None


@dataclass(frozen=True)
class AdapterSnapshot:
    """Point-in-time view of one adapter enabled on a vault."""

    index: int
    address: str
    adapter_type: str | None
    underlying: str | None
    force_deallocate_penalty: int | None
    allocations: tuple[AllocationSnapshot, ...] = ()
    error: str | None = None


@dataclass(frozen=True)
class DelaySnapshot:
    """Timelock duration of one governed function."""

    function: str
    selector: str
    seconds: int | None
    error: str | None = None


@dataclass(frozen=True)
class FeeSnapshot:
    performance_fee: int
    performance_fee_recipient: str
    management_fee: int
    management_fee_recipient: str
    max_rate: int


@dataclass(frozen=True)
class VaultSnapshot:
    """Read-only view of a vault's configuration and positions."""

    vault: str
    name: str
    symbol: str
    asset: str
    total_assets: int
    total_supply: int
    virtual_shares: int
    owner: str
    curator: str
    account: str | None
    is_sentinel: bool | None
    is_allocator: bool | None
    fees: FeeSnapshot
    idle_assets: int
    liquidity_adapter: str
    liquidity_data: str
    adapters: tuple[AdapterSnapshot, ...]
    delays: tuple[DelaySnapshot, ...]

    def adapter(self, address: str) -> AdapterSnapshot | None:
        key = address.lower()
        for adapter in self.adapters:
            if adapter.address.lower() == key:
                return adapter
        return None

    def delay_of(self, function: str) -> int | None:
        for delay in self.delays:
            if delay.function == function:
                return delay.seconds
        return None


@dataclass(frozen=True)
class StepResult:
    """One step of a curator setup run."""

    step: str
    subject: str
    status: str
    detail: str = ""
