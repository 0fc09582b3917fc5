"""Read-only vault snapshots."""

import sys

from tqdm import tqdm
from tqdm.contrib.concurrent import thread_map

from vaults_curation.adapters import AdapterRegistry
from vaults_curation.constants import DEFAULT_MAX_WORKERS, ERC20_MIN_ABI, GOVERNED_FUNCTIONS, VAULT_ABI
from vaults_curation.errors import VaultsError
from vaults_curation.executor import CallExecutor
from vaults_curation.formatters import normalize_hex_str
from vaults_curation.models import (
    AdapterSnapshot,
    AllocationSnapshot,
    DelaySnapshot,
    FeeSnapshot,
    VaultSnapshot,
)
from vaults_curation.timelock import selector_of

_SCALAR_READS: tuple[str, ...] = (
    "name",
    "symbol",
    "asset",
    "totalAssets",
    "totalSupply",
    "virtualShares",
    "owner",
    "curator",
    "performanceFee",
    "performanceFeeRecipient",
    "managementFee",
    "managementFeeRecipient",
    "maxRate",
    "adaptersLength",
    "liquidityAdapter",
    "liquidityData",
)


class SnapshotReader:
    """Collects a `VaultSnapshot` with concurrent reads.

    Vault-level reads must succeed. Per-adapter, per-allocation and per-delay
    reads degrade: a failure is recorded on the affected entry and the rest of
    the snapshot is still returned.
    """

    def __init__(
        self,
        executor: CallExecutor,
        registry: AdapterRegistry,
        *,
        max_workers: int = DEFAULT_MAX_WORKERS,
        progress: bool = False,
    ):
        self.executor = executor
        self.registry = registry
        self.max_workers = max_workers
        self.progress = progress

    def _map(self, fn, *iterables, desc: str) -> list:
        return thread_map(
            fn,
            *iterables,
            max_workers=self.max_workers,
            desc=desc,
            unit="call",
            file=sys.stderr,
            disable=not self.progress,
        )

    def _read(self, vault: str, fn: str, *args):
        return self.executor.read(vault, VAULT_ABI, fn, *args)

    def snapshot(self, vault: str, account: str | None = None) -> VaultSnapshot:
        values = dict(zip(_SCALAR_READS, self._map(lambda fn: self._read(vault, fn), _SCALAR_READS, desc="📖 Vault")))
        adapters_length = int(values["adaptersLength"])
        addresses = self._map(lambda i: str(self._read(vault, "adapters", i)), range(adapters_length), desc="📖 Adapters")

        is_sentinel = is_allocator = None
        if account:
            is_sentinel = bool(self._read(vault, "isSentinel", account))
            is_allocator = bool(self._read(vault, "isAllocator", account))

        idle_assets = int(self.executor.read(str(values["asset"]), ERC20_MIN_ABI, "balanceOf", vault))

        adapters = self._map(
            lambda i, a: self.read_adapter(vault, i, a), range(adapters_length), addresses, desc="🔌 Adapters"
        )

        return VaultSnapshot(
            vault=vault,
            name=str(values["name"]),
            symbol=str(values["symbol"]),
            asset=str(values["asset"]),
            total_assets=int(values["totalAssets"]),
            total_supply=int(values["totalSupply"]),
            virtual_shares=int(values["virtualShares"]),
            owner=str(values["owner"]),
            curator=str(values["curator"]),
            account=account,
            is_sentinel=is_sentinel,
            is_allocator=is_allocator,
            fees=FeeSnapshot(
                performance_fee=int(values["performanceFee"]),
                performance_fee_recipient=str(values["performanceFeeRecipient"]),
                management_fee=int(values["managementFee"]),
                management_fee_recipient=str(values["managementFeeRecipient"]),
                max_rate=int(values["maxRate"]),
            ),
            idle_assets=idle_assets,
            liquidity_adapter=str(values["liquidityAdapter"]),
            liquidity_data=normalize_hex_str(values["liquidityData"]),
            adapters=tuple(adapters),
            delays=self.read_delays(vault),
        )

    def read_adapter(self, vault: str, index: int, address: str) -> AdapterSnapshot:
        errors: list[str] = []
        penalty = None
        try:
            penalty = int(self._read(vault, "forceDeallocatePenalty", address))
        except VaultsError as ex:
            tqdm.write(f"⚠️  Could not read force-deallocate penalty of {address}: {ex}", file=sys.stderr)
            errors.append(str(ex))

        try:
            adapter_type = self.registry.classify(address)
        except VaultsError as ex:
            tqdm.write(f"⚠️  Could not classify adapter {address}: {ex}", file=sys.stderr)
            return AdapterSnapshot(index, address, None, None, penalty, error="; ".join([*errors, str(ex)]))
        if adapter_type is None:
            tqdm.write(f"⚠️  Adapter {address} was not deployed by a known factory", file=sys.stderr)
            return AdapterSnapshot(index, address, None, None, penalty, error="unrecognized adapter factory")

        try:
            underlying = self.registry.underlying(address, adapter_type)
            ids = self.registry.allocation_ids(address, adapter_type)
        except VaultsError as ex:
            tqdm.write(f"⚠️  Could not read {adapter_type} adapter {address}: {ex}", file=sys.stderr)
            return AdapterSnapshot(index, address, adapter_type, None, penalty, error="; ".join([*errors, str(ex)]))

        allocations = tuple(self.read_allocation(vault, allocation_id) for allocation_id in ids)
        return AdapterSnapshot(
            index=index,
            address=address,
            adapter_type=adapter_type,
            underlying=underlying,
            force_deallocate_penalty=penalty,
            allocations=allocations,
            error="; ".join(errors) or None,
        )

    def read_allocation(self, vault: str, allocation_id: bytes) -> AllocationSnapshot:
        id_hex = normalize_hex_str(allocation_id)
        try:
            return AllocationSnapshot(
                allocation_id=id_hex,
                absolute_cap=int(self._read(vault, "absoluteCap", allocation_id)),
                relative_cap=int(self._read(vault, "relativeCap", allocation_id)),
                allocation=int(self._read(vault, "allocation", allocation_id)),
            )
        except VaultsError as ex:
            tqdm.write(f"⚠️  Could not read allocation {id_hex}: {ex}", file=sys.stderr)
            return AllocationSnapshot(id_hex, None, None, None, error=str(ex))

    def read_delay(self, vault: str, function: str) -> DelaySnapshot:
        selector = selector_of(function)
        try:
            seconds = int(self._read(vault, "timelock", selector))
        except VaultsError as ex:
            tqdm.write(f"⚠️  Could not read {function} timelock: {ex}", file=sys.stderr)
            return DelaySnapshot(function, normalize_hex_str(selector), None, error=str(ex))
        return DelaySnapshot(function, normalize_hex_str(selector), seconds)

    def read_delays(self, vault: str) -> tuple[DelaySnapshot, ...]:
        return tuple(self._map(lambda fn: self.read_delay(vault, fn), GOVERNED_FUNCTIONS, desc="⏱️  Timelocks"))
