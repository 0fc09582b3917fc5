"""Cap reconciliation for allocation ids.

Raising a cap is governed by the timelock; lowering one is immediate. Given a
desired value the resolver reads the current cap and picks the matching path.
"""

import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from vaults_curation.adapters import AdapterRegistry
from vaults_curation.constants import (
    DEFAULT_POLL_INTERVAL,
    ID_STYLE_MARKETS,
    PATH_DECREASE,
    PATH_INCREASE,
    STATUS_APPLIED,
    STATUS_FAILED,
    VAULT_ABI,
    WAD,
)
from vaults_curation.encoding import adapter_id_data, allocation_id, collateral_id_data, market_id_data
from vaults_curation.errors import PreconditionError, VaultsError
from vaults_curation.executor import CallExecutor
from vaults_curation.formatters import normalize_hex_str
from vaults_curation.models import CapOutcome, CapResolution, MarketParams
from vaults_curation.timelock import TimelockOrchestrator

RELATIVE = "relative"
ABSOLUTE = "absolute"


def relative_cap_from_fraction(value) -> int:
    """0.25 (or "0.25") -> 0.25e18."""
    fraction = Decimal(str(value))
    if fraction < 0 or fraction > 1:
        raise PreconditionError(f"relative cap must be within [0, 1], got {value}")
    return int(fraction * WAD)


@dataclass(frozen=True)
class AllocationTarget:
    """An allocation id, carried as the idData the vault hashes into it."""

    id_data: bytes
    label: str = ""

    @property
    def id(self) -> bytes:
        return allocation_id(self.id_data)

    @property
    def id_hex(self) -> str:
        return normalize_hex_str(self.id)

    @classmethod
    def for_adapter(cls, adapter: str) -> "AllocationTarget":
        return cls(adapter_id_data(adapter), label=f"adapter {adapter}")

    @classmethod
    def for_collateral(cls, token: str) -> "AllocationTarget":
        return cls(collateral_id_data(token), label=f"collateral {token}")

    @classmethod
    def for_market(cls, adapter: str, market_params: MarketParams) -> "AllocationTarget":
        return cls(market_id_data(adapter, market_params), label=f"market {market_params.collateral_token}/{adapter}")


@dataclass(frozen=True)
class CapRequest:
    target: AllocationTarget
    relative: int | None = None
    absolute: int | None = None


class CapResolver:
    def __init__(
        self,
        executor: CallExecutor,
        *,
        wait: bool = False,
        sleep: Callable[[float], Any] = time.sleep,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        self.executor = executor
        self.wait = wait
        self.sleep = sleep
        self.poll_interval = poll_interval

    def orchestrator(self, vault: str) -> TimelockOrchestrator:
        return TimelockOrchestrator(self.executor, vault, sleep=self.sleep, poll_interval=self.poll_interval)

    @staticmethod
    def target_for(
        registry: AdapterRegistry,
        adapter: str,
        adapter_type: str,
        market_params: MarketParams | None = None,
    ) -> AllocationTarget:
        """The allocation id caps should be written to for an adapter.

        Market adapters cap per market; without explicit market params the
        adapter's first listed market is used.
        """
        spec = registry.spec(adapter_type)
        if spec.id_style != ID_STYLE_MARKETS:
            return AllocationTarget.for_adapter(adapter)
        if market_params is None:
            markets = registry.market_params_list(adapter, adapter_type)
            if not markets:
                raise PreconditionError(f"{adapter_type} adapter {adapter} has no markets to cap")
            market_params = markets[0]
        return AllocationTarget.for_market(adapter, market_params)

    def current_cap(self, vault: str, target: AllocationTarget, field: str) -> int:
        return int(self.executor.read(vault, VAULT_ABI, f"{field}Cap", target.id))

    def resolve_cap(
        self,
        vault: str,
        target: AllocationTarget,
        desired_relative: int | None = None,
        desired_absolute: int | None = None,
    ) -> CapResolution:
        """Move the caps of one allocation id to the desired values.

        Out-of-range desired values raise PreconditionError before anything is
        read. After that each field is handled on its own, and a failure while
        reading or moving it is recorded in its outcome rather than raised.
        """
        if desired_relative is not None and not 0 <= desired_relative <= WAD:
            raise PreconditionError(f"relative cap must be within [0, {WAD}], got {desired_relative}")
        if desired_absolute is not None and desired_absolute < 0:
            raise PreconditionError(f"absolute cap must be non-negative, got {desired_absolute}")

        outcomes = []
        for field, desired in ((RELATIVE, desired_relative), (ABSOLUTE, desired_absolute)):
            if desired is None:
                continue
            outcomes.append(self._resolve_field(vault, target, field, desired))
        return CapResolution(allocation_id=target.id_hex, label=target.label, outcomes=tuple(outcomes))

    def _resolve_field(self, vault: str, target: AllocationTarget, field: str, desired: int) -> CapOutcome:
        current = None
        path = None
        try:
            current = self.current_cap(vault, target, field)
            if current <= desired:
                path = PATH_INCREASE
                outcome = self.orchestrator(vault).apply(
                    f"increase{field.capitalize()}Cap", (target.id_data, desired), wait=self.wait
                )
                return CapOutcome(
                    field=field,
                    current=current,
                    desired=desired,
                    path=path,
                    status=outcome.status,
                    detail=outcome.path,
                    executable_at=outcome.executable_at,
                )
            path = PATH_DECREASE
            tx = self.executor.transact(vault, VAULT_ABI, f"decrease{field.capitalize()}Cap", target.id_data, desired)
            return CapOutcome(
                field=field, current=current, desired=desired, path=path, status=STATUS_APPLIED, detail=tx.tx_hash
            )
        except VaultsError as ex:
            return CapOutcome(field=field, current=current, desired=desired, path=path, status=STATUS_FAILED, detail=str(ex))

    def resolve_caps(self, vault: str, requests: Iterable[CapRequest]) -> list[CapResolution]:
        """Resolve many allocation ids; one id failing never stops the others."""
        results = []
        for request in requests:
            try:
                results.append(self.resolve_cap(vault, request.target, request.relative, request.absolute))
            except PreconditionError as ex:
                failed = tuple(
                    CapOutcome(field=field, current=None, desired=desired, path=None, status=STATUS_FAILED, detail=str(ex))
                    for field, desired in ((RELATIVE, request.relative), (ABSOLUTE, request.absolute))
                    if desired is not None
                )
                results.append(CapResolution(allocation_id=request.target.id_hex, label=request.target.label, outcomes=failed))
        return results
