"""Curator setup flow: fees, allocators, adapters and caps from a settings file.

Every step is idempotent. Values already in place are skipped, existing
adapters are reused, and changes already submitted to the timelock are not
submitted again. A run interrupted by a pending timelock can simply be
repeated once the delay has passed.
"""

import json
import time
from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Any

from vaults_curation.adapters import AdapterRegistry
from vaults_curation.caps import CapResolver, relative_cap_from_fraction
from vaults_curation.constants import (
    DEFAULT_POLL_INTERVAL,
    MAX_PERFORMANCE_FEE,
    STATUS_APPLIED,
    STATUS_FAILED,
    STATUS_PENDING,
    STATUS_SKIPPED,
    VAULT_ABI,
    WAD,
)
from vaults_curation.errors import PreconditionError, TimelockNotExpiredError, VaultsError
from vaults_curation.executor import CallExecutor
from vaults_curation.formatters import SECONDS_PER_YEAR, as_int, format_wad_pct, is_zero_address
from vaults_curation.models import MarketParams, StepResult, TimelockOutcome
from vaults_curation.timelock import TimelockOrchestrator


def _annual_to_per_second(value) -> int:
    """Annual fraction (0.02 == 2%/year) to a per-second WAD rate."""
    return int(Decimal(str(value)) * WAD / SECONDS_PER_YEAR)


def _performance_fee_from_fraction(value) -> int:
    fee = int(Decimal(str(value)) * WAD)
    if not 0 <= fee <= MAX_PERFORMANCE_FEE:
        raise PreconditionError(f"performance fee must be within [0, {format_wad_pct(MAX_PERFORMANCE_FEE)}], got {value}")
    return fee


@dataclass(frozen=True)
class UnderlyingTarget:
    adapter_type: str
    address: str
    extra: str | None = None
    relative_cap: int | None = None
    absolute_cap: int | None = None
    market_params: MarketParams | None = None

    @classmethod
    def from_dict(cls, raw: dict) -> "UnderlyingTarget":
        if "type" not in raw or "address" not in raw:
            raise PreconditionError(f"underlying entry needs 'type' and 'address': {raw}")
        relative = raw.get("relative_cap")
        absolute = raw.get("absolute_cap")
        market = raw.get("market_params")
        return cls(
            adapter_type=str(raw["type"]),
            address=str(raw["address"]),
            extra=raw.get("extra") or raw.get("comet_rewards"),
            relative_cap=relative_cap_from_fraction(relative) if relative is not None else None,
            absolute_cap=as_int(absolute) if absolute is not None else None,
            market_params=MarketParams.from_value(market) if market else None,
        )


@dataclass(frozen=True)
class CuratorSettings:
    """Desired curator configuration of a vault.

    Fees and the max rate are WAD-scaled; management fee and max rate are per-second.
    """

    allocators: tuple[str, ...] = ()
    performance_fee: int | None = None
    performance_fee_recipient: str | None = None
    management_fee: int | None = None
    management_fee_recipient: str | None = None
    max_rate: int | None = None
    underlyings: tuple[UnderlyingTarget, ...] = ()

    @classmethod
    def from_dict(cls, raw: dict) -> "CuratorSettings":
        """Parse the JSON form, where fees and rates are written as fractions (0.1 == 10%)."""
        if not isinstance(raw, dict):
            raise PreconditionError("curator settings must be a JSON object")
        fees = raw.get("fees") or {}
        performance_fee = fees.get("performance_fee")
        management_fee = fees.get("management_fee")
        max_rate = raw.get("max_rate")
        return cls(
            allocators=tuple(str(a) for a in raw.get("allocators") or ()),
            performance_fee=_performance_fee_from_fraction(performance_fee) if performance_fee is not None else None,
            performance_fee_recipient=fees.get("performance_fee_recipient"),
            management_fee=_annual_to_per_second(management_fee) if management_fee is not None else None,
            management_fee_recipient=fees.get("management_fee_recipient"),
            max_rate=_annual_to_per_second(max_rate) if max_rate is not None else None,
            underlyings=tuple(UnderlyingTarget.from_dict(u) for u in raw.get("underlyings") or ()),
        )


def load_curator_settings(path: str | Path) -> CuratorSettings:
    return CuratorSettings.from_dict(json.loads(Path(path).read_text(encoding="utf-8")))


def _same(current: Any, desired: Any) -> bool:
    if isinstance(desired, str):
        return str(current).lower() == desired.lower()
    return current == desired


def _outcome_step(step: str, subject: str, outcome: TimelockOutcome) -> StepResult:
    detail = outcome.path
    if outcome.status == STATUS_PENDING:
        detail = f"executable at {outcome.executable_at}"
    return StepResult(step, subject, outcome.status, detail)


class CuratorSetup:
    """Runs the setup steps for one vault, collecting a StepResult per step."""

    def __init__(
        self,
        executor: CallExecutor,
        registry: AdapterRegistry,
        vault: str,
        *,
        wait: bool = False,
        sleep: Callable[[float], Any] = time.sleep,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        self.executor = executor
        self.registry = registry
        self.vault = vault
        self.wait = wait
        self.timelock = TimelockOrchestrator(executor, vault, sleep=sleep, poll_interval=poll_interval)
        self.caps = CapResolver(executor, wait=wait, sleep=sleep, poll_interval=poll_interval)
        self.results: list[StepResult] = []

    def _read(self, fn: str, *args):
        return self.executor.read(self.vault, VAULT_ABI, fn, *args)

    def _record(self, step: str, subject: str, action: Callable[[], StepResult]) -> StepResult:
        try:
            result = action()
        except TimelockNotExpiredError as ex:
            result = StepResult(step, subject, STATUS_PENDING, str(ex))
        except VaultsError as ex:
            result = StepResult(step, subject, STATUS_FAILED, str(ex))
        self.results.append(result)
        return result

    def _set_value(self, step: str, getter: str, setter: str, desired: Any) -> None:
        def action() -> StepResult:
            if _same(self._read(getter), desired):
                return StepResult(step, setter, STATUS_SKIPPED, "already set")
            return _outcome_step(step, setter, self.timelock.apply(setter, (desired,), wait=self.wait))

        self._record(step, setter, action)

    def check_curator(self) -> None:
        sender = self.executor.sender
        if sender is None:
            raise PreconditionError("a signing account is required for curator setup")
        curator = str(self._read("curator"))
        if curator.lower() != sender.lower():
            raise PreconditionError(f"{sender} is not the curator of {self.vault} (curator is {curator})")

    def setup_fees(self, settings: CuratorSettings) -> None:
        # Recipients first: a non-zero fee requires a recipient.
        pairs = (
            ("performanceFeeRecipient", "setPerformanceFeeRecipient", settings.performance_fee_recipient),
            ("performanceFee", "setPerformanceFee", settings.performance_fee),
            ("managementFeeRecipient", "setManagementFeeRecipient", settings.management_fee_recipient),
            ("managementFee", "setManagementFee", settings.management_fee),
            ("maxRate", "setMaxRate", settings.max_rate),
        )
        for getter, setter, desired in pairs:
            if desired is not None:
                self._set_value("fees", getter, setter, desired)

    def setup_allocators(self, allocators) -> None:
        for allocator in allocators:

            def action(allocator=allocator) -> StepResult:
                if self._read("isAllocator", allocator):
                    return StepResult("allocator", allocator, STATUS_SKIPPED, "already an allocator")
                outcome = self.timelock.apply("setIsAllocator", (allocator, True), wait=self.wait)
                return _outcome_step("allocator", allocator, outcome)

            self._record("allocator", allocator, action)

    def setup_underlying(self, target: UnderlyingTarget) -> None:
        subject = f"{target.adapter_type} {target.address}"
        adapter: list[str] = []

        def deploy() -> StepResult:
            result = self.registry.deploy(target.adapter_type, self.vault, target.address, target.extra)
            adapter.append(result.address)
            if result.created:
                return StepResult("adapter", subject, STATUS_APPLIED, f"deployed {result.address}")
            return StepResult("adapter", subject, STATUS_SKIPPED, f"found {result.address}")

        if self._record("adapter", subject, deploy).status == STATUS_FAILED or not adapter:
            return
        address = adapter[0]

        def enable() -> StepResult:
            if self._read("isAdapter", address):
                return StepResult("enable", address, STATUS_SKIPPED, "already enabled")
            return _outcome_step("enable", address, self.timelock.apply("setIsAdapter", (address, True), wait=self.wait))

        self._record("enable", address, enable)

        if target.relative_cap is None and target.absolute_cap is None:
            return
        try:
            cap_target = CapResolver.target_for(self.registry, address, target.adapter_type, target.market_params)
        except VaultsError as ex:
            self.results.append(StepResult("cap", address, STATUS_FAILED, str(ex)))
            return
        resolution = self.caps.resolve_cap(self.vault, cap_target, target.relative_cap, target.absolute_cap)
        for outcome in resolution.outcomes:
            detail = outcome.detail
            if outcome.status == STATUS_PENDING:
                detail = f"executable at {outcome.executable_at}"
            self.results.append(StepResult("cap", f"{cap_target.label} {outcome.field}", outcome.status, detail))

    def run(self, settings: CuratorSettings) -> list[StepResult]:
        self.check_curator()
        self.setup_fees(settings)
        self.setup_allocators(settings.allocators)
        for target in settings.underlyings:
            if is_zero_address(target.address):
                self.results.append(StepResult("adapter", target.adapter_type, STATUS_FAILED, "zero underlying address"))
                continue
            self.setup_underlying(target)
        return self.results


def setup_curator(
    executor: CallExecutor,
    registry: AdapterRegistry,
    vault: str,
    settings: CuratorSettings,
    *,
    wait: bool = False,
    sleep: Callable[[float], Any] = time.sleep,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
) -> list[StepResult]:
    """Bring `vault` in line with `settings`. Raises only when the sender is not the curator."""
    return CuratorSetup(executor, registry, vault, wait=wait, sleep=sleep, poll_interval=poll_interval).run(settings)
