"""Timelock orchestration for governed vault functions.

Governed setters on the vault cannot be called directly: their calldata must be
`submit`ted first, then executed once `executableAt(data)` has passed. A
function whose timelock is zero can be submitted and executed atomically in one
`multicall`.

`decreaseTimelock(selector, duration)` is guarded by the timelock of the
function it lowers, so shortening a delay always waits out the current delay.
"""

import time
from collections.abc import Callable, Sequence
from typing import Any

from vaults_curation.constants import (
    DEFAULT_POLL_INTERVAL,
    GOVERNED_FUNCTIONS,
    PATH_EXECUTE,
    PATH_INSTANT,
    PATH_SUBMIT,
    STATUS_APPLIED,
    STATUS_PENDING,
    TIMELOCK_NOT_EXPIRED,
    VAULT_ABI,
)
from vaults_curation.encoding import encode_call, function_selector
from vaults_curation.errors import (
    ContractCallError,
    DelayNotZeroError,
    PreconditionError,
    TimelockNotExpiredError,
)
from vaults_curation.executor import CallExecutor
from vaults_curation.formatters import normalize_hex_str
from vaults_curation.models import PendingChange, TimelockOutcome, TxResult


def selector_of(function: str) -> bytes:
    """4-byte selector of a governed vault function."""
    if function not in GOVERNED_FUNCTIONS:
        raise PreconditionError(f"{function} is not a timelocked vault function")
    return function_selector(VAULT_ABI, function)


class TimelockOrchestrator:
    """Submit, execute, revoke and inspect timelocked changes on one vault."""

    def __init__(
        self,
        executor: CallExecutor,
        vault: str,
        *,
        sleep: Callable[[float], Any] = time.sleep,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        self.executor = executor
        self.vault = vault
        self.sleep = sleep
        self.poll_interval = poll_interval

    # -- encoding -----------------------------------------------------------

    @staticmethod
    def selector_of(function: str) -> bytes:
        return selector_of(function)

    @staticmethod
    def encode(function: str, args: Sequence[Any]) -> bytes:
        selector_of(function)
        return encode_call(VAULT_ABI, function, args)

    # -- reads --------------------------------------------------------------

    def get_delay(self, function: str) -> int:
        return int(self.executor.read(self.vault, VAULT_ABI, "timelock", selector_of(function)))

    def governing_delay(self, function: str, args: Sequence[Any]) -> int:
        """Delay that applies to `function(*args)`.

        For decreaseTimelock this is the current delay of the targeted function.
        """
        if function == "decreaseTimelock":
            return int(self.executor.read(self.vault, VAULT_ABI, "timelock", bytes(args[0])))
        return self.get_delay(function)

    def get_executable_at(self, data: bytes) -> int:
        return int(self.executor.read(self.vault, VAULT_ABI, "executableAt", data))

    def pending(self, function: str, args: Sequence[Any]) -> PendingChange | None:
        data = self.encode(function, args)
        executable_at = self.get_executable_at(data)
        if executable_at == 0:
            return None
        return PendingChange(function=function, data=normalize_hex_str(data), executable_at=executable_at)

    # -- writes -------------------------------------------------------------

    def submit(self, function: str, args: Sequence[Any], *, wait: bool = True) -> TxResult:
        data = self.encode(function, args)
        return self.executor.transact(self.vault, VAULT_ABI, "submit", data, wait=wait)

    def revoke(self, function: str, args: Sequence[Any], *, wait: bool = True) -> TxResult:
        data = self.encode(function, args)
        return self.executor.transact(self.vault, VAULT_ABI, "revoke", data, wait=wait)

    def execute_after_delay(self, function: str, args: Sequence[Any], *, wait: bool = True) -> TxResult:
        """Execute a previously submitted change.

        Raises TimelockNotExpiredError without sending anything when the latest
        block timestamp has not reached executableAt yet. The check is
        conservative: one second before executableAt the next block could
        already pass, but the call is still refused.
        """
        data = self.encode(function, args)
        executable_at = self.get_executable_at(data)
        if executable_at == 0:
            raise PreconditionError(f"{function}: nothing submitted for this calldata")
        now = self.executor.block_timestamp()
        if now < executable_at:
            raise TimelockNotExpiredError(function, self.vault, executable_at=executable_at, now=now)
        try:
            return self.executor.transact(self.vault, VAULT_ABI, function, *args, wait=wait)
        except ContractCallError as ex:
            if ex.error_name == TIMELOCK_NOT_EXPIRED:
                raise TimelockNotExpiredError(
                    function, self.vault, ex.decoded, executable_at=executable_at, now=now
                ) from ex
            raise

    def instant(self, function: str, args: Sequence[Any], *, wait: bool = True) -> TxResult:
        """Submit and execute atomically. Only valid while the governing delay is zero."""
        delay = self.governing_delay(function, args)
        if delay != 0:
            raise DelayNotZeroError(function, delay)
        return self._instant(self.encode(function, args), wait=wait)

    def _instant(self, data: bytes, *, wait: bool) -> TxResult:
        submit_data = encode_call(VAULT_ABI, "submit", [data])
        return self.executor.transact(self.vault, VAULT_ABI, "multicall", [submit_data, data], wait=wait)

    def increase_timelock(self, function: str, seconds: int, *, wait: bool = True) -> TxResult:
        """Raise the delay of `function`. Takes effect immediately."""
        current = self.get_delay(function)
        if seconds < current:
            raise PreconditionError(
                f"{function}: new delay {seconds}s is below the current {current}s; use decrease_timelock"
            )
        return self.executor.transact(
            self.vault, VAULT_ABI, "increaseTimelock", selector_of(function), seconds, wait=wait
        )

    def decrease_timelock(self, function: str, seconds: int, *, wait: bool = False) -> TimelockOutcome:
        """Lower the delay of `function`. Goes through the timelock of `function` itself."""
        current = self.get_delay(function)
        if seconds > current:
            raise PreconditionError(
                f"{function}: new delay {seconds}s is above the current {current}s; use increase_timelock"
            )
        return self.apply("decreaseTimelock", (selector_of(function), seconds), wait=wait)

    def apply(self, function: str, args: Sequence[Any], *, wait: bool = False) -> TimelockOutcome:
        """Apply a governed change by whichever path the current delay allows.

        Zero delay: one atomic multicall. Otherwise the change is submitted (unless
        the same calldata is already pending) and executed if executableAt has
        already passed. Otherwise it is reported as pending or, with `wait=True`,
        executed once the chain clock gets there.
        """
        args = tuple(args)
        data = self.encode(function, args)
        data_hex = normalize_hex_str(data)

        executable_at = self.get_executable_at(data)
        tx_hashes: list[str] = []
        if executable_at == 0:
            if self.governing_delay(function, args) == 0:
                tx = self._instant(data, wait=True)
                return TimelockOutcome(
                    function=function,
                    args=args,
                    path=PATH_INSTANT,
                    status=STATUS_APPLIED,
                    data=data_hex,
                    tx_hashes=(tx.tx_hash,),
                )
            tx = self.submit(function, args, wait=True)
            tx_hashes.append(tx.tx_hash)
            executable_at = self.get_executable_at(data)

        if not wait and self.executor.block_timestamp() < executable_at:
            return TimelockOutcome(
                function=function,
                args=args,
                path=PATH_SUBMIT,
                status=STATUS_PENDING,
                data=data_hex,
                executable_at=executable_at,
                tx_hashes=tuple(tx_hashes),
            )

        tx = self._execute_when_ready(function, args, executable_at)
        tx_hashes.append(tx.tx_hash)
        return TimelockOutcome(
            function=function,
            args=args,
            path=PATH_EXECUTE,
            status=STATUS_APPLIED,
            data=data_hex,
            executable_at=executable_at,
            tx_hashes=tuple(tx_hashes),
        )

    def _execute_when_ready(self, function: str, args: Sequence[Any], executable_at: int) -> TxResult:
        # Chain time only advances with new blocks; poll until the change goes through.
        while True:
            now = self.executor.block_timestamp()
            if now < executable_at:
                self.sleep(min(self.poll_interval, executable_at - now))
                continue
            try:
                return self.execute_after_delay(function, args)
            except TimelockNotExpiredError:
                self.sleep(self.poll_interval)
