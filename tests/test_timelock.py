import pytest

from fakechain import ALLOCATOR, START_TIME, addr

from vaults_curation.constants import GOVERNED_FUNCTIONS, PATH_EXECUTE, PATH_INSTANT, PATH_SUBMIT, VAULT_ABI
from vaults_curation.encoding import function_selector
from vaults_curation.errors import DelayNotZeroError, PreconditionError, TimelockNotExpiredError
from vaults_curation.timelock import selector_of


def test_selectors_cover_every_governed_function():
    selectors = {selector_of(fn) for fn in GOVERNED_FUNCTIONS}
    assert len(selectors) == len(GOVERNED_FUNCTIONS)
    assert selector_of("setIsAdapter") == function_selector(VAULT_ABI, "setIsAdapter")


def test_selector_of_rejects_ungoverned_functions():
    with pytest.raises(PreconditionError):
        selector_of("submit")


def test_zero_delay_applies_instantly_in_one_multicall(timelock, chain):
    outcome = timelock.apply("setIsAllocator", (ALLOCATOR, True))
    assert outcome.path == PATH_INSTANT
    assert outcome.status == "applied"
    assert chain.vault.isAllocator(ALLOCATOR)
    assert chain.sent_functions() == ["multicall"]


def test_instant_refuses_non_zero_delay(timelock, chain):
    chain.vault.set_delay("setIsAllocator", 60)
    with pytest.raises(DelayNotZeroError):
        timelock.instant("setIsAllocator", (ALLOCATOR, True))
    assert chain.sent == []


def test_execute_before_delay_is_a_timing_error_and_sends_nothing(timelock, chain):
    chain.vault.set_delay("setIsAllocator", 100)
    outcome = timelock.apply("setIsAllocator", (ALLOCATOR, True))
    assert outcome.path == PATH_SUBMIT
    assert outcome.status == "pending"
    assert outcome.executable_at == START_TIME + 100

    with pytest.raises(TimelockNotExpiredError) as exc_info:
        timelock.execute_after_delay("setIsAllocator", (ALLOCATOR, True))
    assert exc_info.value.executable_at == START_TIME + 100
    assert exc_info.value.now == START_TIME
    assert chain.sent_functions() == ["submit"]

    chain.advance(100)
    timelock.execute_after_delay("setIsAllocator", (ALLOCATOR, True))
    assert chain.vault.isAllocator(ALLOCATOR)


def test_apply_does_not_resubmit_pending_data(timelock, chain):
    chain.vault.set_delay("setMaxRate", 100)
    timelock.apply("setMaxRate", (5,))
    again = timelock.apply("setMaxRate", (5,))
    assert again.status == "pending"
    assert again.tx_hashes == ()
    assert chain.sent_functions() == ["submit"]


def test_apply_executes_pending_change_once_ready(timelock, chain):
    chain.vault.set_delay("setMaxRate", 100)
    timelock.apply("setMaxRate", (5,))
    chain.advance(100)
    outcome = timelock.apply("setMaxRate", (5,))
    assert outcome.path == PATH_EXECUTE
    assert outcome.status == "applied"
    assert chain.vault.meta["maxRate"] == 5


def test_apply_with_wait_sleeps_until_executable(timelock, chain):
    chain.vault.set_delay("setIsAllocator", 5)
    outcome = timelock.apply("setIsAllocator", (ALLOCATOR, True), wait=True)
    assert outcome.status == "applied"
    assert outcome.path == PATH_EXECUTE
    assert chain.now >= START_TIME + 5
    assert chain.sent_functions() == ["submit", "setIsAllocator"]


def test_execute_without_submission_is_rejected(timelock):
    with pytest.raises(PreconditionError, match="nothing submitted"):
        timelock.execute_after_delay("setMaxRate", (1,))


def test_vault_side_timing_revert_is_classified(timelock, executor, chain, monkeypatch):
    chain.vault.set_delay("setMaxRate", 100)
    timelock.submit("setMaxRate", (7,))
    # Local clock ahead of the chain: the pre-check passes, the vault still refuses.
    monkeypatch.setattr(executor, "block_timestamp", lambda: START_TIME + 1000)
    with pytest.raises(TimelockNotExpiredError) as exc_info:
        timelock.execute_after_delay("setMaxRate", (7,))
    assert exc_info.value.error_name == "TimelockNotExpired"


def test_revoke_and_pending(timelock, chain):
    adapter = addr(0xADA)
    chain.vault.set_delay("setIsAdapter", 50)
    assert timelock.pending("setIsAdapter", (adapter, True)) is None

    timelock.submit("setIsAdapter", (adapter, True))
    change = timelock.pending("setIsAdapter", (adapter, True))
    assert change is not None
    assert change.executable_at == START_TIME + 50
    assert change.data.startswith("0x")

    timelock.revoke("setIsAdapter", (adapter, True))
    assert timelock.pending("setIsAdapter", (adapter, True)) is None


def test_increase_timelock_is_immediate(timelock, chain):
    timelock.increase_timelock("setIsAdapter", 5)
    assert timelock.get_delay("setIsAdapter") == 5
    with pytest.raises(PreconditionError):
        timelock.increase_timelock("setIsAdapter", 1)


def test_decreasing_a_delay_waits_out_that_delay(timelock, chain):
    assert timelock.get_delay("setIsAdapter") == 0
    timelock.increase_timelock("setIsAdapter", 5)

    outcome = timelock.decrease_timelock("setIsAdapter", 0)
    assert outcome.status == "pending"
    assert outcome.executable_at == START_TIME + 5

    args = (selector_of("setIsAdapter"), 0)
    with pytest.raises(TimelockNotExpiredError):
        timelock.execute_after_delay("decreaseTimelock", args)
    assert timelock.get_delay("setIsAdapter") == 5

    chain.advance(5)
    timelock.execute_after_delay("decreaseTimelock", args)
    assert timelock.get_delay("setIsAdapter") == 0


def test_decrease_timelock_rejects_increase(timelock):
    with pytest.raises(PreconditionError):
        timelock.decrease_timelock("setIsAdapter", 10)


def test_execute_is_refused_until_the_latest_block_reaches_executable_at(timelock, chain):
    chain.vault.set_delay("setIsAllocator", 100)
    timelock.submit("setIsAllocator", (ALLOCATOR, True))
    chain.advance(99)
    with pytest.raises(TimelockNotExpiredError):
        timelock.execute_after_delay("setIsAllocator", (ALLOCATOR, True))
    assert "setIsAllocator" not in chain.sent_functions()

    chain.advance(1)
    timelock.execute_after_delay("setIsAllocator", (ALLOCATOR, True))
    assert chain.vault.isAllocator(ALLOCATOR)
