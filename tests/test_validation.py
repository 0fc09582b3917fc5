from dataclasses import replace

import pytest

from vaults_curation.constants import MAX_PERFORMANCE_FEE, WAD, ZERO_ADDRESS
from vaults_curation.models import (
    AdapterSnapshot,
    AllocationSnapshot,
    DelaySnapshot,
    FeeSnapshot,
    VaultSnapshot,
)
from vaults_curation.validation import validate_vault_snapshot

RECIPIENT = "0x" + "11" * 20


def make_snapshot(**overrides) -> VaultSnapshot:
    base = VaultSnapshot(
        vault="0xvault",
        name="Vault",
        symbol="V",
        asset="0xasset",
        total_assets=100,
        total_supply=100,
        virtual_shares=1,
        owner="0xowner",
        curator="0xcurator",
        account=None,
        is_sentinel=None,
        is_allocator=None,
        fees=FeeSnapshot(0, ZERO_ADDRESS, 0, ZERO_ADDRESS, 0),
        idle_assets=100,
        liquidity_adapter=ZERO_ADDRESS,
        liquidity_data="0x",
        adapters=(
            AdapterSnapshot(
                index=0,
                address="0xadapter",
                adapter_type="erc4626",
                underlying="0xunderlying",
                force_deallocate_penalty=0,
                allocations=(AllocationSnapshot("0xid", absolute_cap=1_000, relative_cap=WAD, allocation=500),),
            ),
        ),
        delays=(DelaySnapshot("setIsAdapter", "0x12345678", 0),),
    )
    return replace(base, **overrides)


def test_clean_snapshot_has_no_issues():
    assert validate_vault_snapshot(make_snapshot()) == []


def test_flags_unclassified_adapter_and_bad_caps():
    snap = make_snapshot(
        adapters=(
            AdapterSnapshot(0, "0xforeign", None, None, None, error="unrecognized adapter factory"),
            AdapterSnapshot(
                1,
                "0xadapter",
                "erc4626",
                "0xu",
                0,
                allocations=(
                    AllocationSnapshot("0xover", absolute_cap=10, relative_cap=WAD + 1, allocation=11),
                    AllocationSnapshot("0xgone", None, None, None, error="timeout"),
                ),
            ),
        )
    )
    issues = validate_vault_snapshot(snap)
    assert len(issues) == 4
    assert "not classified" in issues[0]
    assert "above 100%" in issues[1]
    assert "exceeds absolute cap" in issues[2]
    assert "unavailable" in issues[3]


def test_flags_fees():
    snap = make_snapshot(fees=FeeSnapshot(MAX_PERFORMANCE_FEE + 1, ZERO_ADDRESS, 0, RECIPIENT, 0))
    issues = validate_vault_snapshot(snap)
    assert any("above maximum" in i for i in issues)
    assert any("without a recipient" in i for i in issues)


def test_flags_unreadable_delays():
    snap = make_snapshot(delays=(DelaySnapshot("setIsAdapter", "0x12345678", None, error="boom"),))
    assert validate_vault_snapshot(snap) == ["Vault 0xvault: timelock of setIsAdapter unavailable: boom"]


def test_strict_mode_raises():
    snap = make_snapshot(delays=(DelaySnapshot("setIsAdapter", "0x12345678", None, error="boom"),))
    with pytest.raises(ValueError, match="unavailable"):
        validate_vault_snapshot(snap, warn_only=False)
