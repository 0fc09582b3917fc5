"""Consistency checks for vault snapshots."""

from vaults_curation.constants import MAX_MANAGEMENT_FEE, MAX_PERFORMANCE_FEE, WAD
from vaults_curation.formatters import format_wad_pct, is_zero_address
from vaults_curation.models import VaultSnapshot


def validate_vault_snapshot(s: VaultSnapshot, *, warn_only: bool = True) -> list[str]:
    """
    Check a snapshot for states a curator should look at.

    Returns the list of issues found. If warn_only=False, raises ValueError on the first one.
    """
    issues: list[str] = []

    def report(msg: str) -> None:
        issues.append(msg)
        if not warn_only:
            raise ValueError(msg)

    # 1. Fees within the vault-level ceilings, and never accrued to nobody.
    if s.fees.performance_fee > MAX_PERFORMANCE_FEE:
        report(f"Vault {s.vault}: performance fee {format_wad_pct(s.fees.performance_fee)} above maximum")
    if s.fees.management_fee > MAX_MANAGEMENT_FEE:
        report(f"Vault {s.vault}: management fee {s.fees.management_fee}/s above maximum {MAX_MANAGEMENT_FEE}/s")
    if s.fees.performance_fee and is_zero_address(s.fees.performance_fee_recipient):
        report(f"Vault {s.vault}: performance fee set without a recipient")
    if s.fees.management_fee and is_zero_address(s.fees.management_fee_recipient):
        report(f"Vault {s.vault}: management fee set without a recipient")

    for adapter in s.adapters:
        # 2. Every enabled adapter should come from a known factory.
        if adapter.adapter_type is None:
            report(f"Vault {s.vault}: adapter #{adapter.index} {adapter.address} not classified ({adapter.error})")
            continue
        if adapter.error:
            report(f"Vault {s.vault}: adapter {adapter.address} partially read: {adapter.error}")

        for alloc in adapter.allocations:
            if alloc.error:
                report(f"Vault {s.vault}: allocation {alloc.allocation_id} unavailable: {alloc.error}")
                continue
            # 3. Relative caps are fractions of WAD.
            if alloc.relative_cap is not None and alloc.relative_cap > WAD:
                report(f"Vault {s.vault}: relative cap of {alloc.allocation_id} above 100%: {alloc.relative_cap}")
            # 4. Allocations should sit under their absolute cap (they may not after a decrease).
            if (
                alloc.allocation is not None
                and alloc.absolute_cap is not None
                and alloc.allocation > alloc.absolute_cap
            ):
                report(
                    f"Vault {s.vault}: allocation {alloc.allocation_id} exceeds absolute cap: "
                    f"{alloc.allocation} > {alloc.absolute_cap}"
                )

    # 5. Delays that could not be read.
    for delay in s.delays:
        if delay.error:
            report(f"Vault {s.vault}: timelock of {delay.function} unavailable: {delay.error}")

    return issues
