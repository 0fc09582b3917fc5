"""Console output formatting."""

from datetime import datetime, timezone

from vaults_curation.formatters import (
    format_annual_wad_pct,
    format_duration,
    format_units,
    format_wad_pct,
    is_zero_address,
)
from vaults_curation.models import (
    AdapterSnapshot,
    DelaySnapshot,
    DeployResult,
    PendingChange,
    StepResult,
    VaultSnapshot,
)

STATUS_EMOJI = {"applied": "✅", "pending": "⏳", "skipped": "⏭️ ", "failed": "❌"}


def _utc(ts: int) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def _print_adapter(a: AdapterSnapshot, *, decimals: int) -> None:
    kind = a.adapter_type or "unknown"
    print(f"\n   🔌 #{a.index} {a.address}  ({kind})")
    if a.underlying:
        print(f"      • Underlying:            {a.underlying}")
    penalty = format_wad_pct(a.force_deallocate_penalty) if a.force_deallocate_penalty is not None else "n/a"
    print(f"      • Force-deallocate fee:  {penalty}")
    for alloc in a.allocations:
        print(f"      • id {alloc.allocation_id[:18]}…")
        if alloc.error:
            print(f"         ⚠️  {alloc.error}")
            continue
        print(f"         - Allocation:    {format_units(alloc.allocation or 0, decimals)}")
        print(f"         - Absolute cap:  {format_units(alloc.absolute_cap or 0, decimals)}")
        print(f"         - Relative cap:  {format_wad_pct(alloc.relative_cap)}")
    if a.error:
        print(f"      ⚠️  {a.error}")


def print_delays(delays: tuple[DelaySnapshot, ...] | list[DelaySnapshot]) -> None:
    print("\n   ⏱️  Timelocks:")
    for d in delays:
        value = format_duration(d.seconds) if d.error is None else f"⚠️  {d.error}"
        print(f"      • {d.function:<28} {d.selector}  {value}")


def print_vault_snapshot(s: VaultSnapshot, *, decimals: int = 18) -> None:
    """Print a human-readable vault snapshot."""
    print("=" * 70)
    print(f"🏦 {s.name} ({s.symbol})")
    print(f"   {s.vault}")
    print("=" * 70)
    print(f"   🪙 Asset:          {s.asset}")
    print(f"   💰 Total assets:   {format_units(s.total_assets, decimals)}")
    print(f"   💤 Idle assets:    {format_units(s.idle_assets, decimals)}")
    print(f"   📊 Total supply:   {format_units(s.total_supply, decimals)}  (virtual shares {s.virtual_shares})")
    print(f"   👑 Owner:          {s.owner}")
    print(f"   🧭 Curator:        {s.curator}")
    if s.account:
        print(f"   👤 {s.account}: sentinel={s.is_sentinel}  allocator={s.is_allocator}")

    print("\n   💸 Fees:")
    print(f"      • Performance:  {format_wad_pct(s.fees.performance_fee)} → {s.fees.performance_fee_recipient}")
    print(f"      • Management:   {format_annual_wad_pct(s.fees.management_fee)}/yr → {s.fees.management_fee_recipient}")
    print(f"      • Max rate:     {format_annual_wad_pct(s.fees.max_rate)}/yr")

    liquidity = "none" if is_zero_address(s.liquidity_adapter) else s.liquidity_adapter
    print(f"\n   💧 Liquidity adapter: {liquidity}  data={s.liquidity_data}")

    print(f"\n   🔌 Adapters: {len(s.adapters)}")
    for a in s.adapters:
        _print_adapter(a, decimals=decimals)

    print_delays(s.delays)


def print_deploy_result(result: DeployResult, *, tx_link: str | None = None) -> None:
    if not result.created:
        print(f"✅ Existing {result.adapter_type} adapter: {result.address}")
        return
    state = "confirmed" if result.confirmed else "sent"
    print(f"🚀 Deployed {result.adapter_type} adapter: {result.address} ({state})")
    if tx_link:
        print(f"   🔗 {tx_link}")


def print_pending(change: PendingChange | None, *, now: int | None = None) -> None:
    if change is None:
        print("⚪ Nothing pending for this calldata")
        return
    print(f"⏳ {change.function} executable at {_utc(change.executable_at)}")
    if now is not None:
        remaining = change.executable_at - now
        print(f"   {'ready now' if remaining <= 0 else f'in {format_duration(remaining)}'}")


def print_step_results(results: list[StepResult]) -> None:
    """Print the per-step summary of a setup run."""
    print("=" * 70)
    print("🛠️  CURATOR SETUP")
    print("=" * 70)
    for r in results:
        emoji = STATUS_EMOJI.get(r.status, "•")
        print(f"{emoji} [{r.step}] {r.subject}: {r.status}{f' ({r.detail})' if r.detail else ''}")
    pending = sum(1 for r in results if r.status == "pending")
    failed = sum(1 for r in results if r.status == "failed")
    print("─" * 70)
    print(f"   {len(results)} steps  •  {pending} pending  •  {failed} failed")
