"""Example: finalize shifts and reconcile a month's ore hauled.

This demonstrates the reconciliation lifecycle for one metric: captured
actuals, an administrator-entered total, its day allocations, and locking.
"""

from pathlib import Path

from shift_core import DataPaths
from shift_core.reconciliation import ReconciliationService
from shift_core.shifts import ShiftStore

# Setup
paths = DataPaths.from_root(Path("data"))
shifts = ShiftStore(paths)
site = "North"
month = "2025-01"
metric = "hauling|production_ore_tonnes_hauled"

# Example 1: Finalize two validated shifts
print("Example 1: Finalize shifts")
print("-" * 60)
for day, tonnes in (("2025-01-03", 300), ("2025-01-10", 700)):
    snapshot = shifts.finalize(
        site,
        day,
        "DS",
        [{"activity": "Hauling", "sub": "Production", "values": {"Trucks": 6, "Weight": 50, "Tonnes Hauled": tonnes}}],
        validated=True,
    )
    print(f"{snapshot.shift_id}: {snapshot.totals['Hauling']['Production']}")
print()

# Example 2: Month summary before reconciling
print("Example 2: Captured actuals")
print("-" * 60)
recon = ReconciliationService(paths, shifts=shifts)
summary = recon.month_summary(site, month, metric)
print(f"Actual total: {summary.actual_total}")
print(f"State: {summary.state.value}\n")

# Example 3: Reconcile and spread the delta over the month
print("Example 3: Upsert reconciled total (spread_daily)")
print("-" * 60)
summary = recon.upsert(site, month, metric, reconciled_total=1100, notes="survey pickup")
print(f"Delta: {summary.delta}")
for allocation in summary.allocations:
    print(f"  {allocation.date}: {allocation.allocated_value:+.3f}")
print()

# Example 4: Lock the month
print("Example 4: Lock")
print("-" * 60)
recon.lock(site, month, metric)
print(f"Month status: {recon.month_status(site, month).value}")
