"""Shift Core - shift metrics rollup, monthly reconciliation and bucket factors.

This package turns operators' free-form shift activity records into canonical
totals and lets site administrators reconcile them against verified monthly
figures:

- **Metrics**: alias-resolved, derived and rolled-up ActivityTotals per shift
- **Reconciliation**: monthly actuals, reconciled totals and day allocations
- **Bucket factors**: tonnes-per-bucket factors solved per loader configuration

Module Structure:
    shift_core.metrics: Key resolver, derived metric rules, aggregate()
    shift_core.shifts: Finalized shift documents
    shift_core.reconciliation: ReconciliationService, allocation policies
    shift_core.bucket_factors: BucketFactorService, solve strategies
    shift_core.config: DataPaths configuration and tolerances

Quick Start:
    >>> from shift_core import DataPaths
    >>> from shift_core.shifts import ShiftStore
    >>> from shift_core.reconciliation import ReconciliationService
    >>> from shift_core.bucket_factors import BucketFactorService
    >>>
    >>> paths = DataPaths.from_root("data")
    >>> shifts = ShiftStore(paths)
    >>> shifts.finalize("North", "2025-01-05", "DS", records, validated=True)
    >>>
    >>> # Reconcile production ore hauled for January
    >>> recon = ReconciliationService(paths, shifts=shifts)
    >>> recon.upsert("North", "2025-01", "hauling|production_ore_tonnes_hauled", reconciled_total=1000)
    >>> recon.upsert("North", "2025-01", "hauling|development_ore_tonnes_hauled", reconciled_total=500)
    >>>
    >>> # Back-solve bucket factors (preview)
    >>> result = BucketFactorService(paths, shifts=shifts).solve("North", "2025-01")
    >>> print(result.to_dict()["residuals"])

Totals Reference:
    ActivityTotals: activity -> sub_activity -> metric -> value
        - Loading -> All: Primary/Rehandle Dev/Stope Buckets rollup
        - Hauling: Trucks, Weight, Distance, TKMs, Ore/Waste splits
"""

__version__ = "0.1.0"

from shift_core.config import DataPaths
from shift_core.exceptions import (
    InfeasibleSolveError,
    NotFoundError,
    ReconciliationLockedError,
    ShiftCoreError,
    StateError,
    StorageError,
    UpstreamDataError,
    ValidationError,
)

__all__ = [
    "DataPaths",
    "InfeasibleSolveError",
    "NotFoundError",
    "ReconciliationLockedError",
    "ShiftCoreError",
    "StateError",
    "StorageError",
    "UpstreamDataError",
    "ValidationError",
    "__version__",
]
