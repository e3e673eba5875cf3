"""Monthly reconciliation of captured actuals against reconciled totals.

Example:
    >>> from shift_core import DataPaths
    >>> from shift_core.reconciliation import ReconciliationService
    >>> service = ReconciliationService(DataPaths.from_root("data"))
    >>> summary = service.month_summary("North", "2025-01", "hauling|ore_tonnes_hauled")
    >>> summary.to_dict()["actual_total"]
    0.0
"""

from shift_core.reconciliation.allocate import allocate, month_end, spread_daily
from shift_core.reconciliation.api import ReconciliationService
from shift_core.reconciliation.actuals import compute_monthly_actuals
from shift_core.reconciliation.metrics import (
    DEVELOPMENT_ORE_KEY,
    PRODUCTION_ORE_KEY,
    RECON_METRICS,
    MetricSelector,
    get_selector,
)
from shift_core.reconciliation.store import ReconciliationStore
from shift_core.reconciliation.types import (
    Basis,
    DayAllocation,
    Method,
    MonthlyActuals,
    MonthlyMetricSummary,
    ReconciliationRecord,
    ReconciliationState,
)

__all__ = [
    "Basis",
    "DEVELOPMENT_ORE_KEY",
    "DayAllocation",
    "MetricSelector",
    "Method",
    "MonthlyActuals",
    "MonthlyMetricSummary",
    "PRODUCTION_ORE_KEY",
    "RECON_METRICS",
    "ReconciliationRecord",
    "ReconciliationService",
    "ReconciliationState",
    "ReconciliationStore",
    "allocate",
    "compute_monthly_actuals",
    "get_selector",
    "month_end",
    "spread_daily",
]
