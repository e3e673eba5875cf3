"""Metrics normalization and rollup engine.

Turns a shift's free-form activity records into canonical ActivityTotals.

Example:
    >>> from shift_core.metrics import ActivityRecord, aggregate
    >>> totals = aggregate([
    ...     ActivityRecord("Development", "Ground Support", {"No. of Bolts": 30, "Bolt Length": "4m"}),
    ... ])
    >>> totals["Development"]["Ground Support"]["GS Drillm"]
    120.0
"""

from shift_core.metrics.aggregate import (
    aggregate,
    merge_totals,
    normalize_loading_rollups,
    totals_to_frame,
)
from shift_core.metrics.derived import LOADING_ROLLUP_METRICS, derive
from shift_core.metrics.keys import (
    METRIC_ALIASES,
    KeyResolver,
    coerce_number,
    parse_number,
    resolve,
    resolver_for,
)
from shift_core.metrics.types import (
    ActivityRecord,
    ActivityTotals,
    Load,
    SubActivityClass,
    classify_sub_activity,
)

__all__ = [
    "ActivityRecord",
    "ActivityTotals",
    "KeyResolver",
    "LOADING_ROLLUP_METRICS",
    "Load",
    "METRIC_ALIASES",
    "SubActivityClass",
    "aggregate",
    "classify_sub_activity",
    "coerce_number",
    "derive",
    "merge_totals",
    "normalize_loading_rollups",
    "parse_number",
    "resolve",
    "resolver_for",
    "totals_to_frame",
]
