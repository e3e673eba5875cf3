"""Shift totals aggregation.

Folds a shift's activity records into the canonical nested ActivityTotals map:

    activity -> sub_activity -> metric -> value

Raw numeric fields are summed under their canonical metric names, derived
metrics are computed per record and replace raw values of the same name in any
case, and Loading gets an "All" sub-activity carrying the Dev/Stope bucket
rollups.
"""

from __future__ import annotations

import copy
import logging
import math
from collections import defaultdict
from typing import Any, Iterable, Mapping

import pandas as pd

from shift_core.metrics.derived import (
    LOADING_ROLLUP_METRICS,
    derive,
    is_input_only,
    loading_buckets_for_class,
)
from shift_core.metrics.keys import coerce_number, resolver_for
from shift_core.metrics.types import (
    KNOWN_ACTIVITIES,
    NO_ACTIVITY,
    NO_SUB_ACTIVITY,
    ActivityRecord,
    ActivityTotals,
    classify_sub_activity,
)

logger = logging.getLogger(__name__)

LOADING = "Loading"
ALL_SUB_ACTIVITY = "All"

_KNOWN_BY_LOWER = {name.lower(): name for name in KNOWN_ACTIVITIES}


def canonical_activity(name: Any) -> str:
    """Trimmed activity name; known activities take their canonical spelling."""
    s = str(name or "").strip()
    if not s:
        return NO_ACTIVITY
    return _KNOWN_BY_LOWER.get(s.lower(), s)


def canonical_sub_activity(activity: str, name: Any) -> str:
    """Trimmed sub-activity name with the activity-specific fallback.

    A Loading record without a sub-activity is a Development load; every other
    activity falls back to "(No Sub Activity)".
    """
    s = str(name or "").strip()
    if s:
        return s
    return "Development" if activity == LOADING else NO_SUB_ACTIVITY


def record_metrics(record: ActivityRecord) -> tuple[str, str, dict[str, float]]:
    """Metrics contributed by a single record.

    Returns:
        (activity, sub_activity, metrics) with canonical names.
    """
    activity = canonical_activity(record.activity)
    sub = canonical_sub_activity(activity, record.sub_activity)
    values = resolver_for(activity, sub).canonicalize(record.values)

    derived = derive(activity, sub, values, record.loads)
    overridden = {key.lower() for key in derived}
    metrics: dict[str, float] = {}
    for key, raw in values.items():
        if is_input_only(activity, key) or key.lower() in overridden:
            continue
        num = coerce_number(raw)
        if num is not None:
            metrics[key] = num
    metrics.update(derived)
    return activity, sub, metrics


class _CaseFoldedSums:
    """Sums keyed case-insensitively, reported under the smallest spelling."""

    def __init__(self) -> None:
        self.parts: dict[tuple[str, str, str], list[float]] = defaultdict(list)
        self.spellings: dict[tuple[str, ...], set[str]] = defaultdict(set)

    def add(self, activity: str, sub: str, metric: str, value: float) -> None:
        a, s, m = activity.lower(), sub.lower(), metric.lower()
        self.parts[(a, s, m)].append(value)
        self.spellings[(a,)].add(activity)
        self.spellings[(a, s)].add(sub)
        self.spellings[(a, s, m)].add(metric)

    def touch(self, activity: str, sub: str) -> None:
        """Register an (activity, sub) group even if it has no numeric metrics."""
        self.spellings[(activity.lower(),)].add(activity)
        self.spellings[(activity.lower(), sub.lower())].add(sub)

    def totals(self) -> ActivityTotals:
        out: ActivityTotals = {}
        for key, names in self.spellings.items():
            if len(key) == 2:
                activity = min(self.spellings[(key[0],)])
                out.setdefault(activity, {}).setdefault(min(names), {})
        for key in sorted(self.parts):
            a, s, _ = key
            activity = min(self.spellings[(a,)])
            sub = min(self.spellings[(a, s)])
            metric = min(self.spellings[key])
            # fsum is exactly rounded, so totals do not depend on record order.
            out.setdefault(activity, {}).setdefault(sub, {})[metric] = math.fsum(self.parts[key])
        return out


def aggregate(records: Iterable[ActivityRecord | Mapping[str, Any]]) -> ActivityTotals:
    """Aggregate a shift's activity records into ActivityTotals.

    Args:
        records: ActivityRecord objects or capture payload dicts.

    Returns:
        Nested totals with canonical activity, sub-activity and metric names.
        The result does not depend on record order.

    Examples:
        >>> totals = aggregate([
        ...     ActivityRecord("Development", "Face Drilling", {"No of Holes": 40, "Cut Length": 4}),
        ... ])
        >>> totals["Development"]["Face Drilling"]["Dev Drillm"]
        160.0
    """
    sums = _CaseFoldedSums()
    n_records = 0
    for rec in records:
        if not isinstance(rec, ActivityRecord):
            rec = ActivityRecord.from_payload(rec)
        activity, sub, metrics = record_metrics(rec)
        n_records += 1
        sums.touch(activity, sub)
        for metric, value in metrics.items():
            sums.add(activity, sub, metric, value)

    totals = sums.totals()
    _rebuild_loading_all(totals)
    logger.debug("Aggregated %d activity records into %d activities", n_records, len(totals))
    return totals


def _find_activity(totals: Mapping[str, Any], activity: str) -> list[str]:
    return [k for k in totals if str(k).strip().lower() == activity.lower()]


def _rebuild_loading_all(totals: ActivityTotals) -> None:
    """Recompute Loading -> All from the per-sub-activity rollups."""
    if LOADING not in totals:
        return
    parts: dict[str, list[float]] = {m: [] for m in LOADING_ROLLUP_METRICS}
    for sub, metrics in totals[LOADING].items():
        if sub.lower() == ALL_SUB_ACTIVITY.lower():
            continue
        for m in LOADING_ROLLUP_METRICS:
            if m in metrics:
                parts[m].append(metrics[m])
    totals[LOADING][ALL_SUB_ACTIVITY] = {m: math.fsum(v) for m, v in parts.items()}


def normalize_loading_rollups(totals: Mapping[str, Any]) -> ActivityTotals:
    """Re-derive Loading bucket rollups on already aggregated totals.

    Used to correct a shift whose totals were stored with legacy or
    mis-prefixed Loading keys. Loading metric keys are re-canonicalized for
    each sub-activity's class, Primary/Rehandle buckets are re-derived from
    the raw fields present, and Loading -> All is rebuilt. Other activities
    are returned unchanged. The input is not modified.

    For totals produced by aggregate() this is a fixed point.
    """
    out: ActivityTotals = copy.deepcopy(dict(totals))
    keys = _find_activity(out, LOADING)
    if not keys:
        return out

    merged: dict[str, dict[str, list[float]]] = {}
    for key in keys:
        subs = out.pop(key) or {}
        if not isinstance(subs, Mapping):
            logger.warning("Ignoring malformed Loading totals: %r", subs)
            continue
        for sub, metrics in subs.items():
            if str(sub).strip().lower() == ALL_SUB_ACTIVITY.lower() or not isinstance(metrics, Mapping):
                continue
            sub_name = str(sub).strip()
            cls = classify_sub_activity(sub_name)
            values = resolver_for(LOADING, sub_name).canonicalize(metrics)
            # Rollups of the other class are stale outputs of a mis-prefixed pass.
            stale = {m for m in LOADING_ROLLUP_METRICS if cls.prefix not in m}
            target = merged.setdefault(sub_name, {})
            for metric, raw in values.items():
                if metric in stale:
                    continue
                num = coerce_number(raw)
                if num is not None:
                    target.setdefault(metric, []).append(num)

    loading: dict[str, dict[str, float]] = {}
    for sub_name, parts in merged.items():
        metrics = {m: math.fsum(v) for m, v in parts.items()}
        metrics.update(loading_buckets_for_class(classify_sub_activity(sub_name), metrics))
        loading[sub_name] = metrics
    out[LOADING] = loading
    _rebuild_loading_all(out)
    return out


def merge_totals(*totals: Mapping[str, Any]) -> ActivityTotals:
    """Sum several ActivityTotals maps (e.g. all shifts of a day)."""
    out: ActivityTotals = {}
    for t in totals:
        for activity, subs in (t or {}).items():
            for sub, metrics in (subs or {}).items():
                target = out.setdefault(activity, {}).setdefault(sub, {})
                for metric, value in (metrics or {}).items():
                    num = coerce_number(value)
                    if num is not None:
                        target[metric] = target.get(metric, 0.0) + num
    return out


def totals_to_frame(totals: Mapping[str, Any]) -> pd.DataFrame:
    """Flatten ActivityTotals into a long DataFrame.

    Returns:
        DataFrame with columns activity, sub_activity, metric, value.
    """
    rows = [
        {"activity": activity, "sub_activity": sub, "metric": metric, "value": value}
        for activity, subs in (totals or {}).items()
        for sub, metrics in (subs or {}).items()
        for metric, value in (metrics or {}).items()
    ]
    df = pd.DataFrame(rows, columns=["activity", "sub_activity", "metric", "value"])
    if not df.empty:
        df["value"] = pd.to_numeric(df["value"], errors="coerce").fillna(0.0)
        df = df.sort_values(["activity", "sub_activity", "metric"]).reset_index(drop=True)
    return df
