"""Reconciliation metric keys.

A metric key selects one number out of a shift's ActivityTotals. Named keys
come from the registry below; any other key of the form
"Activity|Sub Activity|Metric" is accepted too, with "*" matching every
sub-activity. All matching is case-insensitive.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping

from shift_core.exceptions import UpstreamDataError, ValidationError
from shift_core.metrics import coerce_number

ANY_SUB_ACTIVITY = "*"


@dataclass(frozen=True)
class MetricSelector:
    """Selects and sums one metric from ActivityTotals.

    Attributes:
        key: Normalized metric key (lowercase, trimmed parts).
        activity: Activity to read.
        sub_activities: Sub-activities to sum over, or ("*",) for all.
        metric: Metric name within each sub-activity.
        label: Display label.
        unit: Display unit.
    """

    key: str
    activity: str
    sub_activities: tuple[str, ...]
    metric: str
    label: str = ""
    unit: str = ""

    def matches_sub(self, sub: str) -> bool:
        if ANY_SUB_ACTIVITY in self.sub_activities:
            return True
        s = str(sub).strip().lower()
        return any(s == x.lower() for x in self.sub_activities)

    def value(self, totals: Any, shift_id: str | None = None) -> float:
        """Sum the selected metric out of one shift's totals.

        Raises:
            UpstreamDataError: If totals are missing or not a nested
                activity -> sub_activity -> metric mapping of numbers.
        """
        if totals is None:
            raise UpstreamDataError("shift has no totals", shift_id=shift_id)
        if not isinstance(totals, Mapping):
            raise UpstreamDataError("shift totals are not a mapping", shift_id=shift_id)

        parts: list[float] = []
        wanted_activity = self.activity.lower()
        wanted_metric = self.metric.lower()
        for activity, subs in totals.items():
            if str(activity).strip().lower() != wanted_activity:
                continue
            if not isinstance(subs, Mapping):
                raise UpstreamDataError(f"malformed totals for activity {activity!r}", shift_id=shift_id)
            for sub, metrics in subs.items():
                if not self.matches_sub(sub):
                    continue
                if not isinstance(metrics, Mapping):
                    raise UpstreamDataError(f"malformed totals for {activity!r}/{sub!r}", shift_id=shift_id)
                for metric, raw in metrics.items():
                    if str(metric).strip().lower() != wanted_metric:
                        continue
                    num = coerce_number(raw)
                    if num is None:
                        raise UpstreamDataError(
                            f"non-numeric total {activity!r}/{sub!r}/{metric!r}: {raw!r}", shift_id=shift_id
                        )
                    parts.append(num)
        return math.fsum(parts)

    def to_dict(self) -> dict:
        return {"key": self.key, "label": self.label, "unit": self.unit}


RECON_METRICS: tuple[MetricSelector, ...] = (
    MetricSelector(
        key="firing|development|cut_length",
        activity="Firing",
        sub_activities=("Development",),
        metric="Cut Length",
        label="Firing - Development - Cut Length",
        unit="m",
    ),
    MetricSelector(
        key="hauling|ore_tonnes_hauled",
        activity="Hauling",
        sub_activities=("Production", "Development"),
        metric="Ore Tonnes Hauled",
        label="Hauling - Ore Tonnes Hauled (Dev + Prod)",
        unit="t",
    ),
    MetricSelector(
        key="hauling|production_ore_tonnes_hauled",
        activity="Hauling",
        sub_activities=("Production",),
        metric="Ore Tonnes Hauled",
        label="Hauling - Production Ore Tonnes Hauled",
        unit="t",
    ),
    MetricSelector(
        key="hauling|development_ore_tonnes_hauled",
        activity="Hauling",
        sub_activities=("Development",),
        metric="Ore Tonnes Hauled",
        label="Hauling - Development Ore Tonnes Hauled",
        unit="t",
    ),
    MetricSelector(
        key="hoisting|ore_tonnes_hoisted",
        activity="Hoisting",
        sub_activities=(ANY_SUB_ACTIVITY,),
        metric="Ore Tonnes",
        label="Hoisting - Ore Tonnes Hoisted",
        unit="t",
    ),
    MetricSelector(
        key="hoisting|waste_tonnes_hoisted",
        activity="Hoisting",
        sub_activities=(ANY_SUB_ACTIVITY,),
        metric="Waste Tonnes",
        label="Hoisting - Waste Tonnes Hoisted",
        unit="t",
    ),
)

PRODUCTION_ORE_KEY = "hauling|production_ore_tonnes_hauled"
DEVELOPMENT_ORE_KEY = "hauling|development_ore_tonnes_hauled"

_REGISTRY = {m.key: m for m in RECON_METRICS}


def normalize_metric_key(metric_key: str) -> str:
    """Lowercase and trim each "|"-separated part of a metric key."""
    return "|".join(part.strip().lower() for part in str(metric_key or "").split("|"))


def get_selector(metric_key: str) -> MetricSelector:
    """Resolve a metric key to its selector.

    Raises:
        ValidationError: If the key is empty, or neither registered nor of the
            form "Activity|Sub Activity|Metric".

    Examples:
        >>> get_selector("Hauling|Production|Trucks").metric
        'Trucks'
    """
    if not str(metric_key or "").strip():
        raise ValidationError("missing metric_key")
    key = normalize_metric_key(metric_key)
    if key in _REGISTRY:
        return _REGISTRY[key]

    parts = [p.strip() for p in str(metric_key).split("|")]
    if len(parts) != 3 or not all(parts):
        raise ValidationError(
            f"unknown metric_key '{metric_key}'. Expected a registered key or 'Activity|Sub Activity|Metric'"
        )
    activity, sub, metric = parts
    return MetricSelector(
        key=key,
        activity=activity,
        sub_activities=(sub,),
        metric=metric,
        label=" - ".join(parts),
    )


def list_metrics() -> list[dict]:
    return [m.to_dict() for m in RECON_METRICS]
