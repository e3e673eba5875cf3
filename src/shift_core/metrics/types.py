"""Shared types for shift activity records and totals."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from typing import Any, Dict, Mapping

NO_ACTIVITY = "(No Activity)"
NO_SUB_ACTIVITY = "(No Sub Activity)"

# Activity names as the capture UI spells them. Incoming names are matched
# case-insensitively against this list; anything else is kept as typed.
KNOWN_ACTIVITIES = (
    "Development",
    "Production Drilling",
    "Charging",
    "Firing",
    "Loading",
    "Hauling",
    "Hoisting",
)

# activity -> sub_activity -> metric -> value
ActivityTotals = Dict[str, Dict[str, Dict[str, float]]]


class SubActivityClass(str, Enum):
    """Dev vs Stope classification of a Loading sub-activity.

    Decides which field prefix ("Dev"/"Stope") and which primary bucket
    fields apply to a sub-activity.
    """

    DEV = "Dev"
    STOPE = "Stope"

    @property
    def prefix(self) -> str:
        return self.value


# Sub-activity definitions with a fixed classification.
SUB_ACTIVITY_CLASSES: dict[str, SubActivityClass] = {
    "development": SubActivityClass.DEV,
    "heading": SubActivityClass.DEV,
    "production": SubActivityClass.STOPE,
    "stope": SubActivityClass.STOPE,
}

_STOPE_HINT_RE = re.compile(r"stope|prod", re.IGNORECASE)


@lru_cache(maxsize=256)
def classify_sub_activity(sub_activity: str) -> SubActivityClass:
    """Return the SubActivityClass of a sub-activity name.

    Known definitions are looked up directly. Sub-activities added later are
    classified once by name ("stope"/"prod" means Stope, anything else Dev)
    and the result is cached.

    Examples:
        >>> classify_sub_activity("Production")
        <SubActivityClass.STOPE: 'Stope'>
        >>> classify_sub_activity("Decline")
        <SubActivityClass.DEV: 'Dev'>
    """
    key = str(sub_activity or "").strip().lower()
    if key in SUB_ACTIVITY_CLASSES:
        return SUB_ACTIVITY_CLASSES[key]
    return SubActivityClass.STOPE if _STOPE_HINT_RE.search(key) else SubActivityClass.DEV


@dataclass(frozen=True)
class Load:
    """One weighed truck load on a Hauling record."""

    weight: Any
    time_seconds: Any = None

    @classmethod
    def from_payload(cls, data: Any) -> Load:
        if isinstance(data, Load):
            return data
        if not isinstance(data, Mapping):
            return cls(weight=data)
        weight = data.get("weight", data.get("Weight"))
        time_seconds = data.get("timeSeconds", data.get("time_seconds"))
        return cls(weight=weight, time_seconds=time_seconds)


@dataclass(frozen=True)
class ActivityRecord:
    """A single activity captured during a shift.

    Attributes:
        activity: Activity name as captured (e.g. "Hauling").
        sub_activity: Sub-activity name (e.g. "Production"); may be blank.
        values: Free-form field values keyed by form field name.
        loads: Optional per-load weights for Hauling records. None means the
            record was captured with a truck count instead.
    """

    activity: str
    sub_activity: str = ""
    values: Mapping[str, Any] = field(default_factory=dict)
    loads: tuple[Load, ...] | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> ActivityRecord:
        """Build a record from a capture payload.

        Accepts the sub-activity under "sub", "sub_activity" or "subActivity"
        and the values either at "values" or nested in "payload_json".
        """
        p = payload or {}
        inner = p.get("payload_json") if isinstance(p.get("payload_json"), Mapping) else {}
        activity = p.get("activity", inner.get("activity", ""))
        sub = p.get("sub", p.get("sub_activity", p.get("subActivity")))
        if sub is None:
            sub = inner.get("sub_activity", inner.get("subActivity", ""))
        values = p.get("values")
        if not isinstance(values, Mapping):
            values = inner.get("values") if isinstance(inner.get("values"), Mapping) else {}
        raw_loads = p.get("loads", inner.get("loads"))
        loads = tuple(Load.from_payload(x) for x in raw_loads) if isinstance(raw_loads, list) else None
        return cls(
            activity=str(activity or ""),
            sub_activity=str(sub or ""),
            values=dict(values),
            loads=loads,
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "activity": self.activity,
            "sub_activity": self.sub_activity,
            "values": dict(self.values),
        }
        if self.loads is not None:
            out["loads"] = [
                {"weight": ld.weight, "timeSeconds": ld.time_seconds} for ld in self.loads
            ]
        return out
