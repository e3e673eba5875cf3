"""Derived metric rules.

Each rule is a pure function of one record's canonical values (and its loads)
returning computed metrics. Rules are registered per (activity, sub-activity);
a sub-activity of "*" applies to every sub-activity of the activity.

Derived values replace raw-summed values of the same metric for the record.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, Sequence

from shift_core.metrics.keys import (
    LOADING_PRIMARY_FIELDS,
    coerce_number,
    has_any,
    lookup,
    parse_number,
    resolve,
    sp_to_sp_field,
    sp_to_truck_field,
)
from shift_core.metrics.types import Load, SubActivityClass, classify_sub_activity

DerivedRule = Callable[[str, Mapping[str, Any], "Sequence[Load] | None"], dict[str, float]]

# Loading -> All rollup metrics, in display order.
LOADING_ROLLUP_METRICS = (
    "Primary Dev Buckets",
    "Rehandle Dev Buckets",
    "Primary Stope Buckets",
    "Rehandle Stope Buckets",
)

# Raw fields that are inputs to a rule and never summed on their own.
INPUT_ONLY_FIELDS: dict[str, frozenset[str]] = {
    "hauling": frozenset({"weight", "distance"}),
}


def _length(value: Any) -> float:
    """Length field with an optional trailing unit ("4m", "4.5 m")."""
    num = coerce_number(value)
    if num is None:
        num = parse_number(str(value if value is not None else "").replace("m", ""))
    return num


def ground_support_drillm(sub: str, values: Mapping[str, Any], loads) -> dict[str, float]:
    bolts = resolve(values, ["No. of Bolts"])
    bolt_length = _length(values.get("Bolt Length"))
    return {"GS Drillm": bolts * bolt_length}


def face_drilling_drillm(sub: str, values: Mapping[str, Any], loads) -> dict[str, float]:
    return {"Dev Drillm": resolve(values, ["No of Holes"]) * resolve(values, ["Cut Length"])}


def haulage(sub: str, values: Mapping[str, Any], loads: Sequence[Load] | None) -> dict[str, float]:
    """Truck-weighted hauling totals and the ore/waste split.

    With per-load weights the truck count is the number of loads and weight is
    their sum. Otherwise weight is trucks x the per-truck weight field.
    """
    distance = resolve(values, ["Distance"])
    if loads is not None:
        trucks = float(len(loads))
        weight = sum(parse_number(ld.weight) for ld in loads)
    else:
        trucks = resolve(values, ["Trucks"])
        weight = trucks * resolve(values, ["Weight"])

    out = {
        "Trucks": trucks,
        "Weight": weight,
        "Distance": trucks * distance,
        "TKMs": weight * distance,
    }

    material = str(lookup(values, ["Material"]) or "").strip().lower()
    is_ore = "ore" in material or (not material and sub.strip().lower() == "production")
    is_waste = "waste" in material
    out["Ore Trucks"] = trucks if is_ore else 0.0
    out["Waste Trucks"] = trucks if is_waste else 0.0
    if has_any(values, ["Tonnes Hauled"]):
        tonnes = resolve(values, ["Tonnes Hauled"])
        out["Ore Tonnes Hauled"] = tonnes if is_ore else 0.0
        out["Waste Tonnes Hauled"] = tonnes if is_waste else 0.0
    return out


def loading_buckets(sub: str, values: Mapping[str, Any], loads) -> dict[str, float]:
    """Primary and rehandle bucket rollups for one Loading sub-activity."""
    cls = classify_sub_activity(sub)
    return loading_buckets_for_class(cls, values)


def loading_buckets_for_class(cls: SubActivityClass, values: Mapping[str, Any]) -> dict[str, float]:
    to_truck, to_sp = LOADING_PRIMARY_FIELDS[cls]
    primary = resolve(values, [to_truck]) + resolve(values, [to_sp])
    rehandle = resolve(values, [sp_to_truck_field(cls)]) + resolve(values, [sp_to_sp_field(cls)])
    return {
        f"Primary {cls.prefix} Buckets": primary,
        f"Rehandle {cls.prefix} Buckets": rehandle,
    }


RULES: dict[tuple[str, str], tuple[DerivedRule, ...]] = {
    ("development", "ground support"): (ground_support_drillm,),
    ("development", "rehab"): (ground_support_drillm,),
    ("development", "face drilling"): (face_drilling_drillm,),
    ("hauling", "*"): (haulage,),
    ("loading", "*"): (loading_buckets,),
}


def rules_for(activity: str, sub_activity: str) -> tuple[DerivedRule, ...]:
    a = activity.strip().lower()
    s = sub_activity.strip().lower()
    return RULES.get((a, s), ()) + RULES.get((a, "*"), ())


def derive(
    activity: str,
    sub_activity: str,
    values: Mapping[str, Any],
    loads: Sequence[Load] | None = None,
) -> dict[str, float]:
    """Apply every rule registered for (activity, sub_activity).

    Args:
        activity: Canonical activity name.
        sub_activity: Canonical sub-activity name.
        values: The record's values under canonical metric names.
        loads: Per-load weights, if the record has them.

    Returns:
        Derived metric name -> value. Empty when no rule applies.

    Examples:
        >>> derive("Development", "Face Drilling", {"No of Holes": 40, "Cut Length": 4})
        {'Dev Drillm': 160.0}
    """
    out: dict[str, float] = {}
    for rule in rules_for(activity, sub_activity):
        out.update(rule(sub_activity, values, loads))
    return out


def is_input_only(activity: str, metric: str) -> bool:
    return metric.strip().lower() in INPUT_ONLY_FIELDS.get(activity.strip().lower(), frozenset())
