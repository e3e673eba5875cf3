"""Metric key aliases, numeric parsing and the key resolver.

Field names on activity forms have been renamed over time ("No of Trucks" vs
"Trucks", "SP to Truck" vs "Dev SP to Truck") and operators' devices still
send old spellings. Every lookup goes through an alias table mapping a
canonical metric name to its accepted spellings, in precedence order.
"""

from __future__ import annotations

import math
import re
from functools import lru_cache
from typing import Any, Iterable, Mapping

from shift_core.metrics.types import SubActivityClass, classify_sub_activity

_NON_NUMERIC_RE = re.compile(r"[^0-9.\-]")
_LEADING_NUMBER_RE = re.compile(r"^\s*[-+]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?")

# canonical metric -> accepted spellings, current name first.
METRIC_ALIASES: dict[str, tuple[str, ...]] = {
    "Trucks": ("Trucks", "No of Trucks", "No. of Trucks", "No of trucks", "No. of trucks"),
    "Weight": ("Weight",),
    "Distance": ("Distance",),
    "Tonnes Hauled": ("Tonnes Hauled",),
    "No. of Bolts": ("No. of Bolts", "No of Bolts"),
    "Bolt Length": ("Bolt Length",),
    "No of Holes": ("No of Holes", "No. of Holes"),
    "Cut Length": ("Cut Length",),
}

LOADING_PRIMARY_FIELDS: dict[SubActivityClass, tuple[str, str]] = {
    SubActivityClass.DEV: ("Heading to Truck", "Heading to SP"),
    SubActivityClass.STOPE: ("Stope to Truck", "Stope to SP"),
}

_LEGACY_SP_TO_TRUCK = ("SP to Truck", "SPtoTruck", "SP toTruck")
_LEGACY_SP_TO_SP = ("SP to SP", "SPtoSP", "SP toSP")


def sp_to_truck_field(cls: SubActivityClass) -> str:
    return f"{cls.prefix} SP to Truck"


def sp_to_sp_field(cls: SubActivityClass) -> str:
    return f"{cls.prefix} SP to SP"


def loading_aliases(cls: SubActivityClass) -> dict[str, tuple[str, ...]]:
    """Alias table for Loading fields of one sub-activity class.

    Prefixed spellings come first and the legacy unprefixed names last, so a
    record carrying both counts the prefixed value only.
    """
    p = cls.prefix
    return {
        sp_to_truck_field(cls): (
            f"{p} SP to Truck",
            f"{p} SP toTruck",
            f"{p} SPtoTruck",
            *_LEGACY_SP_TO_TRUCK,
        ),
        sp_to_sp_field(cls): (
            f"{p} SP to SP",
            f"{p} SP toSP",
            f"{p} SPtoSP",
            *_LEGACY_SP_TO_SP,
        ),
        **{name: (name,) for name in LOADING_PRIMARY_FIELDS[cls]},
    }


def parse_number(value: Any) -> float:
    """Permissive numeric parse used for resolved metric values.

    Strips every character other than digits, "." and "-" before parsing.
    Anything unparseable or non-finite gives 0.

    Examples:
        >>> parse_number("1,234 t")
        1234.0
        >>> parse_number("n/a")
        0.0
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else 0.0
    cleaned = _NON_NUMERIC_RE.sub("", str(value))
    if not cleaned:
        return 0.0
    try:
        num = float(cleaned)
    except ValueError:
        return 0.0
    return num if math.isfinite(num) else 0.0


def coerce_number(value: Any) -> float | None:
    """Strict numeric coercion for summing raw fields.

    Numbers pass through, strings are parsed from their leading numeric
    prefix ("4m" gives 4.0). Booleans, non-numeric strings and non-finite
    values give None, meaning the field is not a metric.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    m = _LEADING_NUMBER_RE.match(str(value))
    if not m:
        return None
    num = float(m.group(0))
    return num if math.isfinite(num) else None


_MISSING = object()


def _lookup(values: Mapping[str, Any], candidates: Iterable[str]) -> Any:
    """First value matching a candidate: exact key first, then case-insensitive."""
    for name in candidates:
        if not name:
            continue
        if name in values:
            return values[name]
        wanted = name.strip().lower()
        for key, value in values.items():
            if str(key).strip().lower() == wanted:
                return value
    return _MISSING


def resolve(values: Mapping[str, Any], candidates: Iterable[str]) -> float:
    """Resolve a metric value from a record by trying candidate names in order.

    Args:
        values: Raw record values keyed by field name.
        candidates: Names to try, highest precedence first.

    Returns:
        The first match parsed with parse_number(), or 0.0 if no candidate
        is present.

    Examples:
        >>> resolve({"foo": "3"}, ["Foo", "foo"])
        3.0
        >>> resolve({"Foo": 1, "foo": 2}, ["Foo"])
        1.0
    """
    found = _lookup(values, candidates)
    return 0.0 if found is _MISSING else parse_number(found)


def lookup(values: Mapping[str, Any], candidates: Iterable[str], default: Any = None) -> Any:
    """Raw value of the first matching candidate, or default."""
    found = _lookup(values, candidates)
    return default if found is _MISSING else found


def has_any(values: Mapping[str, Any], candidates: Iterable[str]) -> bool:
    return _lookup(values, candidates) is not _MISSING


class KeyResolver:
    """Resolves field spellings to canonical metric names for one alias table."""

    def __init__(self, table: Mapping[str, Iterable[str]]) -> None:
        self.table: dict[str, tuple[str, ...]] = {k: tuple(v) for k, v in table.items()}
        self._index: dict[str, str] = {}
        for canonical, spellings in self.table.items():
            for spelling in (canonical, *spellings):
                self._index.setdefault(spelling.strip().lower(), canonical)

    def canonical(self, name: str) -> str:
        """Map a spelling to its canonical metric name (unknown names are trimmed)."""
        key = str(name).strip()
        return self._index.get(key.lower(), key)

    def aliases(self, canonical: str) -> tuple[str, ...]:
        return self.table.get(canonical, (canonical,))

    def resolve(self, values: Mapping[str, Any], canonical: str) -> float:
        return resolve(values, self.aliases(canonical))

    def canonicalize(self, values: Mapping[str, Any]) -> dict[str, Any]:
        """Re-key a record's values under canonical metric names.

        Each known metric keeps only its highest-precedence spelling. Unknown
        fields are kept under their trimmed name; case variants of the same
        unknown name collapse to the lexically smallest spelling.
        """
        out: dict[str, Any] = {}
        for canonical, spellings in self.table.items():
            found = _lookup(values, spellings)
            if found is not _MISSING:
                out[canonical] = found

        unknown: dict[str, list[str]] = {}
        for key in values:
            name = str(key).strip()
            if not name or name.lower() in self._index:
                continue
            unknown.setdefault(name.lower(), []).append(key)
        for keys in unknown.values():
            source = min(keys, key=lambda k: str(k).strip())
            out[str(source).strip()] = values[source]
        return out


@lru_cache(maxsize=256)
def resolver_for(activity: str, sub_activity: str = "") -> KeyResolver:
    """KeyResolver for an (activity, sub-activity) pair.

    Loading sub-activities get the SP/primary field table of their class on
    top of the general metric aliases.
    """
    if activity.strip().lower() == "loading":
        cls = classify_sub_activity(sub_activity)
        return KeyResolver({**METRIC_ALIASES, **loading_aliases(cls)})
    return KeyResolver(METRIC_ALIASES)
