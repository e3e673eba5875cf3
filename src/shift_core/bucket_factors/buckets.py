"""Per-loader primary bucket counts for a month.

Counts come from the Loading records of the month's finalized shifts:

- the loader is the record's Equipment field;
- records with a Material other than ore are skipped;
- Production loads count Stope to Truck + Stope to SP as production buckets;
- Development loads count Heading to Truck + Heading to SP as development buckets.
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from typing import Iterable, Mapping

from shift_core.bucket_factors.types import LoaderBuckets
from shift_core.metrics import resolve
from shift_core.metrics.keys import lookup
from shift_core.reconciliation.actuals import include_shift
from shift_core.reconciliation.types import Basis
from shift_core.shifts import ShiftSnapshot

logger = logging.getLogger(__name__)


def count_loader_buckets(
    shifts: Iterable[ShiftSnapshot],
    basis: Basis = Basis.VALIDATED_ONLY,
) -> dict[str, tuple[float, float]]:
    """Sum (prod, dev) primary buckets per loader id.

    Loaders with no buckets in either stream are omitted.
    """
    prod: dict[str, list[float]] = defaultdict(list)
    dev: dict[str, list[float]] = defaultdict(list)
    for shift in shifts:
        if not include_shift(shift, basis):
            continue
        for rec in shift.activities:
            if rec.activity.strip().lower() != "loading":
                continue
            loader_id = str(lookup(rec.values, ["Equipment"]) or "").strip()
            if not loader_id:
                continue
            material = str(lookup(rec.values, ["Material"]) or "").strip().lower()
            if material and material != "ore":
                continue
            sub = rec.sub_activity.strip().lower()
            if sub.startswith("production"):
                prod[loader_id].append(resolve(rec.values, ["Stope to Truck"]) + resolve(rec.values, ["Stope to SP"]))
            elif sub.startswith("development"):
                dev[loader_id].append(resolve(rec.values, ["Heading to Truck"]) + resolve(rec.values, ["Heading to SP"]))

    out = {}
    for loader_id in sorted(set(prod) | set(dev)):
        p, d = math.fsum(prod.get(loader_id, [])), math.fsum(dev.get(loader_id, []))
        if p > 0 or d > 0:
            out[loader_id] = (p, d)
    logger.debug("Counted buckets for %d loaders", len(out))
    return out


def assign_loaders(
    counts: Mapping[str, tuple[float, float]],
    assignment: Mapping[str, str] | None = None,
) -> list[LoaderBuckets]:
    """Attach config codes; an unassigned loader is its own config."""
    assignment = assignment or {}
    return [
        LoaderBuckets(
            loader_id=loader_id,
            config_code=str(assignment.get(loader_id) or "").strip() or loader_id,
            prod_buckets=p,
            dev_buckets=d,
        )
        for loader_id, (p, d) in sorted(counts.items())
    ]
