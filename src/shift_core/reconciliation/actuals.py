"""Daily captured actuals for a reconciliation metric.

Sums the selected metric out of every finalized shift of the month (filtered
by basis) and groups by date.
"""

from __future__ import annotations

import logging
import math
from typing import Iterable

import pandas as pd

from shift_core.exceptions import UpstreamDataError
from shift_core.reconciliation.metrics import MetricSelector
from shift_core.reconciliation.types import Basis, MonthlyActuals
from shift_core.shifts import ShiftSnapshot
from shift_core.utils import month_of

logger = logging.getLogger(__name__)


def include_shift(shift: ShiftSnapshot, basis: Basis) -> bool:
    return basis == Basis.CAPTURED_ALL or shift.validated


def shift_actuals_frame(
    shifts: Iterable[ShiftSnapshot],
    selector: MetricSelector,
    basis: Basis,
    month_ym: str,
) -> tuple[pd.DataFrame, int]:
    """One row per included shift with its value of the selected metric.

    Returns:
        (DataFrame with columns date, shift_id, value; number of skipped shifts).
        A shift with malformed totals is logged, counted and kept with value 0.
    """
    rows = []
    skipped = 0
    for shift in shifts:
        if month_of(shift.date) != month_ym or not include_shift(shift, basis):
            continue
        try:
            value = selector.value(shift.totals, shift_id=shift.shift_id)
        except UpstreamDataError as e:
            logger.warning("Treating shift %s as 0 for %s: %s", e.shift_id, selector.key, e)
            skipped += 1
            value = 0.0
        rows.append({"date": shift.date, "shift_id": shift.shift_id, "value": value})
    return pd.DataFrame(rows, columns=["date", "shift_id", "value"]), skipped


def compute_monthly_actuals(
    shifts: Iterable[ShiftSnapshot],
    selector: MetricSelector,
    basis: Basis,
    month_ym: str,
) -> MonthlyActuals:
    """Aggregate shift values into daily and monthly actuals.

    Args:
        shifts: Finalized shifts of the site (other months are ignored).
        selector: Metric to sum.
        basis: VALIDATED_ONLY keeps validated shifts, CAPTURED_ALL keeps all.
        month_ym: Month in YYYY-MM format.

    Returns:
        MonthlyActuals. Days with a shift but a zero value appear in
        captured_days but not in daily.
    """
    df, skipped = shift_actuals_frame(shifts, selector, basis, month_ym)
    if df.empty:
        return MonthlyActuals(skipped_shifts=skipped)

    by_day = df.groupby("date", sort=True)["value"].sum()
    daily = {d: float(v) for d, v in by_day.items() if v != 0}
    actuals = MonthlyActuals(
        total=math.fsum(daily.values()),
        daily=daily,
        captured_days=sorted(by_day.index),
        shift_count=len(df),
        skipped_shifts=skipped,
    )
    logger.debug(
        "Actuals for %s %s (%s): total=%s over %d shifts",
        selector.key,
        month_ym,
        basis.value,
        actuals.total,
        actuals.shift_count,
    )
    return actuals
