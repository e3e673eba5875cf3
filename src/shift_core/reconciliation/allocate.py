"""Allocation policies for the reconciliation delta.

Both policies guarantee sum(daily actuals) + sum(allocations) equals the
reconciled total, within floating-point tolerance.
"""

from __future__ import annotations

import math
from datetime import date
from typing import Callable

from shift_core.reconciliation.types import DayAllocation, Method, MonthlyActuals
from shift_core.utils import month_days

Allocator = Callable[[float, MonthlyActuals, str], "list[DayAllocation]"]


def _with_remainder(delta: float, days: list[date], shares: list[float]) -> list[DayAllocation]:
    """Allocate delta by shares; the last day takes whatever float error remains."""
    allocations = []
    allocated: list[float] = []
    for day, share in zip(days[:-1], shares[:-1]):
        value = delta * share
        allocated.append(value)
        allocations.append(DayAllocation(day, value))
    allocations.append(DayAllocation(days[-1], delta - math.fsum(allocated)))
    return allocations


def spread_daily(delta: float, actuals: MonthlyActuals, month_ym: str) -> list[DayAllocation]:
    """Spread delta over days proportionally to each day's share of the actual.

    When the actual total is 0, delta is spread evenly over the days with any
    captured shift, or over every calendar day if nothing was captured.

    Examples:
        >>> from datetime import date
        >>> a = MonthlyActuals(total=30.0, daily={date(2025, 1, 1): 10.0, date(2025, 1, 2): 20.0})
        >>> [x.allocated_value for x in spread_daily(3.0, a, "2025-01")]
        [1.0, 2.0]
    """
    nonzero = sorted(d for d, v in actuals.daily.items() if v != 0)
    if actuals.total != 0 and nonzero:
        shares = [actuals.daily[d] / actuals.total for d in nonzero]
        return _with_remainder(delta, nonzero, shares)

    days = sorted(actuals.captured_days) or month_days(month_ym)
    return _with_remainder(delta, days, [1.0 / len(days)] * len(days))


def month_end(delta: float, actuals: MonthlyActuals, month_ym: str) -> list[DayAllocation]:
    """Put the whole delta on the last captured day (or the month's last day)."""
    captured = sorted(set(actuals.captured_days) | set(actuals.daily))
    day = captured[-1] if captured else month_days(month_ym)[-1]
    return [DayAllocation(day, delta)]


ALLOCATORS: dict[Method, Allocator] = {
    Method.SPREAD_DAILY: spread_daily,
    Method.MONTH_END: month_end,
}


def allocate(
    method: Method,
    reconciled_total: float,
    actuals: MonthlyActuals,
    month_ym: str,
) -> tuple[float, list[DayAllocation]]:
    """Compute the delta and its day allocations.

    Args:
        method: Allocation policy.
        reconciled_total: Administrator-entered monthly total.
        actuals: Captured actuals for the month.
        month_ym: Month in YYYY-MM format.

    Returns:
        (delta, allocations) where delta = reconciled_total - actuals.total.
    """
    delta = reconciled_total - actuals.total
    return delta, ALLOCATORS[Method(method)](delta, actuals, month_ym)
