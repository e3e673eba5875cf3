"""Tests for reconciliation delta allocation policies."""

import math
from datetime import date

import pytest

from shift_core.reconciliation import Method, MonthlyActuals, allocate, month_end, spread_daily


def _total(actuals: MonthlyActuals, allocations) -> float:
    return math.fsum(actuals.daily.values()) + math.fsum(a.allocated_value for a in allocations)


def test_spread_daily_is_proportional() -> None:
    """Each day gets delta times its share of the actual."""
    actuals = MonthlyActuals(
        total=1000.0,
        daily={date(2025, 1, 3): 300.0, date(2025, 1, 10): 700.0},
        captured_days=[date(2025, 1, 3), date(2025, 1, 10)],
    )
    delta, allocations = allocate(Method.SPREAD_DAILY, 1100.0, actuals, "2025-01")

    assert delta == 100.0
    assert [a.date for a in allocations] == [date(2025, 1, 3), date(2025, 1, 10)]
    assert allocations[0].allocated_value == pytest.approx(30.0)
    assert allocations[1].allocated_value == pytest.approx(70.0)
    assert abs(_total(actuals, allocations) - 1100.0) <= 1e-6


def test_spread_daily_sum_is_exact_with_awkward_shares() -> None:
    """Thirds do not leak float error into the reconciled total."""
    days = [date(2025, 3, d) for d in (1, 2, 3)]
    actuals = MonthlyActuals(total=3.0, daily={d: 1.0 for d in days}, captured_days=days)
    allocations = spread_daily(0.1, actuals, "2025-03")

    assert len(allocations) == 3
    assert math.fsum(a.allocated_value for a in allocations) == pytest.approx(0.1, abs=1e-12)
    assert abs(_total(actuals, allocations) - 3.1) <= 1e-6


def test_spread_daily_negative_delta() -> None:
    """A reconciled total below actuals gives negative allocations."""
    actuals = MonthlyActuals(total=200.0, daily={date(2025, 1, 1): 50.0, date(2025, 1, 2): 150.0})
    delta, allocations = allocate("spread_daily", 100.0, actuals, "2025-01")

    assert delta == -100.0
    assert allocations[0].allocated_value == pytest.approx(-25.0)
    assert allocations[1].allocated_value == pytest.approx(-75.0)


def test_spread_daily_zero_actuals_uses_captured_days() -> None:
    """With a zero actual the delta is spread evenly over captured days."""
    days = [date(2025, 1, 5), date(2025, 1, 6)]
    actuals = MonthlyActuals(total=0.0, daily={}, captured_days=days)
    allocations = spread_daily(50.0, actuals, "2025-01")

    assert [a.date for a in allocations] == days
    assert [a.allocated_value for a in allocations] == [25.0, 25.0]


def test_spread_daily_nothing_captured_uses_calendar() -> None:
    """With no shifts at all every calendar day gets an even share."""
    allocations = spread_daily(28.0, MonthlyActuals(), "2025-02")

    assert len(allocations) == 28
    assert allocations[0].date == date(2025, 2, 1)
    assert allocations[-1].date == date(2025, 2, 28)
    assert math.fsum(a.allocated_value for a in allocations) == pytest.approx(28.0)


def test_month_end_last_captured_day() -> None:
    """month_end puts the whole delta on the last captured day."""
    actuals = MonthlyActuals(
        total=10.0,
        daily={date(2025, 1, 3): 10.0},
        captured_days=[date(2025, 1, 3), date(2025, 1, 20)],
    )
    allocations = month_end(5.0, actuals, "2025-01")
    assert len(allocations) == 1
    assert allocations[0].date == date(2025, 1, 20)
    assert allocations[0].allocated_value == 5.0


def test_month_end_without_shifts_uses_last_calendar_day() -> None:
    """With nothing captured the delta lands on the month's last day."""
    allocations = month_end(5.0, MonthlyActuals(), "2024-02")
    assert allocations[0].date == date(2024, 2, 29)


def test_allocate_rejects_unknown_method() -> None:
    """Unknown allocation methods raise ValueError."""
    with pytest.raises(ValueError):
        allocate("weekly", 1.0, MonthlyActuals(), "2025-01")
