"""Tests for shared month, date and slug helpers."""

from datetime import date, datetime

import pytest

from shift_core.utils import is_finite_number, month_days, month_of, parse_date, parse_month, slugify


def test_parse_month() -> None:
    """YYYY-MM strings parse to (year, month)."""
    assert parse_month("2025-01") == (2025, 1)
    assert parse_month(" 2024-12 ") == (2024, 12)


@pytest.mark.parametrize("bad", ["2025-13", "2025-00", "2025-1", "25-01", "", None, "2025-01-01"])
def test_parse_month_invalid(bad) -> None:
    """Malformed months raise ValueError."""
    with pytest.raises(ValueError, match="Invalid month"):
        parse_month(bad)


def test_month_days() -> None:
    """month_days lists every calendar day, leap years included."""
    assert len(month_days("2024-02")) == 29
    assert len(month_days("2025-02")) == 28
    days = month_days("2025-01")
    assert days[0] == date(2025, 1, 1)
    assert days[-1] == date(2025, 1, 31)


def test_month_of() -> None:
    """month_of formats the containing month."""
    assert month_of(date(2025, 3, 9)) == "2025-03"


def test_parse_date() -> None:
    """Strings, dates and datetimes all parse to a date."""
    assert parse_date("2025-01-05") == date(2025, 1, 5)
    assert parse_date(date(2025, 1, 5)) == date(2025, 1, 5)
    assert parse_date(datetime(2025, 1, 5, 18, 30)) == date(2025, 1, 5)
    with pytest.raises(ValueError):
        parse_date("2025/01/05")


def test_is_finite_number() -> None:
    """Only finite non-bool numbers pass."""
    assert is_finite_number(3)
    assert is_finite_number(-2.5)
    assert not is_finite_number(True)
    assert not is_finite_number("3")
    assert not is_finite_number(float("nan"))
    assert not is_finite_number(float("-inf"))


def test_slugify() -> None:
    """Site names become filesystem-friendly slugs."""
    assert slugify("North Decline") == "north-decline"
    assert slugify("Mine_2") == "mine_2"
    assert slugify("Bärenbach  West") == "barenbach-west"
    assert slugify("???") == "unknown"
