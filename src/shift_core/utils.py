"""Shared utilities for shift-core.

Month parsing and calendar helpers used by reconciliation and the bucket-factor
service, plus the slug used to name per-site documents.

Examples:
    >>> from shift_core.utils import month_days, parse_month
    >>> parse_month("2025-02")
    (2025, 2)
    >>> len(month_days("2025-02"))
    28
"""

from __future__ import annotations

import calendar
import math
import re
import unicodedata
from datetime import date, datetime

MONTH_RE = re.compile(r"^(?P<year>\d{4})-(?P<month>\d{2})$")


def parse_month(month_ym: str) -> tuple[int, int]:
    """Parse a YYYY-MM month string.

    Args:
        month_ym: Month string, e.g. "2025-01".

    Returns:
        (year, month) tuple.

    Raises:
        ValueError: If the string is not a valid YYYY-MM month.
    """
    m = MONTH_RE.match(str(month_ym or "").strip())
    if not m:
        raise ValueError(f"Invalid month '{month_ym}'. Expected YYYY-MM.")
    year = int(m.group("year"))
    month = int(m.group("month"))
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month '{month_ym}'. Month must be 01-12.")
    return year, month


def month_days(month_ym: str) -> list[date]:
    """Return every calendar day of a month, in order."""
    year, month = parse_month(month_ym)
    _, n_days = calendar.monthrange(year, month)
    return [date(year, month, d) for d in range(1, n_days + 1)]


def month_of(day: date) -> str:
    """Return the YYYY-MM month containing a date."""
    return f"{day.year:04d}-{day.month:02d}"


def parse_date(s: str | date) -> date:
    """Parse a date string in YYYY-MM-DD format.

    Dates and datetimes pass through (datetimes are truncated to the day).

    Raises:
        ValueError: If the date string is not in YYYY-MM-DD format.
    """
    if isinstance(s, datetime):
        return s.date()
    if isinstance(s, date):
        return s
    return datetime.strptime(str(s).strip(), "%Y-%m-%d").date()


def is_finite_number(value: object) -> bool:
    """True for int/float values (not bools) that are finite."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def slugify(value: str) -> str:
    """Convert a string to a filesystem-friendly slug.

    Examples:
        >>> slugify("North Decline")
        'north-decline'
        >>> slugify("Mine_2")
        'mine_2'
    """
    value = unicodedata.normalize("NFKD", value)
    value = "".join(ch for ch in value if not unicodedata.combining(ch))
    value = re.sub(r"[^\w\s-]", "", value, flags=re.U).lower()
    value = re.sub(r"[-\s]+", "-", value, flags=re.U).strip("-_")
    return value or "unknown"
