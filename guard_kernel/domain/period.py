"""
Period -- calendar-month helpers shared by both ledgers.

Every ledger record is keyed by an explicit (year, month).  Periods are
never derived from the wall clock.
"""

from __future__ import annotations

import calendar
from datetime import date, timedelta

from guard_kernel.exceptions import ValidationError

MIN_YEAR = 2000
MAX_YEAR = 2100


def validate_period(year: int, month: int) -> tuple[int, int]:
    """Return (year, month) as ints or raise ValidationError."""
    if isinstance(year, bool) or not isinstance(year, int):
        raise ValidationError("year", year, "must be an integer")
    if isinstance(month, bool) or not isinstance(month, int):
        raise ValidationError("month", month, "must be an integer")
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise ValidationError("year", year, f"must be in [{MIN_YEAR}, {MAX_YEAR}]")
    if not 1 <= month <= 12:
        raise ValidationError("month", month, "must be in [1, 12]")
    return year, month


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last calendar day of the month."""
    validate_period(year, month)
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def date_string(on: date) -> str:
    """``YYYY-MM-DD`` key used for roster cells."""
    return on.isoformat()


def days_between(start: date, end: date) -> list[date]:
    """Every day from ``start`` through ``end`` inclusive."""
    if end < start:
        raise ValidationError("end", end, "must not be before start")
    return [start + timedelta(days=i) for i in range((end - start).days + 1)]
