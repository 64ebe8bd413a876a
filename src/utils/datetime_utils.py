"""
Datetime utilities for consistent timezone handling across the application.

All business logic runs on the clinic's local wall-clock time (UTC+7).
Dates exchanged over the API are calendar dates without a timezone.
"""

import calendar
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterator, Optional, Tuple

# Clinic timezone constant (UTC+7, no daylight saving)
CLINIC_TZ = timezone(timedelta(hours=7))


def clinic_now() -> datetime:
    """
    Get current clinic datetime (UTC+7) as a naive wall-clock value.

    Stored timestamps are naive and represent clinic local time.
    """
    return datetime.now(CLINIC_TZ).replace(tzinfo=None)


def clinic_today() -> date:
    """Get today's date in the clinic timezone."""
    return datetime.now(CLINIC_TZ).date()


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    """Return the first and last instant (inclusive) of a calendar day."""
    return datetime.combine(day, time.min), datetime.combine(day, time.max)


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    """
    Return the first and last calendar date of a month.

    Raises:
        ValueError: If year or month is out of range
    """
    if year <= 0 or month < 1 or month > 12:
        raise ValueError("Invalid month or year")
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Yield every date from start to end, both inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def age_on(dob: date, today: date) -> int:
    """Age in whole years on the given day."""
    years = today.year - dob.year
    if (today.month, today.day) < (dob.month, dob.day):
        years -= 1
    return years


def format_date(value: Optional[date]) -> str:
    """Format a date for user-facing messages as DD/MM/YYYY."""
    if value is None:
        return ""
    return value.strftime("%d/%m/%Y")
