from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Optional

from dateutil.relativedelta import relativedelta


def parse_iso_date(value: object) -> Optional[date]:
    """Parse an ISO calendar date; missing or malformed values yield None."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        return None


def shift_years(day: date, years: int) -> date:
    # relativedelta clamps Feb 29 to Feb 28 in non-leap years.
    return day + relativedelta(years=years)


def add_days(day: date, days: int) -> date:
    return day + timedelta(days=days)


def format_long(day: date) -> str:
    return day.strftime("%d %b %Y")
