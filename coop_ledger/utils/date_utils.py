"""Date manipulation utilities"""

import calendar
from datetime import date, datetime, timezone
from typing import Tuple


def utcnow() -> datetime:
    """Default clock for services"""
    return datetime.now(timezone.utc)


def add_months(from_date: date, months: int) -> date:
    """Add calendar months, clamping to the last day of the target month (Jan 31 + 1 -> Feb 28/29)"""
    month_index = from_date.month - 1 + months
    year = from_date.year + month_index // 12
    month = month_index % 12 + 1
    day = min(from_date.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    """First and last day of a month (inclusive)"""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)
