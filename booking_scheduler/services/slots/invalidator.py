# booking_scheduler/services/slots/invalidator.py
"""
Cache invalidation for resolved days.

Triggers:
✓ Booking created/cancelled → invalidate that day
✓ Booking confirmation closed → invalidate the visible month
✓ Visible month changed → invalidate the month (from today forward)
✓ Override created/deleted → invalidate that day
✓ Default weekly schedule changed → invalidate everything
"""

import calendar
from datetime import date, timedelta

from .day_cache import DayAvailabilityCache


def get_affected_dates(
    date_start: date,
    date_end: date,
) -> list[date]:
    """
    Get list of dates in range [date_start, date_end].

    Args:
        date_start: Start date (inclusive)
        date_end: End date (inclusive)

    Returns:
        List of dates
    """
    if date_start > date_end:
        date_start, date_end = date_end, date_start

    dates = []
    current = date_start
    while current <= date_end:
        dates.append(current)
        current += timedelta(days=1)

    return dates


def month_bounds(month: date) -> tuple[date, date]:
    """First and last day of month's calendar month."""
    last = calendar.monthrange(month.year, month.month)[1]
    return month.replace(day=1), month.replace(day=last)


def visible_month_dates(month: date, today: date) -> list[date]:
    """
    Days of month from today forward. Past days are never loaded.

    Returns:
        Empty list when the whole month is in the past.
    """
    month_start, month_end = month_bounds(month)
    start = max(today, month_start)
    if start > month_end:
        return []
    return get_affected_dates(start, month_end)


def current_week_first(dates: list[date], today: date) -> list[date]:
    """Reorder dates: up to Sunday of today's week first, then the rest, each by date."""
    end_of_week = today + timedelta(days=6 - today.weekday())
    return sorted(dates, key=lambda dt: (dt > end_of_week, dt))


def invalidate_days(cache: DayAvailabilityCache, dates: list[date]) -> int:
    """
    Invalidate cached days.

    Returns:
        Number of deleted cache keys
    """
    return cache.clear_days(dates)


def invalidate_month(cache: DayAvailabilityCache, month: date, today: date) -> int:
    """Invalidate every visible day of month."""
    return cache.clear_days(visible_month_dates(month, today))
