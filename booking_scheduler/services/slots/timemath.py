# booking_scheduler/services/slots/timemath.py
"""
Pure time helpers: local-day boundaries, "HH:MM" parsing, overlap test.

Day boundaries are resolved per date through zoneinfo, so DST days are
23 or 25 hours long instead of assuming a fixed offset.
"""

import re
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from ...errors import MalformedTime

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$")

Interval = tuple[int, int]


def day_key(dt: date) -> str:
    """Canonical day-key "YYYY-MM-DD"."""
    return dt.isoformat()


def parse_day_key(key: str) -> date:
    return date.fromisoformat(key)


def local_midnight(dt: date, tz: ZoneInfo) -> datetime:
    return datetime.combine(dt, time(0, 0), tzinfo=tz)


def day_bounds(dt: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """
    UTC instants of local 00:00 on dt and of the following day.

    Returns:
        (start_utc, end_utc), half-open.
    """
    start = local_midnight(dt, tz).astimezone(timezone.utc)
    end = local_midnight(dt + timedelta(days=1), tz).astimezone(timezone.utc)
    return start, end


def local_date(instant: datetime, tz: ZoneInfo) -> date:
    """Civil date of an instant in tz. Naive datetimes are taken as UTC."""
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(tz).date()


def time_str_to_minutes(value: str) -> int:
    """
    "HH:MM" → minutes since midnight.

    Raises:
        MalformedTime: value is not a well-formed 24h time.
    """
    if not isinstance(value, str):
        raise MalformedTime(value)
    match = _TIME_RE.match(value.strip())
    if not match:
        raise MalformedTime(value)
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise MalformedTime(value)
    return hour * 60 + minute


def minutes_to_time_str(minutes: int) -> str:
    """Minutes since midnight → "HH:MM"."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def minutes_since_local_midnight(instant: datetime, dt: date, tz: ZoneInfo) -> int:
    """
    Wall-clock minutes of instant relative to local 00:00 of dt.

    Instants on the previous/next local day give negative / >= 1440 values.
    """
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    local = instant.astimezone(tz)
    days = (local.date() - dt).days
    return days * 24 * 60 + local.hour * 60 + local.minute


def overlaps(a: Interval, b: Interval) -> bool:
    """Half-open overlap: touching endpoints do not overlap."""
    return a[0] < b[1] and b[0] < a[1]
