# booking_scheduler/services/slots/day_cache.py
"""
In-memory storage of resolved days.

Key format: "YYYY-MM-DD" (day-key in the provider's time zone)
Value: DayAvailability, or None for "attempted, nothing to show".

A missing key means "never attempted"; that distinction drives the
prefetcher. Clearing a day deletes the key, it never stores an empty value.

The in-flight map holds a future per day-key currently being resolved:
a second caller awaits it instead of resolving the same day again. Every
clear bumps the day's epoch, so a resolution that started before the
clear is dropped instead of writing an outdated result.

All mutation happens on the event loop thread between awaits, so the
maps themselves need no lock.
"""

import asyncio
from datetime import date
from typing import Iterable, Optional

from ...schemas.availability import DayAvailability
from .timemath import day_key


class DayAvailabilityCache:
    """Day-key → DayAvailability | None, plus in-flight futures and clear epochs."""

    def __init__(self):
        self._entries: dict[str, Optional[DayAvailability]] = {}
        self._in_flight: dict[str, asyncio.Future] = {}
        self._epochs: dict[str, int] = {}
        self._generation = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, dt: date) -> bool:
        return self.has(dt)

    # ── Read ─────────────────────────────────────────────────────────────

    def has(self, dt: date) -> bool:
        """True once the day was attempted (even if it resolved to nothing)."""
        return day_key(dt) in self._entries

    def get(self, dt: date) -> Optional[DayAvailability]:
        """
        Cached value for a day.

        Returns:
            DayAvailability, or None on cache miss AND for negative entries.
            Use has() to tell them apart.
        """
        return self._entries.get(day_key(dt))

    def snapshot(self, dates: Iterable[date] | None = None) -> dict[str, Optional[DayAvailability]]:
        """Copy of the cached entries, optionally limited to dates."""
        if dates is None:
            return dict(self._entries)
        keys = {day_key(dt) for dt in dates}
        return {k: v for k, v in self._entries.items() if k in keys}

    # ── Write ────────────────────────────────────────────────────────────

    def store(self, dt: date, result: Optional[DayAvailability]) -> None:
        self._entries[day_key(dt)] = result

    # ── Delete ───────────────────────────────────────────────────────────

    def clear_day(self, dt: date) -> bool:
        """
        Remove a day so the next access is a fresh miss.

        Also bumps the day's epoch, so a resolution already running for it
        is not committed.
        """
        key = day_key(dt)
        self._epochs[key] = self._epochs.get(key, 0) + 1
        return self._entries.pop(key, _MISSING) is not _MISSING

    def clear_days(self, dates: Iterable[date]) -> int:
        """
        Remove several days.

        Returns:
            Number of removed keys.
        """
        return sum(1 for dt in dates if self.clear_day(dt))

    def clear_all(self) -> int:
        count = len(self._entries)
        self._entries.clear()
        self._generation += 1
        return count

    def epoch(self, dt: date) -> tuple[int, int]:
        """Changes whenever the day (or the whole cache) is cleared."""
        return self._generation, self._epochs.get(day_key(dt), 0)

    # ── In-flight ────────────────────────────────────────────────────────

    def begin(self, dt: date) -> bool:
        """
        Mark a day as being resolved. Must run on the event loop.

        Returns:
            False if another resolution for this day is already running.
        """
        key = day_key(dt)
        if key in self._in_flight:
            return False
        self._in_flight[key] = asyncio.get_running_loop().create_future()
        return True

    def finish(self, dt: date, outcome=None) -> None:
        """End a resolution and hand its outcome (None = nothing stored) to waiters."""
        waiter = self._in_flight.pop(day_key(dt), None)
        if waiter is not None and not waiter.done():
            waiter.set_result(outcome)

    def waiter(self, dt: date) -> Optional[asyncio.Future]:
        """Future of the running resolution for dt, if any."""
        return self._in_flight.get(day_key(dt))

    def is_in_flight(self, dt: date) -> bool:
        return day_key(dt) in self._in_flight

    @property
    def in_flight_count(self) -> int:
        return len(self._in_flight)


_MISSING = object()
