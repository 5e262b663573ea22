# booking_scheduler/services/slots/availability.py
"""
Day availability resolution.

Turns one calendar day into per-location offered slots.

Takes into account:
- Day override (authoritative, replaces the default weekly schedule)
- Event marker on the override (day is occupied, no slots)
- Default weekly schedule for the weekday
- Existing non-cancelled bookings, padded with the travel buffer
- Minimum treatment duration across the catalog

Lookups run in a fixed order: treatments, override, default schedule,
bookings. Slot generation starts only after all of them returned.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional

from ...errors import ConfigurationError, MalformedTime, ResolutionFailure
from ...schemas.availability import (
    BookedInterval,
    DayAvailability,
    LocationAvailability,
    WorkWindow,
)
from ...schemas.bookings import Booking, BookingStatus
from ..stores import BookingStore, ScheduleStore, TreatmentCatalog
from .calculator import generate_slots, minimum_treatment_duration
from .config import BookingConfig, get_booking_config
from .timemath import Interval, day_bounds, minutes_since_local_midnight

logger = logging.getLogger(__name__)


class AvailabilityResolver:
    """Resolves DayAvailability for one day. Stateless apart from its collaborators."""

    def __init__(
        self,
        schedules: ScheduleStore,
        bookings: BookingStore,
        treatments: TreatmentCatalog,
        config: BookingConfig | None = None,
    ):
        self.schedules = schedules
        self.bookings = bookings
        self.treatments = treatments
        self.config = config or get_booking_config()

    async def resolve_day(self, target_date: date) -> Optional[DayAvailability]:
        """
        Resolve availability for target_date.

        Returns:
            DayAvailability, or None when no default schedule exists at all
            (misconfiguration, distinct from a day off).

        Raises:
            ResolutionFailure: a collaborator lookup failed. Not retried here.
        """
        zone = self.config.zone

        # Step 1: Day bounds
        start_utc, end_utc = day_bounds(target_date, zone)

        min_duration = await self._min_duration(target_date)

        # Step 2: Override for this day
        override = await self._call(target_date, self.schedules.get_override(target_date))

        if override is not None:
            logger.info(f"Override found for {target_date}")
            if override.event is not None:
                return DayAvailability.empty(event=override.event)
            windows = override.windows
        else:
            # Step 3: Default weekly schedule
            try:
                windows = await self._default_windows(target_date)
            except ConfigurationError:
                logger.warning(f"No default schedule configured, cannot resolve {target_date}")
                return None

        if not windows:
            logger.info(f"No work windows for {target_date} (day off)")
            return DayAvailability.empty()

        # Step 4: Bookings of the day
        bookings = await self._call(
            target_date,
            self.bookings.find_active_by_date_range(start_utc, end_utc),
        )
        intervals = booked_intervals(bookings, self.config.travel_buffer_minutes)
        ranges: list[Interval] = [
            (
                minutes_since_local_midnight(interval.start, target_date, zone),
                minutes_since_local_midnight(interval.end, target_date, zone),
            )
            for interval in intervals
        ]

        # Step 5: Slots per window
        per_location: list[LocationAvailability] = []
        for window in windows:
            if not window.is_complete:
                continue
            try:
                slots = generate_slots(
                    window,
                    ranges,
                    self.config.slot_step_minutes,
                    min_duration,
                )
            except MalformedTime as e:
                logger.warning(f"Dropping work window at {window.location!r} on {target_date}: {e}")
                continue

            if slots:
                per_location.append(LocationAvailability(
                    location=window.location,
                    window=window,
                    offered_slots=slots,
                ))

        logger.info(
            f"Resolved {target_date}: {len(per_location)} location(s), "
            f"{len(intervals)} booked interval(s)"
        )
        return DayAvailability(per_location=per_location)

    # ── Helpers ──────────────────────────────────────────────────────────

    async def _min_duration(self, target_date: date) -> int:
        treatments = await self._call(target_date, self.treatments.list())
        return minimum_treatment_duration(treatments, self.config.default_min_duration_minutes)

    async def _default_windows(self, target_date: date) -> list[WorkWindow]:
        schedule = await self._call(target_date, self.schedules.get_default_weekly())
        if schedule is None:
            raise ConfigurationError("No default weekly schedule found")

        windows = schedule.windows_for(target_date)
        if windows is None:
            logger.info(f"Default schedule has no entry for {target_date:%A}")
            return []
        return windows

    @staticmethod
    async def _call(target_date: date, awaitable):
        """Await a collaborator call, wrapping its failure as ResolutionFailure."""
        try:
            return await awaitable
        except ResolutionFailure:
            raise
        except Exception as e:
            raise ResolutionFailure(target_date, e) from e


def booked_intervals(bookings: list[Booking], travel_buffer_minutes: int) -> list[BookedInterval]:
    """
    Booked intervals of active bookings, end padded with the travel buffer.

    Cancelled bookings are skipped, duplicates (same id) counted once.
    """
    seen: set[str] = set()
    buffer = timedelta(minutes=travel_buffer_minutes)
    result: list[BookedInterval] = []

    for booking in bookings:
        if booking.status == BookingStatus.CANCELLED:
            continue
        if booking.id in seen:
            continue
        seen.add(booking.id)

        start: datetime = booking.timeslot.start
        end: datetime = booking.timeslot.end
        result.append(BookedInterval(start=start, end=end + buffer))

    return result
