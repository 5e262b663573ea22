# booking_scheduler/services/session.py
"""
Booking state machine for one customer.

Flow:
1. BROWSING          month visible, prefetch warming the cache
2. DATE_SELECTED     day clicked (loaded on demand if not cached)
3. SLOT_SELECTED     time + location picked
4. DETAILS_ENTERED   treatment, duration, group, address, guest details
5. CONFIRMED         booking created → settle delay → day refreshed

back() steps 4 → 3 → 2, cancel_selection() returns to 2.
close_confirmation() resets to 1 and reloads the whole visible month.
"""

import asyncio
import logging
import uuid
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Callable, Optional

from ..errors import BookingCommitError, BookingValidationError, IdentityRequired, MalformedTime
from ..schemas.availability import DayAvailability, EventMarker, LocationAvailability
from ..schemas.bookings import BookingDraft, BookingStatus, CustomerAddress, Identity, Timeslot
from ..schemas.locations import Location
from ..schemas.treatments import Treatment
from .pricing import quote
from .slots.availability import AvailabilityResolver, booked_intervals
from .slots.config import BookingConfig, get_booking_config
from .slots.day_cache import DayAvailabilityCache
from .slots.invalidator import get_affected_dates, month_bounds
from .slots.loader import DayLoader, LoadOutcome, LoadStatus
from .slots.prefetcher import MonthPrefetcher
from .slots.timemath import (
    day_bounds,
    local_date,
    minutes_since_local_midnight,
    overlaps,
    time_str_to_minutes,
)
from .stores import BookingStore, LocationDirectory, ScheduleStore, TreatmentCatalog

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    BROWSING = "browsing"
    DATE_SELECTED = "date_selected"
    SLOT_SELECTED = "slot_selected"
    DETAILS_ENTERED = "details_entered"
    CONFIRMED = "confirmed"


class SchedulingSession:
    """Selection, confirmation and post-booking refresh for one customer."""

    def __init__(
        self,
        schedules: ScheduleStore,
        bookings: BookingStore,
        treatments: TreatmentCatalog,
        locations: LocationDirectory,
        config: BookingConfig | None = None,
        identity: Identity | None = None,
        cache: DayAvailabilityCache | None = None,
        today: Callable[[], date] | None = None,
    ):
        self.config = config or get_booking_config()
        self.bookings = bookings
        self.treatment_catalog = treatments
        self.location_directory = locations
        self.identity = identity
        self._today = today or (lambda: datetime.now(self.config.zone).date())

        self.cache = cache if cache is not None else DayAvailabilityCache()
        self.resolver = AvailabilityResolver(schedules, bookings, treatments, self.config)
        self.loader = DayLoader(self.resolver, self.cache)
        self.prefetcher = MonthPrefetcher(self.loader, self.config, self._today)

        self.treatments: list[Treatment] = []
        self.locations: list[Location] = []
        self.visible_month: Optional[date] = None

        self.state = SessionState.BROWSING
        self.selected_date: Optional[date] = None
        self.selected_time: Optional[str] = None
        self.selected_location: Optional[str] = None
        self.date_manually_selected = False
        self.location_slots: list[LocationAvailability] = []
        self.event: Optional[EventMarker] = None
        self.is_loading = False
        self.loading_date: Optional[date] = None

        self.is_group = False
        self.group_size = 1
        self.selected_treatment: Optional[Treatment] = None
        self.selected_duration: Optional[int] = None

        self.address: Optional[CustomerAddress] = None
        self.is_guest = False
        self.guest_name = ""
        self.guest_email = ""
        self.guest_phone = ""
        self.customer_message = ""
        self.awaiting_identity = False

        self.show_completed = False
        self.completed_booking_id: Optional[str] = None
        self.last_error: Optional[str] = None
        self.refresh_task: Optional[asyncio.Task] = None

    # ==========================================================
    # Lifecycle
    # ==========================================================

    async def start(self) -> Optional[asyncio.Task]:
        """Load catalog data, then start warming the current month."""
        self.treatments, self.locations = await asyncio.gather(
            self.treatment_catalog.list(),
            self.location_directory.list(),
        )
        logger.info(f"Loaded {len(self.treatments)} treatment(s), {len(self.locations)} location(s)")
        return self.change_visible_month(self._today())

    async def aclose(self) -> None:
        await self.prefetcher.aclose()
        if self.refresh_task is not None and not self.refresh_task.done():
            self.refresh_task.cancel()
            await asyncio.gather(self.refresh_task, return_exceptions=True)

    # ==========================================================
    # Read-only state
    # ==========================================================

    @property
    def initial_loaded(self) -> bool:
        return self.prefetcher.initial_loaded

    def visible_month_snapshot(self) -> dict[str, Optional[DayAvailability]]:
        """Cached entries of the visible month (absent keys were never attempted)."""
        if self.visible_month is None:
            return {}
        return self.cache.snapshot(get_affected_dates(*month_bounds(self.visible_month)))

    # ==========================================================
    # Navigation / selection
    # ==========================================================

    def change_visible_month(self, month: date) -> Optional[asyncio.Task]:
        self.visible_month = month.replace(day=1)
        return self.prefetcher.load_month(month)

    async def select_date(self, target_date: date, preview_only: bool = False) -> None:
        """
        Select a day (or only warm it when preview_only, e.g. on hover).

        A committed selection clears time/location. The day is resolved only
        when it is not cached yet, outside the prefetch concurrency limit.
        """
        if not preview_only:
            self.selected_date = target_date
            self.selected_time = None
            self.selected_location = None
            self.date_manually_selected = True
            self.state = SessionState.DATE_SELECTED

        if not self.cache.has(target_date):
            if not preview_only:
                self.is_loading = True
                self.loading_date = target_date
            try:
                await self.loader.load(target_date)
            finally:
                if not preview_only and self.loading_date == target_date:
                    self.is_loading = False
                    self.loading_date = None

        if self.selected_date == target_date:
            self._show_day(target_date)

    def select_slot(self, time_str: str, location: str) -> None:
        if self.selected_date is None or not self.cache.has(self.selected_date):
            raise BookingValidationError("Please select a day first.")

        day = self.cache.get(self.selected_date)
        if day is None or all(loc.location != location for loc in day.per_location):
            raise BookingValidationError("The selected location has no availability that day.")

        self.selected_time = time_str
        self.selected_location = location
        self.state = SessionState.SLOT_SELECTED

    def back(self) -> None:
        if self.state == SessionState.DETAILS_ENTERED:
            self.state = SessionState.SLOT_SELECTED
        elif self.state == SessionState.SLOT_SELECTED:
            self.selected_time = None
            self.selected_location = None
            self.state = SessionState.DATE_SELECTED

    def cancel_selection(self) -> Optional[asyncio.Task]:
        """Drop time/location, keep the day and refresh it after a short delay."""
        self.selected_time = None
        self.selected_location = None
        if self.selected_date is None:
            self.state = SessionState.BROWSING
            return None

        self.state = SessionState.DATE_SELECTED
        self.refresh_task = asyncio.create_task(
            self.refresh_day(self.selected_date, delay=self.config.cancel_settle_delay_seconds)
        )
        return self.refresh_task

    # ==========================================================
    # Details
    # ==========================================================

    def set_group_mode(self, is_group: bool) -> None:
        self.is_group = is_group
        self._details_changed()

    def set_group_size(self, size: int) -> None:
        self.group_size = size
        self._details_changed()

    def set_treatment(self, treatment_id: Optional[str]) -> None:
        if treatment_id is None:
            self.selected_treatment = None
        else:
            treatment = next((t for t in self.treatments if t.id == treatment_id), None)
            if treatment is None:
                raise BookingValidationError(f"Unknown treatment: {treatment_id}")
            self.selected_treatment = treatment
        self._details_changed()

    def set_duration(self, minutes: Optional[int]) -> None:
        self.selected_duration = minutes
        self._details_changed()

    def set_address(self, address: str, city: str, postal_code: Optional[int]) -> None:
        if address and city and postal_code:
            self.address = CustomerAddress(address=address, city=city, postal_code=postal_code)
        else:
            self.address = None
        self._details_changed()

    def set_guest_details(self, name: str, email: str, phone: str) -> None:
        self.guest_name = name
        self.guest_email = email
        self.guest_phone = phone
        self._details_changed()

    def set_customer_message(self, message: str) -> None:
        self.customer_message = message
        self._details_changed()

    # Identity prompt

    def sign_in(self, identity: Identity) -> None:
        self.identity = identity
        self.is_guest = False
        self.awaiting_identity = False

    def continue_as_guest(self) -> None:
        self.awaiting_identity = False
        self.is_guest = True

    def close_guest_prompt(self) -> None:
        self.awaiting_identity = False

    def _details_changed(self) -> None:
        if self.state == SessionState.SLOT_SELECTED:
            self.state = SessionState.DETAILS_ENTERED

    # ==========================================================
    # Confirm
    # ==========================================================

    async def confirm(self) -> str:
        """
        Create the booking.

        Returns:
            Booking id. The day refresh runs in the background (refresh_task).

        Raises:
            IdentityRequired: not logged in and not booking as guest
            BookingValidationError: missing / inconsistent details
            BookingCommitError: BookingStore.create failed
        """
        self.last_error = None

        if self.state == SessionState.CONFIRMED:
            raise BookingValidationError("This booking is already confirmed.")

        if self.identity is None and not self.is_guest:
            self.awaiting_identity = True
            raise IdentityRequired("Log in or continue as guest to book.")

        try:
            draft = self._build_draft()
        except BookingValidationError as e:
            self.last_error = str(e)
            raise

        self.state = SessionState.DETAILS_ENTERED

        try:
            await self._check_still_free(draft)
        except BookingValidationError as e:
            self.last_error = str(e)
            raise

        logger.info(
            f"Creating booking on {draft.date} at {self.selected_time} "
            f"({draft.duration} min, {draft.location})"
        )
        try:
            booking_id = await self.bookings.create(draft)
        except Exception as e:
            logger.exception("Error creating booking")
            self.last_error = "Something went wrong while creating the booking, please try again."
            raise BookingCommitError(self.last_error) from e

        self.state = SessionState.CONFIRMED
        self.completed_booking_id = booking_id
        self.show_completed = True
        logger.info(f"Booking {booking_id} created")

        self.refresh_task = asyncio.create_task(self.refresh_day(draft.date))
        return booking_id

    def _build_draft(self) -> BookingDraft:
        if (
            self.selected_date is None
            or not self.selected_time
            or self.selected_treatment is None
            or not self.selected_location
        ):
            raise BookingValidationError("Please fill in all booking details.")

        if self.is_guest and not (self.guest_email and self.guest_name and self.guest_phone):
            raise BookingValidationError("Please fill in name, email and phone.")

        if self.address is None:
            raise BookingValidationError("Please fill in your address, city and postal code.")

        price = quote(
            self.selected_treatment,
            self.selected_duration,
            is_group=self.is_group,
            group_size=self.group_size,
        )

        try:
            start_min = time_str_to_minutes(self.selected_time)
        except MalformedTime:
            raise BookingValidationError(f"Invalid time: {self.selected_time}")
        start = datetime.combine(self.selected_date, datetime.min.time(), tzinfo=self.config.zone)
        start += timedelta(minutes=start_min)
        end = start + timedelta(minutes=price.duration)

        if self.is_guest:
            customer_ref = f"guest_{uuid.uuid4().hex}"
            name, email, phone = self.guest_name, self.guest_email, self.guest_phone
        else:
            customer_ref = self.identity.uid
            name, email, phone = self.identity.display_name, self.identity.email, self.identity.phone

        return BookingDraft(
            customer_ref=customer_ref,
            customer_email=email,
            customer_name=name,
            customer_phone=phone,
            date=self.selected_date,
            duration=price.duration,
            location=self.selected_location,
            address=self.address,
            timeslot=Timeslot(start=start, end=end),
            price=price.price,
            status=BookingStatus.PENDING,
            treatment_ref=self.selected_treatment.id,
            is_guest=self.is_guest,
            customer_message=self.customer_message,
        )

    async def _check_still_free(self, draft: BookingDraft) -> None:
        """Full-duration check; slots were only generated for the shortest treatment."""
        start_utc, end_utc = day_bounds(draft.date, self.config.zone)
        try:
            existing = await self.bookings.find_active_by_date_range(start_utc, end_utc)
        except Exception as e:
            logger.exception(f"Could not re-check bookings for {draft.date}")
            self.last_error = "Something went wrong while creating the booking, please try again."
            raise BookingCommitError(self.last_error) from e

        zone = self.config.zone
        span = (
            minutes_since_local_midnight(draft.timeslot.start, draft.date, zone),
            minutes_since_local_midnight(draft.timeslot.end, draft.date, zone),
        )
        for interval in booked_intervals(existing, self.config.travel_buffer_minutes):
            booked = (
                minutes_since_local_midnight(interval.start, draft.date, zone),
                minutes_since_local_midnight(interval.end, draft.date, zone),
            )
            if overlaps(span, booked):
                raise BookingValidationError(
                    "The selected time is no longer available for this duration."
                )

    # ==========================================================
    # Post-booking
    # ==========================================================

    async def refresh_day(self, target_date: date, delay: float | None = None) -> Optional[LoadOutcome]:
        """
        Wait for the backing store to settle, drop the cached day and resolve it again.

        Failures are logged and swallowed: the previously displayed slots stay.
        """
        delay = self.config.settle_delay_seconds if delay is None else delay
        try:
            if delay:
                await asyncio.sleep(delay)
            self.cache.clear_day(target_date)
            logger.info(f"Refreshing availability for {target_date}")
            outcome = await self.loader.load(target_date)
        except Exception:
            logger.exception(f"Failed to refresh availability for {target_date}")
            return None

        if outcome.status == LoadStatus.LOADED:
            if self.selected_date == target_date:
                self._show_day(target_date)
        else:
            logger.warning(f"Refresh of {target_date} ended {outcome.status.value}, keeping displayed slots")
        return outcome

    async def cancel(self, booking_id: str) -> None:
        """Cancel a booking (status flip, never delete) and refresh its day."""
        booking = await self.bookings.get(booking_id)
        if booking is None:
            raise BookingValidationError(f"Booking {booking_id} not found.")

        await self.bookings.set_status(booking_id, BookingStatus.CANCELLED)
        logger.info(f"Booking {booking_id} cancelled")

        target_date = local_date(booking.timeslot.start, self.config.zone)
        await self.refresh_day(target_date, delay=self.config.cancel_settle_delay_seconds)

    def close_confirmation(self) -> Optional[asyncio.Task]:
        """Reset the form and reload the whole visible month."""
        booked_date = self.selected_date

        self.show_completed = False
        self.completed_booking_id = None
        self.selected_time = None
        self.selected_date = None
        self.selected_location = None
        self.selected_treatment = None
        self.selected_duration = None
        self.is_group = False
        self.group_size = 1
        self.date_manually_selected = False
        self.customer_message = ""
        self.location_slots = []
        self.event = None
        self.last_error = None
        self.state = SessionState.BROWSING

        if booked_date is not None:
            self.cache.clear_day(booked_date)
        return self.change_visible_month(self.visible_month or self._today())

    # ==========================================================
    # Helpers
    # ==========================================================

    def _show_day(self, target_date: date) -> None:
        day = self.cache.get(target_date)
        if day is None:
            self.location_slots = []
            self.event = None
        else:
            self.location_slots = list(day.per_location)
            self.event = day.event
