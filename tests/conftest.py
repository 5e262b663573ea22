"""Shared fixtures: in-memory collaborators and a fast engine configuration."""
import asyncio
from datetime import date, datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

import pytest

from booking_scheduler.schemas import (
    Booking,
    BookingDraft,
    BookingStatus,
    DayOverride,
    DefaultWeeklySchedule,
    DurationOption,
    GroupDiscount,
    Location,
    Timeslot,
    Treatment,
)
from booking_scheduler.services.slots.config import BookingConfig

OSLO = ZoneInfo("Europe/Oslo")

# Monday
TODAY = date(2026, 10, 19)


def local_dt(day: date, hhmm: str) -> datetime:
    hour, minute = map(int, hhmm.split(":"))
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=OSLO)


def make_booking(
    booking_id: str,
    day: date,
    start: str,
    end: str,
    status: BookingStatus = BookingStatus.CONFIRMED,
    location: str = "loc-1",
) -> Booking:
    start_dt, end_dt = local_dt(day, start), local_dt(day, end)
    return Booking(
        id=booking_id,
        customer_ref="customer-1",
        date=day,
        duration=int((end_dt - start_dt).total_seconds() // 60),
        location=location,
        timeslot=Timeslot(start=start_dt, end=end_dt),
        price=500,
        status=status,
        treatment_ref="massage",
    )


def weekdays_schedule(start: str = "09:00", end: str = "17:00", location: str = "loc-1") -> DefaultWeeklySchedule:
    window = [{"start": start, "end": end, "location": location}]
    return DefaultWeeklySchedule(days={
        "monday": window,
        "tuesday": window,
        "wednesday": window,
        "thursday": window,
        "friday": window,
        "saturday": [],
    })


# ----------------------------------------------------------------------
# Fakes
# ----------------------------------------------------------------------

class FakeScheduleStore:
    def __init__(self, default: Optional[DefaultWeeklySchedule] = None):
        self.default = default
        self.overrides: dict[date, DayOverride] = {}
        self.fail = False
        self.calls = 0

    async def get_override(self, target_date: date) -> Optional[DayOverride]:
        self.calls += 1
        if self.fail:
            raise ConnectionError("schedule store unavailable")
        return self.overrides.get(target_date)

    async def get_default_weekly(self) -> Optional[DefaultWeeklySchedule]:
        return self.default

    async def set_default_weekly(self, schedule: DefaultWeeklySchedule) -> None:
        self.default = schedule

    async def set_override(self, override: DayOverride) -> None:
        self.overrides[override.date] = override

    async def delete_override(self, target_date: date) -> None:
        self.overrides.pop(target_date, None)

    async def list_overrides(self, start: date, end: date) -> list[DayOverride]:
        return list(self.overrides.values())


class FakeBookingStore:
    def __init__(self, bookings: list[Booking] | None = None):
        self.bookings: dict[str, Booking] = {b.id: b for b in bookings or []}
        self.created: list[BookingDraft] = []
        self.fail_create = False
        self.fail_find = False
        self._next_id = 1

    async def find_active_by_date_range(self, start_utc: datetime, end_utc: datetime) -> list[Booking]:
        if self.fail_find:
            raise ConnectionError("booking store unavailable")
        return [
            b for b in self.bookings.values()
            if b.status != BookingStatus.CANCELLED
            and start_utc <= b.timeslot.start.astimezone(timezone.utc) < end_utc
        ]

    async def create(self, draft: BookingDraft) -> str:
        if self.fail_create:
            raise ConnectionError("write rejected")
        booking_id = f"bk-{self._next_id}"
        self._next_id += 1
        self.created.append(draft)
        self.bookings[booking_id] = Booking(id=booking_id, **draft.model_dump())
        return booking_id

    async def set_status(self, booking_id: str, status: BookingStatus) -> None:
        booking = self.bookings[booking_id]
        self.bookings[booking_id] = booking.model_copy(update={"status": status})

    async def get(self, booking_id: str) -> Optional[Booking]:
        return self.bookings.get(booking_id)


class FakeTreatmentCatalog:
    def __init__(self, treatments: list[Treatment]):
        self.treatments = treatments

    async def list(self) -> list[Treatment]:
        return list(self.treatments)


class FakeLocationDirectory:
    def __init__(self, locations: list[Location]):
        self.locations = locations

    async def list(self) -> list[Location]:
        return list(self.locations)


class BlockingScheduleStore(FakeScheduleStore):
    """get_override waits on a gate; tracks concurrent callers."""

    def __init__(self, default: Optional[DefaultWeeklySchedule] = None):
        super().__init__(default)
        self.gate = asyncio.Event()
        self.active = 0
        self.max_active = 0

    async def get_override(self, target_date: date) -> Optional[DayOverride]:
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await self.gate.wait()
        finally:
            self.active -= 1
        return await super().get_override(target_date)


# ----------------------------------------------------------------------
# Fixtures
# ----------------------------------------------------------------------

@pytest.fixture
def config():
    return BookingConfig(
        timezone="Europe/Oslo",
        prefetch_safety_timeout_seconds=0.2,
        settle_delay_seconds=0,
        cancel_settle_delay_seconds=0,
    )


@pytest.fixture
def massage():
    return Treatment(
        id="massage",
        name="Massage",
        durations=[
            DurationOption(duration=30, price=500),
            DurationOption(duration=60, price=900),
        ],
        discounts=GroupDiscount(group_size_threshold=3, prices_by_effective_duration={"30": 400}),
    )


@pytest.fixture
def schedules():
    return FakeScheduleStore(default=weekdays_schedule())


@pytest.fixture
def bookings():
    return FakeBookingStore()


@pytest.fixture
def treatments(massage):
    return FakeTreatmentCatalog([massage])


@pytest.fixture
def locations():
    return FakeLocationDirectory([Location(id="loc-1", name="Oslo sentrum", city="Oslo")])
