"""Collaborator contracts consumed by the engine. Implementations live outside (see utils.api)."""
from datetime import date, datetime
from typing import Optional, Protocol

from ..schemas.availability import DayOverride, DefaultWeeklySchedule
from ..schemas.bookings import Booking, BookingDraft, BookingStatus
from ..schemas.locations import Location
from ..schemas.treatments import Treatment


class ScheduleStore(Protocol):
    async def get_override(self, target_date: date) -> Optional[DayOverride]:
        """Override for the local day, or None."""
        ...

    async def get_default_weekly(self) -> Optional[DefaultWeeklySchedule]:
        """Default weekly schedule, or None when never configured."""
        ...


class ScheduleAdminStore(ScheduleStore, Protocol):
    """Write side used by the admin surface."""

    async def set_default_weekly(self, schedule: DefaultWeeklySchedule) -> None:
        ...

    async def set_override(self, override: DayOverride) -> None:
        ...

    async def delete_override(self, target_date: date) -> None:
        ...

    async def list_overrides(self, start: date, end: date) -> list[DayOverride]:
        ...


class BookingStore(Protocol):
    async def find_active_by_date_range(self, start_utc: datetime, end_utc: datetime) -> list[Booking]:
        """Non-cancelled bookings whose timeslot.start is in [start_utc, end_utc)."""
        ...

    async def create(self, draft: BookingDraft) -> str:
        """Persist a booking, returns the server-assigned id."""
        ...

    async def set_status(self, booking_id: str, status: BookingStatus) -> None:
        ...

    async def get(self, booking_id: str) -> Optional[Booking]:
        ...


class TreatmentCatalog(Protocol):
    async def list(self) -> list[Treatment]:
        ...


class LocationDirectory(Protocol):
    async def list(self) -> list[Location]:
        ...
