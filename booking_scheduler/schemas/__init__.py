from .availability import (
    BookedInterval,
    DayAvailability,
    DayOverride,
    DefaultWeeklySchedule,
    EventMarker,
    LocationAvailability,
    WorkWindow,
)
from .bookings import Booking, BookingDraft, BookingStatus, CustomerAddress, Identity, Timeslot
from .locations import Location
from .treatments import DurationOption, GroupDiscount, Treatment

__all__ = [
    "BookedInterval",
    "DayAvailability",
    "DayOverride",
    "DefaultWeeklySchedule",
    "EventMarker",
    "LocationAvailability",
    "WorkWindow",
    "Booking",
    "BookingDraft",
    "BookingStatus",
    "CustomerAddress",
    "Identity",
    "Timeslot",
    "Location",
    "DurationOption",
    "GroupDiscount",
    "Treatment",
]
