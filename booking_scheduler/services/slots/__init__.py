# booking_scheduler/services/slots/__init__.py
"""
Slots calculation module.

Level 1: Day availability per location (cached in memory per day-key)
Level 2: Month prefetch (bounded background warming of Level 1)
"""

from .config import BookingConfig, get_booking_config
from .calculator import generate_slots, minimum_treatment_duration
from .availability import AvailabilityResolver, booked_intervals
from .day_cache import DayAvailabilityCache
from .loader import DayLoader, LoadOutcome, LoadStatus
from .invalidator import invalidate_days, invalidate_month
from .prefetcher import MonthPrefetcher

__all__ = [
    "BookingConfig",
    "get_booking_config",
    "generate_slots",
    "minimum_treatment_duration",
    "AvailabilityResolver",
    "booked_intervals",
    "DayAvailabilityCache",
    "DayLoader",
    "LoadOutcome",
    "LoadStatus",
    "invalidate_days",
    "invalidate_month",
    "MonthPrefetcher",
]
