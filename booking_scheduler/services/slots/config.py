# booking_scheduler/services/slots/config.py
"""
Booking configuration for slots calculation, prefetch and refresh.
"""

from dataclasses import dataclass
from functools import lru_cache
from zoneinfo import ZoneInfo

from ...config import settings


@dataclass(frozen=True)
class BookingConfig:
    """
    Configuration for the scheduling engine.

    Attributes:
        timezone: IANA zone of the provider (day boundaries, work hours)
        slot_step_minutes: Candidate start grid (15/30/60)
        travel_buffer_minutes: Padding added to the end of every booking
        default_min_duration_minutes: Used when no treatment publishes a duration
        prefetch_batch_size: Max concurrent day resolutions issued by the prefetcher
        prefetch_safety_timeout_seconds: Budget before initial load is forced
        settle_delay_seconds: Wait after booking create before refresh
        cancel_settle_delay_seconds: Wait after cancellation before refresh
    """
    timezone: str = "Europe/Oslo"
    slot_step_minutes: int = 15
    travel_buffer_minutes: int = 15
    default_min_duration_minutes: int = 30
    prefetch_batch_size: int = 5
    prefetch_safety_timeout_seconds: float = 5.0
    settle_delay_seconds: float = 2.0
    cancel_settle_delay_seconds: float = 1.0

    def __post_init__(self):
        """Validate configuration."""
        if self.slot_step_minutes not in (15, 30, 60):
            raise ValueError(f"slot_step_minutes must be 15, 30, or 60, got {self.slot_step_minutes}")
        if self.prefetch_batch_size < 1:
            raise ValueError(f"prefetch_batch_size must be >= 1, got {self.prefetch_batch_size}")
        if self.travel_buffer_minutes < 0:
            raise ValueError(f"travel_buffer_minutes must be >= 0, got {self.travel_buffer_minutes}")
        for name in ("prefetch_safety_timeout_seconds", "settle_delay_seconds", "cancel_settle_delay_seconds"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0")
        # Fails early on unknown zones
        ZoneInfo(self.timezone)

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


@lru_cache
def get_booking_config() -> BookingConfig:
    """
    Get booking configuration (singleton), read from Settings / environment.
    """
    return BookingConfig(
        timezone=settings.timezone,
        slot_step_minutes=settings.slot_step_minutes,
        travel_buffer_minutes=settings.travel_buffer_minutes,
        default_min_duration_minutes=settings.default_min_duration_minutes,
        prefetch_batch_size=settings.prefetch_batch_size,
        prefetch_safety_timeout_seconds=settings.prefetch_safety_timeout_seconds,
        settle_delay_seconds=settings.settle_delay_seconds,
        cancel_settle_delay_seconds=settings.cancel_settle_delay_seconds,
    )
