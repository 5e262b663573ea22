"""Tests for settings and booking configuration."""
from zoneinfo import ZoneInfoNotFoundError

import pytest

from booking_scheduler.config import Settings
from booking_scheduler.services.slots.config import BookingConfig, get_booking_config


class TestBookingConfig:
    def test_defaults(self):
        config = BookingConfig()
        assert config.slot_step_minutes == 15
        assert config.travel_buffer_minutes == 15
        assert config.prefetch_batch_size == 5
        assert config.zone.key == "Europe/Oslo"

    @pytest.mark.parametrize("kwargs", [
        {"slot_step_minutes": 20},
        {"prefetch_batch_size": 0},
        {"travel_buffer_minutes": -5},
        {"settle_delay_seconds": -1},
    ])
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            BookingConfig(**kwargs)

    def test_unknown_timezone(self):
        with pytest.raises(ZoneInfoNotFoundError):
            BookingConfig(timezone="Mars/Olympus_Mons")

    def test_singleton(self):
        assert get_booking_config() is get_booking_config()


class TestSettings:
    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("BOOKING_TIMEZONE", "Europe/Berlin")
        monkeypatch.setenv("BOOKING_PREFETCH_BATCH_SIZE", "3")
        monkeypatch.setenv("BOOKING_API_URL", "http://backend.test/")

        settings = Settings()

        assert settings.timezone == "Europe/Berlin"
        assert settings.prefetch_batch_size == 3
        assert settings.resolved_api_url == "http://backend.test"
