# booking_scheduler/config.py

from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    # Provider's civil time zone: day-keys and work hours are local to it
    timezone: str = "Europe/Oslo"

    # Backend reached by utils.api.ApiClient
    api_url: str = "http://localhost:8080"
    api_timeout: float = 10.0
    internal_token: str = "scheduler-internal"

    slot_step_minutes: int = 15
    travel_buffer_minutes: int = 15
    default_min_duration_minutes: int = 30

    prefetch_batch_size: int = 5
    prefetch_safety_timeout_seconds: float = 5.0
    settle_delay_seconds: float = 2.0
    cancel_settle_delay_seconds: float = 1.0

    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_prefix="BOOKING_",
        extra="ignore",
    )

    @property
    def resolved_api_url(self) -> str:
        return self.api_url.rstrip("/")


settings = Settings()
