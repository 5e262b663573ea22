# booking_scheduler/services/schedule_admin.py
"""
Schedule administration: default weekly schedule and per-day overrides.

Every write invalidates what it affects:
- default weekly schedule → whole cache (every day may change)
- override set / deleted   → that day only
"""

import logging
from datetime import date

from ..schemas.availability import DayOverride, DefaultWeeklySchedule
from .slots.day_cache import DayAvailabilityCache
from .slots.invalidator import get_affected_dates, invalidate_days
from .stores import ScheduleAdminStore

logger = logging.getLogger(__name__)


class ScheduleAdmin:
    def __init__(self, store: ScheduleAdminStore, cache: DayAvailabilityCache):
        self.store = store
        self.cache = cache

    async def set_default_weekly(self, schedule: DefaultWeeklySchedule) -> None:
        await self.store.set_default_weekly(schedule)
        cleared = self.cache.clear_all()
        logger.info(f"Default weekly schedule updated, cleared {cleared} cached day(s)")

    async def set_override(self, override: DayOverride) -> None:
        await self.store.set_override(override)
        invalidate_days(self.cache, [override.date])
        logger.info(f"Override saved for {override.date}")

    async def delete_override(self, target_date: date) -> None:
        await self.store.delete_override(target_date)
        invalidate_days(self.cache, [target_date])
        logger.info(f"Override deleted for {target_date}")

    async def list_overrides(self, start: date, end: date) -> list[DayOverride]:
        """Overrides with start <= date <= end, sorted by date."""
        overrides = await self.store.list_overrides(start, end)
        wanted = set(get_affected_dates(start, end))
        return sorted((o for o in overrides if o.date in wanted), key=lambda o: o.date)
