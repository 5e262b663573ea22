# booking_scheduler/services/slots/loader.py
"""
Check-then-fetch of one day into the cache.

Shared by the prefetcher (bounded) and the scheduling session (on demand,
unbounded). Resolution failures are cached as an empty result so a broken
day is never retried in a loop; the UI shows it as "no availability".

A caller that finds the day already in flight awaits that resolution. If
the other caller dropped its result (stale token, or the day was cleared
while it was resolving) the waiter resolves the day itself.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Callable, Optional

from ...errors import ResolutionFailure
from ...schemas.availability import DayAvailability
from .availability import AvailabilityResolver
from .day_cache import DayAvailabilityCache

logger = logging.getLogger(__name__)


class LoadStatus(str, Enum):
    LOADED = "loaded"      # resolved and cached
    FAILED = "failed"      # resolution failed, empty result cached
    STALE = "stale"        # token expired or day cleared meanwhile, result dropped


@dataclass(frozen=True)
class LoadOutcome:
    date: date
    status: LoadStatus
    result: Optional[DayAvailability] = None

    @property
    def ok(self) -> bool:
        return self.status == LoadStatus.LOADED

    @property
    def stored(self) -> bool:
        return self.status in (LoadStatus.LOADED, LoadStatus.FAILED)


def _always_current() -> bool:
    return True


class DayLoader:
    """Resolves a day and writes the result into the cache."""

    def __init__(self, resolver: AvailabilityResolver, cache: DayAvailabilityCache):
        self.resolver = resolver
        self.cache = cache

    async def load(
        self,
        target_date: date,
        is_current: Callable[[], bool] = _always_current,
    ) -> LoadOutcome:
        """
        Resolve target_date and cache it.

        Args:
            target_date: Day to resolve
            is_current: Checked before committing; False drops the result

        Returns:
            LoadOutcome. Never raises for resolution failures.
        """
        while True:
            waiter = self.cache.waiter(target_date)
            if waiter is None:
                break
            logger.debug(f"Already resolving {target_date}, waiting for it")
            joined: Optional[LoadOutcome] = await asyncio.shield(waiter)
            if joined is not None and joined.stored and self.cache.has(target_date):
                return joined
            if not is_current():
                return LoadOutcome(target_date, LoadStatus.STALE)

        self.cache.begin(target_date)
        epoch = self.cache.epoch(target_date)
        outcome: Optional[LoadOutcome] = None
        try:
            try:
                result = await self.resolver.resolve_day(target_date)
                status = LoadStatus.LOADED
            except ResolutionFailure:
                logger.exception(f"Failed to resolve availability for {target_date}")
                result = DayAvailability.empty()
                status = LoadStatus.FAILED

            if not is_current():
                logger.debug(f"Dropping stale result for {target_date}")
                outcome = LoadOutcome(target_date, LoadStatus.STALE)
                return outcome

            if self.cache.epoch(target_date) != epoch:
                logger.debug(f"{target_date} was cleared while resolving, dropping result")
                outcome = LoadOutcome(target_date, LoadStatus.STALE)
                return outcome

            self.cache.store(target_date, result)
            outcome = LoadOutcome(target_date, status, result)
            return outcome
        finally:
            self.cache.finish(target_date, outcome)
