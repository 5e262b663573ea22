# booking_scheduler/services/slots/prefetcher.py
"""
Month prefetch: warms the day cache for the visible month.

Flow:
1. Days of the month from today forward (past days are skipped)
2. Current week first, then the rest of the month
3. Every day waits for one of prefetch_batch_size semaphore permits. The
   permits belong to the prefetcher, not the run: an abandoned run keeps
   its permits until its in-flight days return
4. initial_loaded flips on the first successful day, the rest of the
   month continues in the background
5. Safety timer: if nothing succeeded within the budget, initial_loaded is
   forced and the month is re-triggered for the days still missing

Every run carries a generation number. Changing month (or invalidate())
bumps it; a run checks its generation before taking a permit and before
committing a result, so stale results are dropped instead of cancelled.
"""

import asyncio
import logging
from datetime import date, datetime
from typing import Callable, Optional

from .config import BookingConfig, get_booking_config
from .invalidator import current_week_first, invalidate_days, visible_month_dates
from .loader import DayLoader, LoadOutcome, LoadStatus

logger = logging.getLogger(__name__)


class MonthPrefetcher:
    """Concurrency-bounded background loader for the visible month."""

    def __init__(
        self,
        loader: DayLoader,
        config: BookingConfig | None = None,
        today: Callable[[], date] | None = None,
    ):
        self.loader = loader
        self.cache = loader.cache
        self.config = config or get_booking_config()
        self._today = today or (lambda: datetime.now(self.config.zone).date())

        self._generation = 0
        self._semaphore = asyncio.Semaphore(self.config.prefetch_batch_size)
        self._tasks: set[asyncio.Task] = set()
        self._safety_task: Optional[asyncio.Task] = None

        self.month: Optional[date] = None
        self.initial_loaded = False
        self.is_loading = False
        self.pending: list[date] = []
        self.loaded_count = 0
        self.failed_count = 0
        self.in_flight = 0
        self.max_in_flight = 0

    # ── Public API ───────────────────────────────────────────────────────

    def load_month(self, month: date) -> Optional[asyncio.Task]:
        """
        Start warming month. Cancels interest in any previous run.

        Returns:
            The run task, or None when there is nothing to load.
        """
        self.invalidate()
        self.month = month
        self.initial_loaded = False
        self.loaded_count = 0
        self.failed_count = 0
        self.max_in_flight = 0

        today = self._today()
        dates = visible_month_dates(month, today)
        if not dates:
            logger.info(f"Month {month:%Y-%m} is in the past, nothing to preload")
            self.initial_loaded = True
            return None

        invalidate_days(self.cache, dates)
        logger.info(f"Preloading {len(dates)} day(s) of {month:%Y-%m}")
        return self._start(dates, today)

    def invalidate(self) -> None:
        """Stop the current run from writing results or flipping flags."""
        self._generation += 1
        self.is_loading = False
        self.pending = []
        if self._safety_task is not None:
            self._safety_task.cancel()
            self._safety_task = None

    async def aclose(self) -> None:
        """Invalidate and cancel all background tasks."""
        self.invalidate()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def wait(self) -> None:
        """Wait for the current run (tests, shutdown)."""
        tasks = [t for t in self._tasks if t is not self._safety_task]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # ── Run ──────────────────────────────────────────────────────────────

    def _start(self, dates: list[date], today: date) -> asyncio.Task:
        generation = self._generation
        self.pending = current_week_first(dates, today)
        self.is_loading = True

        task = self._spawn(self._run(generation, list(self.pending)))
        if not self.initial_loaded:
            self._safety_task = self._spawn(self._safety_timer(generation))
        return task

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _is_current(self, generation: int) -> Callable[[], bool]:
        return lambda: self._generation == generation

    async def _run(self, generation: int, dates: list[date]) -> None:
        is_current = self._is_current(generation)
        await asyncio.gather(
            *(self._load_one(dt, is_current) for dt in dates)
        )

        if not is_current():
            return

        self.is_loading = False
        self.initial_loaded = True
        if self._safety_task is not None:
            self._safety_task.cancel()
            self._safety_task = None
        logger.info(
            f"Month data loading complete. Successful: {self.loaded_count}, "
            f"Failed: {self.failed_count}"
        )

    async def _load_one(
        self,
        dt: date,
        is_current: Callable[[], bool],
    ) -> Optional[LoadOutcome]:
        if not is_current():
            return None

        async with self._semaphore:
            if not is_current():
                return None
            if dt in self.pending:
                self.pending.remove(dt)

            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
            try:
                outcome = await self.loader.load(dt, is_current)
            except Exception:
                # A single day never aborts the run
                logger.exception(f"Unexpected error while preloading {dt}")
                outcome = LoadOutcome(dt, LoadStatus.FAILED)
            finally:
                self.in_flight -= 1

        if is_current():
            if outcome.status == LoadStatus.LOADED:
                self.loaded_count += 1
                if not self.initial_loaded:
                    logger.info(f"First day loaded ({dt}), month is usable")
                    self.initial_loaded = True
            elif outcome.status == LoadStatus.FAILED:
                self.failed_count += 1

        # Yield to other event loop work between days
        await asyncio.sleep(0)
        return outcome

    async def _safety_timer(self, generation: int) -> None:
        await asyncio.sleep(self.config.prefetch_safety_timeout_seconds)
        if self._generation != generation or self.initial_loaded:
            return

        logger.warning(
            f"Safety timeout ({self.config.prefetch_safety_timeout_seconds}s) "
            f"reached for {self.month:%Y-%m}, forcing initial load"
        )
        self._safety_task = None
        self.initial_loaded = True
        self._retrigger()

    def _retrigger(self) -> None:
        """Abandon the stalled run and restart it for days still missing."""
        self._generation += 1
        today = self._today()
        missing = [
            dt for dt in visible_month_dates(self.month, today)
            if not self.cache.has(dt)
        ]
        if not missing:
            self.is_loading = False
            self.pending = []
            return
        self._start(missing, today)
