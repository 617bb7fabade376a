from __future__ import annotations

import asyncio
from typing import Optional

from statusfeed.core.clock import Clock, shifted_day
from statusfeed.core.logger import get_logger
from statusfeed.services.flush_coordinator import FlushCoordinator, FlushReport

logger = get_logger("statusfeed.flush_scheduler")


class FlushScheduler:
    """Recurring task that asks the coordinator to flush the previous day.

    Ticks are cheap once the day's lock exists, so the interval only bounds
    how soon after midnight the flush starts.
    """

    def __init__(
        self,
        coordinator: FlushCoordinator,
        clock: Clock,
        interval_seconds: float,
        day_offset: int = 1,
    ):
        self.coordinator = coordinator
        self.clock = clock
        self.interval_seconds = interval_seconds
        self.day_offset = day_offset
        self._stop = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    async def tick(self) -> FlushReport:
        return await self.coordinator.run(shifted_day(self.clock, self.day_offset))

    async def run_forever(self) -> None:
        logger.info(
            "flush_scheduler_started", extra={"interval": self.interval_seconds}
        )
        while not self._stop.is_set():
            try:
                await self.tick()
            except asyncio.CancelledError:
                raise
            except Exception:  # noqa: BLE001
                logger.exception("flush_scheduler_tick_failed")
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                pass
        logger.info("flush_scheduler_stopped")

    def start(self) -> asyncio.Task:
        self._stop.clear()
        self._task = asyncio.create_task(self.run_forever(), name="flush-scheduler")
        return self._task

    async def stop(self) -> None:
        self._stop.set()
        if self._task is None:
            return
        # A flush in progress has no cancellation point of its own.
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:  # expected during shutdown
            logger.debug("flush_scheduler_cancelled")
        self._task = None
