"""Daily rollup of staged engagement into the durable sink.

One run per calendar day does real work: the run that creates the day's
flush lock. Every other attempt for that day ends in ``SKIPPED`` without
touching the activity index. A winning run pages through the activity index
(highest score first) until a page comes back empty, drains each user's
staging record serially with a short pause between users, and inserts one
batch per page. Sink failures are logged and the run moves on; staging keys
stay in the cache until their TTL, so a later run before expiry could still
pick them up. A run cancelled after taking the lock (shutdown mid-flush)
releases it again, so the next tick redoes the whole day.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import asdict, dataclass
from datetime import date, datetime
from enum import Enum
from typing import List, Set

from statusfeed.core.clock import Clock, parse_day
from statusfeed.core.logger import get_logger
from statusfeed.core.metrics import (
    FLUSH_ATTEMPTS,
    FLUSH_DURATION,
    FLUSH_LAST_SUCCESS,
    FLUSH_RECORDS_WRITTEN,
    FLUSH_SINK_ERRORS,
    FLUSH_SKIPPED_USERS,
)
from statusfeed.domain.errors import CacheError
from statusfeed.domain.models import DurableRecord
from statusfeed.domain.ports import DurableSink
from statusfeed.infrastructure.redis.activity_index import ActivityIndex
from statusfeed.infrastructure.redis.flush_lock import FlushLock
from statusfeed.infrastructure.redis.staging_store import StagingStore
from statusfeed.utils.concurrency import run_blocking

logger = get_logger("statusfeed.flush")


class FlushState(str, Enum):
    IDLE = "idle"
    LOCK_ATTEMPT = "lock_attempt"
    SKIPPED = "skipped"
    RUNNING = "running"
    PAGING = "paging"
    DRAINING = "draining"
    DONE = "done"
    ABORTED = "aborted"


@dataclass
class FlushReport:
    day: str
    state: FlushState = FlushState.IDLE
    pages: int = 0
    users_seen: int = 0
    records_written: int = 0
    skipped_users: int = 0
    failed_batches: int = 0

    def as_dict(self) -> dict:
        data = asdict(self)
        data["state"] = self.state.value
        return data


class FlushCoordinator:
    def __init__(
        self,
        staging: StagingStore,
        index: ActivityIndex,
        lock: FlushLock,
        sink: DurableSink,
        clock: Clock,
        page_size: int = 50,
        user_interval_seconds: float = 0.5,
    ):
        self.staging = staging
        self.index = index
        self.lock = lock
        self.sink = sink
        self.clock = clock
        self.page_size = page_size
        self.user_interval_seconds = user_interval_seconds
        self._tasks: Set[asyncio.Task] = set()

    async def run(self, day: str) -> FlushReport:
        report = FlushReport(day=day)

        report.state = FlushState.LOCK_ATTEMPT
        try:
            acquired = await self.lock.acquire(day)
        except CacheError as e:
            return self._finish(report, FlushState.ABORTED, error=str(e))
        if not acquired:
            return self._finish(report, FlushState.SKIPPED)

        try:
            return await self._run_locked(day, report)
        except asyncio.CancelledError:
            await self._release_after_cancel(day, report)
            raise

    async def _run_locked(self, day: str, report: FlushReport) -> FlushReport:
        report.state = FlushState.RUNNING
        logger.info("flush_started", extra={"day": day})
        data_day = parse_day(day)
        created_at = self.clock.now().replace(microsecond=0)
        started = time.perf_counter()

        start = 0
        while True:
            report.state = FlushState.PAGING
            try:
                user_ids = await self.index.page(day, start, self.page_size)
            except CacheError as e:
                FLUSH_DURATION.observe(time.perf_counter() - started)
                return self._finish(report, FlushState.ABORTED, error=str(e))
            if not user_ids:
                break

            report.pages += 1
            report.state = FlushState.DRAINING
            batch = await self._drain_page(day, user_ids, data_day, created_at, report)
            await self._submit(day, batch, report)
            start += self.page_size

        FLUSH_DURATION.observe(time.perf_counter() - started)
        return self._finish(report, FlushState.DONE)

    def launch(self, day: str) -> asyncio.Task:
        """Start a detached run; the caller does not wait for it."""
        task = asyncio.create_task(self._run_detached(day), name=f"flush:{day}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def close(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def _release_after_cancel(self, day: str, report: FlushReport) -> None:
        # An interrupted run gives the day back so a later tick can redo it;
        # rows already inserted may be written again.
        try:
            await self.lock.release(day)
        except CacheError as e:
            logger.error(
                "flush_lock_release_failed",
                extra={**report.as_dict(), "error": str(e)},
            )
            return
        logger.warning("flush_cancelled", extra=report.as_dict())

    async def _run_detached(self, day: str) -> FlushReport | None:
        try:
            return await self.run(day)
        except Exception:  # noqa: BLE001
            logger.exception("flush_detached_run_failed", extra={"day": day})
            return None

    async def _drain_page(
        self,
        day: str,
        user_ids: List[str],
        data_day: date,
        created_at: datetime,
        report: FlushReport,
    ) -> List[DurableRecord]:
        batch: List[DurableRecord] = []
        for user_id in user_ids:
            await asyncio.sleep(self.user_interval_seconds)
            report.users_seen += 1
            if not user_id:
                self._skip(report)
                continue
            try:
                record = await self.staging.drain(user_id, day)
            except CacheError as e:
                logger.warning(
                    "flush_drain_failed",
                    extra={"day": day, "user_id": user_id, "error": str(e)},
                )
                self._skip(report)
                continue
            if record is None or not record.user_id or not record.video_id:
                logger.debug(
                    "flush_user_skipped", extra={"day": day, "user_id": user_id}
                )
                self._skip(report)
                continue
            batch.append(record.finalize(data_day, created_at))
        return batch

    async def _submit(
        self, day: str, batch: List[DurableRecord], report: FlushReport
    ) -> None:
        if not batch:
            return
        try:
            await run_blocking(self.sink.insert_records, batch)
        except Exception as e:  # noqa: BLE001
            report.failed_batches += 1
            FLUSH_SINK_ERRORS.inc()
            logger.exception(
                "flush_batch_failed",
                extra={"day": day, "batch_size": len(batch), "error": str(e)},
            )
            return
        report.records_written += len(batch)
        FLUSH_RECORDS_WRITTEN.inc(len(batch))
        logger.info(
            "flush_batch_inserted",
            extra={"day": day, "page": report.pages, "batch_size": len(batch)},
        )

    @staticmethod
    def _skip(report: FlushReport) -> None:
        report.skipped_users += 1
        FLUSH_SKIPPED_USERS.inc()

    @staticmethod
    def _finish(report: FlushReport, state: FlushState, error: str = "") -> FlushReport:
        report.state = state
        FLUSH_ATTEMPTS.labels(state=state.value).inc()
        if state is FlushState.ABORTED:
            logger.error("flush_aborted", extra={**report.as_dict(), "error": error})
        elif state is FlushState.SKIPPED:
            logger.debug("flush_skipped", extra={"day": report.day})
        else:
            FLUSH_LAST_SUCCESS.set_to_current_time()
            logger.info("flush_finished", extra=report.as_dict())
        return report
