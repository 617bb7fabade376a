from __future__ import annotations

from dataclasses import dataclass

from redis.asyncio import Redis

from shared.utils.retry import retry_async
from statusfeed.core.clock import Clock
from statusfeed.core.config import Settings, settings
from statusfeed.core.logger import get_logger
from statusfeed.domain.ports import DurableSink
from statusfeed.infrastructure.clickhouse.client import ClickHouseClient
from statusfeed.infrastructure.redis.activity_index import ActivityIndex
from statusfeed.infrastructure.redis.flush_lock import FlushLock
from statusfeed.infrastructure.redis.staging_store import StagingStore
from statusfeed.services.flush_coordinator import FlushCoordinator
from statusfeed.services.flush_scheduler import FlushScheduler
from statusfeed.services.ingest_service import IngestService
from statusfeed.utils.concurrency import run_blocking

logger = get_logger("statusfeed.startup")


@dataclass
class Pipeline:
    staging: StagingStore
    index: ActivityIndex
    coordinator: FlushCoordinator
    ingest: IngestService
    scheduler: FlushScheduler


def build_pipeline(
    redis: Redis, sink: DurableSink, clock: Clock, config: Settings = settings
) -> Pipeline:
    staging = StagingStore(
        redis, config.staging_ttl_seconds, config.staging_merge_max_retries
    )
    index = ActivityIndex(redis, clock, config.staging_ttl_seconds)
    lock = FlushLock(redis, clock, config.flush_lock_grace_seconds)
    coordinator = FlushCoordinator(
        staging,
        index,
        lock,
        sink,
        clock,
        page_size=config.flush_page_size,
        user_interval_seconds=config.flush_user_interval_seconds,
    )
    ingest = IngestService(
        staging,
        index,
        clock,
        coordinator=coordinator,
        flush_on_ingest=config.flush_on_ingest,
        flush_day_offset=config.flush_day_offset,
    )
    scheduler = FlushScheduler(
        coordinator,
        clock,
        interval_seconds=config.flush_interval_seconds,
        day_offset=config.flush_day_offset,
    )
    return Pipeline(staging, index, coordinator, ingest, scheduler)


async def init_clickhouse() -> ClickHouseClient:
    """Create the sink client and its table, retrying while ClickHouse boots."""

    async def _connect():
        client = ClickHouseClient()
        await run_blocking(client.ensure_tables)
        return client

    def _on_retry(attempt: int, exc: BaseException, sleep_for: float):
        logger.warning(
            "clickhouse_connect_retry",
            extra={"attempt": attempt, "error": str(exc), "sleep_for": sleep_for},
        )

    return await retry_async(
        _connect, retries=6, base_delay=1.0, max_delay=10.0, on_retry=_on_retry
    )
