from __future__ import annotations

from typing import Optional

from statusfeed.core.clock import Clock, day_key, shifted_day
from statusfeed.core.logger import get_logger
from statusfeed.domain.models import EngagementDelta, StagingRecord
from statusfeed.infrastructure.redis.activity_index import ActivityIndex
from statusfeed.infrastructure.redis.staging_store import StagingStore
from statusfeed.services.flush_coordinator import FlushCoordinator

logger = get_logger("statusfeed.ingest")


class IngestService:
    """Folds one engagement delta into today's staging record.

    Deltas arrive already validated (see ``EngagementDelta``). Cache failures
    propagate as ``CacheError``; in that case no flush attempt is made.
    """

    def __init__(
        self,
        staging: StagingStore,
        index: ActivityIndex,
        clock: Clock,
        coordinator: Optional[FlushCoordinator] = None,
        flush_on_ingest: bool = False,
        flush_day_offset: int = 1,
    ):
        self.staging = staging
        self.index = index
        self.clock = clock
        self.coordinator = coordinator
        self.flush_on_ingest = flush_on_ingest
        self.flush_day_offset = flush_day_offset

    async def record(self, delta: EngagementDelta) -> StagingRecord:
        day = day_key(self.clock.now())
        # Index first: a staged record the flush cannot find is never written,
        # while an indexed user without a record is just skipped.
        await self.index.touch(delta.user_id, day, delta.watch_count)
        merged = await self.staging.merge_delta(delta.user_id, day, delta)

        if self.flush_on_ingest and self.coordinator is not None:
            self.coordinator.launch(shifted_day(self.clock, self.flush_day_offset))
        return merged
