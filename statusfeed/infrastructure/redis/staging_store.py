from typing import Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError, WatchError

from shared.constants import RedisKeys
from statusfeed.core.logger import get_logger
from statusfeed.core.metrics import STAGING_MERGE_CONFLICTS
from statusfeed.domain import codec
from statusfeed.domain.errors import CacheError
from statusfeed.domain.models import EngagementDelta, StagingRecord

logger = get_logger("statusfeed.staging_store")


class StagingStore:
    """Per user per day cumulative engagement records held in Redis.

    Notes:
        - One hash per (user, day); the encoded record lives under the
          user_id field.
        - Merges run inside a WATCH/MULTI transaction and are retried when
          another writer touched the key in between, so increments are
          never lost.
        - Keys are never deleted here; the TTL retires them.
    """

    def __init__(self, redis: Redis, ttl_seconds: int, max_retries: int = 10):
        self.r = redis
        self.ttl_seconds = ttl_seconds
        self.max_retries = max_retries

    async def merge_delta(
        self, user_id: str, day: str, delta: EngagementDelta
    ) -> StagingRecord:
        key = RedisKeys.staging_key(user_id, day)
        try:
            async with self.r.pipeline(transaction=True) as pipe:
                for attempt in range(1, self.max_retries + 1):
                    try:
                        await pipe.watch(key)
                        current = codec.decode(await pipe.hget(key, user_id))
                        merged = (current or StagingRecord()).merge(delta)
                        pipe.multi()
                        pipe.hset(key, user_id, codec.encode(merged))
                        pipe.expire(key, self.ttl_seconds)
                        await pipe.execute()
                        return merged
                    except WatchError:
                        STAGING_MERGE_CONFLICTS.inc()
                        logger.debug(
                            "staging_merge_conflict",
                            extra={"key": key, "attempt": attempt},
                        )
        except RedisError as e:
            raise CacheError(f"merge failed for {key}: {e}") from e
        raise CacheError(f"merge for {key} lost {self.max_retries} races")

    async def drain(self, user_id: str, day: str) -> Optional[StagingRecord]:
        key = RedisKeys.staging_key(user_id, day)
        try:
            raw = await self.r.hget(key, user_id)
        except RedisError as e:
            raise CacheError(f"read failed for {key}: {e}") from e
        return codec.decode(raw)
