from typing import List

from redis.asyncio import Redis
from redis.exceptions import RedisError

from shared.constants import RedisKeys
from statusfeed.core.clock import Clock
from statusfeed.domain.errors import CacheError


class ActivityIndex:
    """Per-day sorted set of users with activity, highest score first.

    The score is the wall-clock second of the latest touch plus the delta's
    watch count, so it approximates recency biased by engagement depth.
    """

    def __init__(self, redis: Redis, clock: Clock, ttl_seconds: int):
        self.r = redis
        self.clock = clock
        self.ttl_seconds = ttl_seconds

    async def touch(self, user_id: str, day: str, watch_count_delta: int = 0):
        key = RedisKeys.active_users_key(day)
        score = int(self.clock.now().timestamp()) + watch_count_delta
        pipe = self.r.pipeline(transaction=False)
        pipe.zadd(key, {user_id: score})
        pipe.expire(key, self.ttl_seconds)
        try:
            await pipe.execute()
        except RedisError as e:
            raise CacheError(f"index update failed for {key}: {e}") from e

    async def page(self, day: str, start: int, count: int) -> List[str]:
        if count <= 0:
            return []
        key = RedisKeys.active_users_key(day)
        try:
            return await self.r.zrevrange(key, start, start + count - 1)
        except RedisError as e:
            raise CacheError(f"index read failed for {key}: {e}") from e
