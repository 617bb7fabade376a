from redis.asyncio import Redis
from redis.exceptions import RedisError

from shared.constants import RedisKeys
from statusfeed.core.clock import Clock, lock_expiry_seconds
from statusfeed.domain.errors import CacheError


class FlushLock:
    """Create-if-absent key marking a day's flush as taken.

    Whoever creates the key runs the flush; everyone else sees it present
    and backs off. The key expires one grace period after the next local
    midnight.
    """

    def __init__(self, redis: Redis, clock: Clock, grace_seconds: int = 3600):
        self.r = redis
        self.clock = clock
        self.grace_seconds = grace_seconds

    async def acquire(self, day: str) -> bool:
        key = RedisKeys.flush_lock_key(day)
        expire = lock_expiry_seconds(self.clock.now(), self.grace_seconds)
        try:
            created = await self.r.set(key, 1, nx=True, ex=expire)
        except RedisError as e:
            raise CacheError(f"lock attempt failed for {key}: {e}") from e
        return bool(created)

    async def release(self, day: str) -> None:
        key = RedisKeys.flush_lock_key(day)
        try:
            await self.r.delete(key)
        except RedisError as e:
            raise CacheError(f"lock release failed for {key}: {e}") from e
