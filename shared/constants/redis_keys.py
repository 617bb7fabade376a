class RedisKeys:
    """Centralised Redis key pattern definitions"""

    # Per user per day cumulative engagement hash
    STAGING_HASH = "engagement:staging:{day}:{user_id}"

    # Per day sorted set of users with unflushed activity
    ACTIVE_USERS_INDEX = "engagement:active_users:{day}"

    # Day-scoped single-flight flush lock
    FLUSH_LOCK = "engagement:flush_lock:{day}"

    @classmethod
    def staging_key(cls, user_id: str, day: str) -> str:
        """Generate the staging hash key for a user on a given day."""
        return cls.STAGING_HASH.format(day=day, user_id=user_id)

    @classmethod
    def active_users_key(cls, day: str) -> str:
        return cls.ACTIVE_USERS_INDEX.format(day=day)

    @classmethod
    def flush_lock_key(cls, day: str) -> str:
        return cls.FLUSH_LOCK.format(day=day)
