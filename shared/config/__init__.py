"""Shared configuration base classes.

Common settings blocks reused by the service configuration so connection and
logging knobs keep the same environment variable names everywhere.
"""

from pydantic_settings import BaseSettings


class BaseLoggingConfig(BaseSettings):
    """Common logging configuration."""

    app_log_level: str = "INFO"
    app_log_redaction_patterns: list[str] = [
        "password",
        "token",
        "secret",
        "authorization",
        "cookie",
    ]
    app_environment: str = "production"


class BaseRedisConfig(BaseSettings):
    """Connection settings for the Redis staging cache."""

    redis_host: str = "redis"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: str | None = None


class BaseClickHouseConfig(BaseSettings):
    """Connection settings for the ClickHouse durable sink."""

    clickhouse_host: str = "clickhouse"
    clickhouse_port: int = 9000
    clickhouse_db: str = "statusfeed"
    clickhouse_user: str = "admin"
    clickhouse_password: str = "admin"


class BaseServiceConfig(BaseLoggingConfig, BaseRedisConfig, BaseClickHouseConfig):
    """Base configuration combining logging, Redis and ClickHouse settings.

    The service_name should be overridden by the concrete service settings.
    """

    service_name: str = "unknown"


__all__ = [
    "BaseLoggingConfig",
    "BaseRedisConfig",
    "BaseClickHouseConfig",
    "BaseServiceConfig",
]
