"""Shared utilities and components for the status-feed services."""

from .config import (
    BaseClickHouseConfig,
    BaseLoggingConfig,
    BaseRedisConfig,
    BaseServiceConfig,
)
from .constants import Environment, RedisKeys

__all__ = [
    "Environment",
    "RedisKeys",
    "BaseServiceConfig",
    "BaseLoggingConfig",
    "BaseRedisConfig",
    "BaseClickHouseConfig",
]
