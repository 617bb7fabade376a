import os

# Must be set before statusfeed.core.config builds its settings singleton.
os.environ.setdefault("APP_ENVIRONMENT", "testing")

from datetime import datetime  # noqa: E402
from unittest.mock import MagicMock  # noqa: E402

import fakeredis  # noqa: E402
import fakeredis.aioredis  # noqa: E402
import pytest  # noqa: E402

from tests.helpers.clock import FixedClock  # noqa: E402


@pytest.fixture
def fake_server():
    """Isolated fakeredis server so tests never share keys."""
    return fakeredis.FakeServer()


@pytest.fixture
def redis_client(fake_server):
    return fakeredis.aioredis.FakeRedis(server=fake_server, decode_responses=True)


@pytest.fixture
def sync_redis(fake_server):
    """Second, synchronous connection to the same server (a concurrent writer)."""
    return fakeredis.FakeRedis(server=fake_server, decode_responses=True)


@pytest.fixture
def clock():
    return FixedClock(datetime(2024, 3, 14, 15, 30, 0))


@pytest.fixture
def mock_sink():
    """Durable sink stand-in for unit tests"""
    sink = MagicMock()
    sink.insert_records = MagicMock(return_value=None)
    return sink
