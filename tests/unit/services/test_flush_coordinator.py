import asyncio
from datetime import date
from unittest.mock import AsyncMock, patch

import pytest

from shared.constants import RedisKeys
from statusfeed.domain.errors import CacheError
from statusfeed.domain.models import EngagementDelta
from statusfeed.infrastructure.redis.activity_index import ActivityIndex
from statusfeed.infrastructure.redis.flush_lock import FlushLock
from statusfeed.infrastructure.redis.staging_store import StagingStore
from statusfeed.services.flush_coordinator import (
    FlushCoordinator,
    FlushReport,
    FlushState,
)
from statusfeed.services.flush_scheduler import FlushScheduler

DAY = "2024-03-13"


@pytest.fixture
def staging(redis_client):
    return StagingStore(redis_client, ttl_seconds=172800)


@pytest.fixture
def index(redis_client, clock):
    return ActivityIndex(redis_client, clock, ttl_seconds=172800)


@pytest.fixture
def coordinator(redis_client, clock, staging, index, mock_sink):
    return FlushCoordinator(
        staging,
        index,
        FlushLock(redis_client, clock),
        mock_sink,
        clock,
        page_size=50,
        user_interval_seconds=0,
    )


async def _stage(staging, index, user_id, **counts):
    delta = EngagementDelta(user_id=user_id, source=1, video_id=f"v-{user_id}", **counts)
    await staging.merge_delta(user_id, DAY, delta)
    await index.touch(user_id, DAY, delta.watch_count)


def _inserted(mock_sink):
    return [call.args[0] for call in mock_sink.insert_records.call_args_list]


@pytest.mark.asyncio
async def test_single_page_then_done(coordinator, staging, index, mock_sink):
    for i in range(50):
        await _stage(staging, index, f"u{i}", show_count=1)

    with patch.object(index, "page", wraps=index.page) as page_spy:
        report = await coordinator.run(DAY)

    assert report.state is FlushState.DONE
    assert report.pages == 1
    assert page_spy.await_count == 2
    assert [c.args[1] for c in page_spy.await_args_list] == [0, 50]
    batches = _inserted(mock_sink)
    assert len(batches) == 1
    assert len(batches[0]) == 50
    assert report.records_written == 50


@pytest.mark.asyncio
async def test_existing_lock_skips_without_paging(
    coordinator, redis_client, index, mock_sink
):
    await redis_client.set(RedisKeys.flush_lock_key(DAY), 1)

    with patch.object(index, "page", new=AsyncMock(return_value=[])) as page_mock:
        report = await coordinator.run(DAY)

    assert report.state is FlushState.SKIPPED
    page_mock.assert_not_awaited()
    mock_sink.insert_records.assert_not_called()


@pytest.mark.asyncio
async def test_second_run_same_day_is_skipped(coordinator, staging, index, mock_sink):
    await _stage(staging, index, "u1", show_count=1)
    first = await coordinator.run(DAY)
    second = await coordinator.run(DAY)

    assert first.state is FlushState.DONE
    assert second.state is FlushState.SKIPPED
    assert mock_sink.insert_records.call_count == 1


@pytest.mark.asyncio
async def test_partial_page_still_pages_again(coordinator, staging, index, mock_sink):
    coordinator.page_size = 2
    for user_id in ("a", "b", "c"):
        await _stage(staging, index, user_id, show_count=1)

    report = await coordinator.run(DAY)

    assert report.pages == 2
    assert [len(b) for b in _inserted(mock_sink)] == [2, 1]


@pytest.mark.asyncio
async def test_durable_record_fields(coordinator, staging, index, mock_sink, clock):
    for wait in (3, 7, 2):
        await _stage(staging, index, "u1", watch_count=1, video_wait_time=wait)

    await coordinator.run(DAY)

    (record,) = _inserted(mock_sink)[0]
    assert record.user_id == "u1"
    assert record.video_id == "v-u1"
    assert record.watch_count == 3
    assert record.video_wait_time == 7
    assert record.data_time == date(2024, 3, 13)
    assert record.create_time == clock.now().replace(microsecond=0)


@pytest.mark.asyncio
async def test_malformed_and_missing_records_are_skipped(
    coordinator, redis_client, staging, index, mock_sink
):
    await _stage(staging, index, "good", show_count=1)
    await redis_client.hset(RedisKeys.staging_key("bad", DAY), "bad", "x|@|y")
    await index.touch("bad", DAY)
    await index.touch("ghost", DAY)

    report = await coordinator.run(DAY)

    assert report.state is FlushState.DONE
    assert report.users_seen == 3
    assert report.skipped_users == 2
    assert [r.user_id for r in _inserted(mock_sink)[0]] == ["good"]


@pytest.mark.asyncio
async def test_sink_failure_moves_to_next_page(coordinator, staging, index, mock_sink):
    coordinator.page_size = 1
    await _stage(staging, index, "a", show_count=1)
    await _stage(staging, index, "b", show_count=1)
    mock_sink.insert_records.side_effect = [RuntimeError("sink down"), None]

    report = await coordinator.run(DAY)

    assert report.state is FlushState.DONE
    assert report.pages == 2
    assert report.failed_batches == 1
    assert report.records_written == 1
    assert mock_sink.insert_records.call_count == 2


@pytest.mark.asyncio
async def test_paging_cache_error_aborts(coordinator, index, mock_sink):
    with patch.object(index, "page", new=AsyncMock(side_effect=CacheError("down"))):
        report = await coordinator.run(DAY)

    assert report.state is FlushState.ABORTED
    mock_sink.insert_records.assert_not_called()


@pytest.mark.asyncio
async def test_lock_cache_error_aborts(coordinator, index):
    failing = AsyncMock(side_effect=CacheError("down"))
    with patch.object(coordinator.lock, "acquire", new=failing):
        with patch.object(index, "page", new=AsyncMock()) as page_mock:
            report = await coordinator.run(DAY)

    assert report.state is FlushState.ABORTED
    page_mock.assert_not_awaited()


@pytest.mark.asyncio
async def test_drain_error_skips_only_that_user(coordinator, staging, index, mock_sink):
    await _stage(staging, index, "a", show_count=1)
    await _stage(staging, index, "b", show_count=1)
    real_drain = staging.drain

    async def flaky_drain(user_id, day):
        if user_id == "a":
            raise CacheError("timeout")
        return await real_drain(user_id, day)

    with patch.object(staging, "drain", new=flaky_drain):
        report = await coordinator.run(DAY)

    assert report.skipped_users == 1
    assert [r.user_id for r in _inserted(mock_sink)[0]] == ["b"]


@pytest.mark.asyncio
async def test_throttles_between_users(coordinator, staging, index):
    coordinator.user_interval_seconds = 0.5
    await _stage(staging, index, "a")
    await _stage(staging, index, "b")

    with patch(
        "statusfeed.services.flush_coordinator.asyncio.sleep", new=AsyncMock()
    ) as mock_sleep:
        await coordinator.run(DAY)

    assert mock_sleep.await_count == 2
    mock_sleep.assert_awaited_with(0.5)


@pytest.mark.asyncio
async def test_staging_keys_survive_flush(coordinator, redis_client, staging, index):
    await _stage(staging, index, "u1", show_count=1)
    await coordinator.run(DAY)
    assert await redis_client.exists(RedisKeys.staging_key("u1", DAY)) == 1
    assert await redis_client.exists(RedisKeys.active_users_key(DAY)) == 1


@pytest.mark.asyncio
async def test_launch_runs_detached(coordinator, staging, index, mock_sink):
    await _stage(staging, index, "u1", show_count=1)

    task = coordinator.launch(DAY)
    report = await task

    assert report.state is FlushState.DONE
    assert mock_sink.insert_records.call_count == 1


@pytest.mark.asyncio
async def test_launch_swallows_unexpected_errors(coordinator):
    with patch.object(
        coordinator.lock, "acquire", new=AsyncMock(side_effect=RuntimeError("bug"))
    ):
        assert await coordinator.launch(DAY) is None


def test_report_as_dict():
    report = FlushReport(day=DAY, state=FlushState.DONE, pages=1)
    assert report.as_dict()["state"] == "done"
    assert report.as_dict()["pages"] == 1


@pytest.mark.asyncio
async def test_shutdown_mid_flush_releases_day(
    coordinator, redis_client, staging, index, mock_sink, clock
):
    coordinator.page_size = 1
    coordinator.user_interval_seconds = 0.05
    for user_id in ("a", "b", "c", "d"):
        await _stage(staging, index, user_id, show_count=1)
    scheduler = FlushScheduler(coordinator, clock, interval_seconds=60)

    scheduler.start()
    await asyncio.sleep(0.08)
    await scheduler.stop()

    assert mock_sink.insert_records.call_count < 4
    assert await redis_client.exists(RedisKeys.flush_lock_key(DAY)) == 0

    coordinator.user_interval_seconds = 0
    rerun = await coordinator.run(DAY)
    assert rerun.state is FlushState.DONE
    assert rerun.records_written == 4


@pytest.mark.asyncio
async def test_close_cancels_detached_run_and_releases_day(
    coordinator, redis_client, staging, index
):
    coordinator.user_interval_seconds = 0.05
    for user_id in ("a", "b", "c"):
        await _stage(staging, index, user_id)

    task = coordinator.launch(DAY)
    await asyncio.sleep(0.03)
    await coordinator.close()

    assert task.cancelled()
    assert await redis_client.exists(RedisKeys.flush_lock_key(DAY)) == 0


@pytest.mark.asyncio
async def test_cancel_still_propagates_when_release_fails(
    coordinator, staging, index, caplog
):
    coordinator.user_interval_seconds = 0.05
    await _stage(staging, index, "a")
    await _stage(staging, index, "b")

    with patch.object(
        coordinator.lock, "release", new=AsyncMock(side_effect=CacheError("down"))
    ):
        task = asyncio.create_task(coordinator.run(DAY))
        await asyncio.sleep(0.03)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    assert "flush_lock_release_failed" in caplog.text
