import pytest

from statusfeed.domain import codec
from statusfeed.domain.models import FIELD_DELIMITER, EngagementDelta, StagingRecord


def _record(**overrides) -> StagingRecord:
    base = dict(
        user_id="u1",
        source=2,
        video_id="v1",
        show_count=3,
        tap_count=1,
        watch_count=4,
        is_complete_show=True,
        video_wait_time=7,
        send_whatsapp_count=1,
        share_count=2,
        download_count=0,
        return_count=5,
    )
    base.update(overrides)
    return StagingRecord(**base)


def test_encode_uses_fixed_field_order():
    value = codec.encode(_record())
    parts = value.split(FIELD_DELIMITER)
    assert len(parts) == 12
    assert parts == ["u1", "2", "v1", "3", "1", "4", "1", "7", "1", "2", "0", "5"]


@pytest.mark.parametrize(
    "record",
    [
        _record(),
        StagingRecord(),
        _record(is_complete_show=False, video_wait_time=0, user_id="user-with-dash"),
    ],
)
def test_decode_inverts_encode(record):
    assert codec.decode(codec.encode(record)) == record


def test_decode_eleven_fields_is_absent():
    value = FIELD_DELIMITER.join(["u1", "1", "v1"] + ["0"] * 8)
    assert codec.decode(value) is None


def test_decode_thirteen_fields_is_absent():
    value = codec.encode(_record()) + FIELD_DELIMITER + "extra"
    assert codec.decode(value) is None


def test_decode_missing_and_empty_values():
    assert codec.decode(None) is None
    assert codec.decode("") is None


def test_decode_non_numeric_counter_is_absent():
    parts = codec.encode(_record()).split(FIELD_DELIMITER)
    parts[3] = "three"
    assert codec.decode(FIELD_DELIMITER.join(parts)) is None


def test_decode_logs_malformed_value(caplog):
    with caplog.at_level("WARNING", logger="statusfeed.codec"):
        codec.decode("only|@|two")
    assert any(r.getMessage() == "staging_record_malformed" for r in caplog.records)


def test_decode_accepts_legacy_wait_time_sample_list():
    parts = codec.encode(_record()).split(FIELD_DELIMITER)
    parts[7] = "3-7-2"
    record = codec.decode(FIELD_DELIMITER.join(parts))
    assert record is not None
    assert record.video_wait_time == 7


@pytest.mark.parametrize(
    "samples,expected",
    [("3-7-2", 7), ("12", 12), ("", 0), ("0-0", 0), ("5--9", 9)],
)
def test_resolve_max(samples, expected):
    assert codec.resolve_max(samples) == expected


def test_merge_sums_counters_and_keeps_max_wait_time():
    record = StagingRecord()
    for wait in (3, 7, 2):
        record = record.merge(
            EngagementDelta(
                user_id="u1", source=1, video_id="v1", show_count=1, video_wait_time=wait
            )
        )
    assert record.show_count == 3
    assert record.video_wait_time == 7


def test_merge_last_write_wins_for_identity_fields():
    first = StagingRecord().merge(
        EngagementDelta(user_id="u1", source=1, video_id="v1", is_complete_show=True)
    )
    second = first.merge(EngagementDelta(user_id="u1", source=3, video_id="v9"))
    assert second.source == 3
    assert second.video_id == "v9"
    assert second.is_complete_show is False
