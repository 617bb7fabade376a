"""Fixed-field string encoding of staging records.

A staging record is stored as exactly twelve fields joined by
``FIELD_DELIMITER``. Values that do not split into twelve fields, or whose
numeric fields do not parse, decode to ``None`` and the caller starts from an
empty record.

The wait-time field holds a single running maximum. Older values stored it
as every observed sample joined by ``SAMPLE_DELIMITER``; ``resolve_max``
reads both shapes.
"""

from __future__ import annotations

from typing import Optional

from statusfeed.core.logger import get_logger

from .models import FIELD_DELIMITER, StagingRecord

SAMPLE_DELIMITER = "-"

FIELD_ORDER = (
    "user_id",
    "source",
    "video_id",
    "show_count",
    "tap_count",
    "watch_count",
    "is_complete_show",
    "video_wait_time",
    "send_whatsapp_count",
    "share_count",
    "download_count",
    "return_count",
)
FIELD_COUNT = len(FIELD_ORDER)

_TEXT_FIELDS = {"user_id", "video_id"}

logger = get_logger("statusfeed.codec")


def encode(record: StagingRecord) -> str:
    values = []
    for name in FIELD_ORDER:
        value = getattr(record, name)
        if isinstance(value, bool):
            value = int(value)
        values.append(str(value))
    return FIELD_DELIMITER.join(values)


def resolve_max(samples: str) -> int:
    """Largest integer in a ``-`` joined sample list; 0 when empty."""
    parsed = [int(s) for s in samples.split(SAMPLE_DELIMITER) if s.strip()]
    return max(parsed, default=0)


def decode(value: Optional[str]) -> Optional[StagingRecord]:
    if value is None:
        return None
    parts = value.split(FIELD_DELIMITER)
    if len(parts) != FIELD_COUNT:
        logger.warning(
            "staging_record_malformed",
            extra={"field_count": len(parts), "expected": FIELD_COUNT},
        )
        return None

    fields: dict = {}
    try:
        for name, raw in zip(FIELD_ORDER, parts):
            if name in _TEXT_FIELDS:
                fields[name] = raw
            elif name == "video_wait_time":
                fields[name] = resolve_max(raw)
            elif name == "is_complete_show":
                fields[name] = int(raw) != 0
            else:
                fields[name] = int(raw)
    except ValueError:
        logger.warning("staging_record_unparseable", extra={"field": name})
        return None
    return StagingRecord(**fields)
