from __future__ import annotations

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import ERROR_MESSAGES, ErrorCode

# Private separator between staging record fields; identifiers may not contain it.
FIELD_DELIMITER = "|@|"


class EngagementDelta(BaseModel):
    """Interaction counts contributed by a single client call."""

    model_config = ConfigDict(str_strip_whitespace=True)

    user_id: str = Field(..., min_length=1, description="The user identifier")
    source: int = Field(..., gt=0, description="Client source code")
    video_id: str = Field(..., min_length=1, description="Video the user engaged with")
    show_count: int = Field(0, ge=0)
    tap_count: int = Field(0, ge=0)
    watch_count: int = Field(0, ge=0)
    is_complete_show: bool = Field(False, description="Watched to completion")
    video_wait_time: int = Field(0, ge=0, description="One wait-time sample (s)")
    send_whatsapp_count: int = Field(0, ge=0)
    share_count: int = Field(0, ge=0)
    download_count: int = Field(0, ge=0)
    return_count: int = Field(0, ge=0)

    @field_validator("user_id", "video_id")
    @classmethod
    def _no_delimiter(cls, value: str) -> str:
        if FIELD_DELIMITER in value:
            raise ValueError("identifier contains a reserved character sequence")
        return value


class StagingRecord(BaseModel):
    """Cumulative engagement for one user on one day, held in the cache.

    Counters are running sums. ``video_wait_time`` is the running maximum of
    every wait-time sample seen so far. Identity fields and
    ``is_complete_show`` follow the most recent delta.
    """

    user_id: str = ""
    source: int = 0
    video_id: str = ""
    show_count: int = 0
    tap_count: int = 0
    watch_count: int = 0
    is_complete_show: bool = False
    video_wait_time: int = 0
    send_whatsapp_count: int = 0
    share_count: int = 0
    download_count: int = 0
    return_count: int = 0

    def merge(self, delta: EngagementDelta) -> "StagingRecord":
        return StagingRecord(
            user_id=delta.user_id,
            source=delta.source,
            video_id=delta.video_id,
            show_count=self.show_count + delta.show_count,
            tap_count=self.tap_count + delta.tap_count,
            watch_count=self.watch_count + delta.watch_count,
            is_complete_show=delta.is_complete_show,
            video_wait_time=max(self.video_wait_time, delta.video_wait_time),
            send_whatsapp_count=self.send_whatsapp_count + delta.send_whatsapp_count,
            share_count=self.share_count + delta.share_count,
            download_count=self.download_count + delta.download_count,
            return_count=self.return_count + delta.return_count,
        )

    def finalize(self, day: date, created_at: datetime) -> "DurableRecord":
        return DurableRecord(
            **self.model_dump(),
            data_time=day,
            create_time=created_at,
        )


class DurableRecord(BaseModel):
    """Historical row written once per (user, day) by the flush."""

    user_id: str
    source: int
    video_id: str
    show_count: int
    tap_count: int
    watch_count: int
    is_complete_show: bool
    video_wait_time: int
    send_whatsapp_count: int
    share_count: int
    download_count: int
    return_count: int
    data_time: date
    create_time: datetime


class FlushRequest(BaseModel):
    day: date | None = Field(None, description="Day to flush; defaults to yesterday")


class ResponseEnvelope(BaseModel):
    """Uniform response body: status 1 on success, 0 on failure."""

    status: int
    message: str
    err_code: int
    data: Any = None

    @classmethod
    def success(cls, data: Any = None, message: str = "success") -> "ResponseEnvelope":
        return cls(status=1, message=message, err_code=ErrorCode.OK, data=data)

    @classmethod
    def failure(cls, code: ErrorCode, data: Any = None) -> "ResponseEnvelope":
        return cls(status=0, message=ERROR_MESSAGES[code], err_code=code, data=data)
