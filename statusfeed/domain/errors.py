"""Error taxonomy shared by the ingest endpoint and the flush pipeline.

Codes keep the numbering clients of the feed server already understand:
1xxx parameter problems, 3xxx cache problems, 4xxx durable storage problems.
"""

from __future__ import annotations

from enum import IntEnum


class ErrorCode(IntEnum):
    OK = 0
    REQUEST_PARAM = 1000
    CACHE_EXEC = 3001
    SINK_EXEC = 4000


ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.OK: "success",
    ErrorCode.REQUEST_PARAM: "params err",
    ErrorCode.CACHE_EXEC: "redis exec fail",
    ErrorCode.SINK_EXEC: "sink exec fail",
}


class FeedError(Exception):
    code: ErrorCode = ErrorCode.OK

    def __init__(self, detail: str = ""):
        super().__init__(detail or ERROR_MESSAGES[self.code])
        self.detail = detail

    @property
    def message(self) -> str:
        return ERROR_MESSAGES[self.code]


class ParameterError(FeedError):
    """A delta is missing required fields or carries invalid values."""

    code = ErrorCode.REQUEST_PARAM


class CacheError(FeedError):
    """Redis could not be reached or refused a write."""

    code = ErrorCode.CACHE_EXEC


class SinkError(FeedError):
    """The durable sink rejected a batch."""

    code = ErrorCode.SINK_EXEC
