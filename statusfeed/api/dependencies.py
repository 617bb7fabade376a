from fastapi import Request

from statusfeed.core.clock import Clock
from statusfeed.services.flush_coordinator import FlushCoordinator
from statusfeed.services.ingest_service import IngestService


def get_ingest_service(request: Request) -> IngestService:
    return request.app.state.pipeline.ingest  # type: ignore[return-value]


def get_flush_coordinator(request: Request) -> FlushCoordinator:
    return request.app.state.pipeline.coordinator  # type: ignore[return-value]


def get_clock(request: Request) -> Clock:
    return request.app.state.clock  # type: ignore[return-value]
