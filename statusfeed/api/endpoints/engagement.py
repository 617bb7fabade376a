import time
from typing import Optional

from fastapi import APIRouter, Depends

from statusfeed.api.dependencies import (
    get_clock,
    get_flush_coordinator,
    get_ingest_service,
)
from statusfeed.core.clock import Clock, day_key, shifted_day
from statusfeed.core.config import settings
from statusfeed.core.logger import get_logger
from statusfeed.core.metrics import INGEST_LATENCY, INGEST_REQUESTS
from statusfeed.domain.errors import ParameterError
from statusfeed.domain.models import EngagementDelta, FlushRequest, ResponseEnvelope
from statusfeed.services.flush_coordinator import FlushCoordinator
from statusfeed.services.ingest_service import IngestService

router = APIRouter(prefix="/api")
logger = get_logger("statusfeed.api.engagement")


@router.post(
    "/recordop",
    response_model=ResponseEnvelope,
    summary="Record one engagement delta",
)
async def record_operation(
    delta: EngagementDelta, service: IngestService = Depends(get_ingest_service)
):
    start_time = time.perf_counter()

    INGEST_REQUESTS.inc()
    try:
        await service.record(delta)
        logger.debug(
            "engagement_recorded",
            extra={
                "user_id": delta.user_id,
                "video_id": delta.video_id,
                "source": delta.source,
            },
        )
        return ResponseEnvelope.success()
    finally:
        INGEST_LATENCY.observe(time.perf_counter() - start_time)


@router.post(
    "/flush",
    response_model=ResponseEnvelope,
    summary="Start a flush of one day's staged engagement",
)
async def trigger_flush(
    body: Optional[FlushRequest] = None,
    coordinator: FlushCoordinator = Depends(get_flush_coordinator),
    clock: Clock = Depends(get_clock),
):
    if body is not None and body.day is not None:
        # Flushing a day that is still open would take its lock too early.
        if body.day >= clock.now().date():
            raise ParameterError(f"day {body.day} has not ended yet")
        day = day_key(body.day)
    else:
        day = shifted_day(clock, settings.flush_day_offset)
    coordinator.launch(day)
    logger.info("flush_requested", extra={"day": day})
    return ResponseEnvelope.success(data={"day": day}, message="flush scheduled")
