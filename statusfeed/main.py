import asyncio
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from prometheus_fastapi_instrumentator import Instrumentator

from shared.constants import Environment
from statusfeed.api.errors import register_exception_handlers
from statusfeed.api.router import api_router
from statusfeed.core.clock import SystemClock
from statusfeed.core.config import settings
from statusfeed.core.logger import configure_logging, get_logger
from statusfeed.infrastructure.clickhouse.sink import ClickHouseSink
from statusfeed.infrastructure.redis.client import connect_redis
from statusfeed.startup import build_pipeline, init_clickhouse
from statusfeed.utils.concurrency import run_blocking

# Configure logging once and get service logger
configure_logging()
logger = get_logger("statusfeed.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("statusfeed_starting")
    app.state.ready_event = asyncio.Event()
    app.state.clock = SystemClock()
    app.state.redis = await connect_redis()
    app.state.clickhouse = await init_clickhouse()
    app.state.pipeline = build_pipeline(
        app.state.redis, ClickHouseSink(app.state.clickhouse), app.state.clock
    )

    scheduler_on = settings.flush_scheduler_enabled and Environment.runs_background_jobs(
        settings.app_environment
    )
    if scheduler_on:
        app.state.pipeline.scheduler.start()
    app.state.ready_event.set()
    logger.info(
        "statusfeed_ready",
        extra={
            "flush_scheduler": scheduler_on,
            "flush_on_ingest": settings.flush_on_ingest,
        },
    )
    try:
        yield
    finally:
        logger.info("statusfeed_stopping")
        app.state.ready_event.clear()
        await app.state.pipeline.scheduler.stop()
        await app.state.pipeline.coordinator.close()
        await app.state.redis.close()
        await run_blocking(app.state.clickhouse.close)


app = FastAPI(title="Status Feed Engagement API", version="0.1.0", lifespan=lifespan)
register_exception_handlers(app)
app.include_router(api_router)

instrumentator = Instrumentator(
    should_group_status_codes=True,
    should_ignore_untemplated=True,
    excluded_handlers=["/docs", "/openapi.json", "/metrics", "/healthz", "/readyz"],
)
instrumentator.instrument(app).expose(app)


def run() -> None:  # pragma: no cover - small wrapper
    uvicorn.run(app, host=settings.http_host, port=settings.http_port, log_config=None)


if __name__ == "__main__":  # pragma: no cover
    run()
