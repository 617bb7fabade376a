from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from statusfeed.core.logger import get_logger
from statusfeed.core.metrics import REQUEST_ERRORS
from statusfeed.domain.errors import ErrorCode, FeedError
from statusfeed.domain.models import ResponseEnvelope

logger = get_logger("statusfeed.api.errors")


def _envelope(code: ErrorCode) -> JSONResponse:
    # Handled failures are reported in the envelope, not the HTTP status.
    return JSONResponse(status_code=200, content=ResponseEnvelope.failure(code).model_dump())


async def validation_error_handler(request: Request, exc: RequestValidationError):
    REQUEST_ERRORS.labels(
        endpoint=request.url.path, err_code=int(ErrorCode.REQUEST_PARAM)
    ).inc()
    logger.warning(
        "request_params_invalid",
        extra={"path": request.url.path, "errors": exc.errors()},
    )
    return _envelope(ErrorCode.REQUEST_PARAM)


async def feed_error_handler(request: Request, exc: FeedError):
    REQUEST_ERRORS.labels(endpoint=request.url.path, err_code=int(exc.code)).inc()
    logger.warning(
        "request_failed",
        extra={"path": request.url.path, "err_code": int(exc.code), "error": str(exc)},
    )
    return _envelope(exc.code)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(FeedError, feed_error_handler)
