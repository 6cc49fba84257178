import time
from typing import Dict, Optional, Tuple, Type

from fastapi import Request
from fastapi.responses import ORJSONResponse

from ...domain.exceptions import (
    MissingCacheKey,
    MissingRequestURI,
    RestCacheException,
    StoreUnavailable,
)
from ...domain.models import CacheErrorType, ErrorDetail, ErrorResponse
from ...logging import LogEvent, LogRecord, error, warning


EXCEPTION_ERROR_MAP: Dict[Type[RestCacheException], Tuple[int, CacheErrorType]] = {
    MissingCacheKey: (400, CacheErrorType.MISSING_CACHE_KEY),
    MissingRequestURI: (400, CacheErrorType.MISSING_REQUEST_URI),
    StoreUnavailable: (503, CacheErrorType.STORE_UNAVAILABLE),
}


def get_error_details_from_exc(exc: Exception) -> Tuple[CacheErrorType, str, int]:
    """Maps caught exceptions to an error type, message and status code."""
    for exc_type, (status_code, error_type) in EXCEPTION_ERROR_MAP.items():
        if isinstance(exc, exc_type):
            return error_type, exc.message, status_code
    return (
        CacheErrorType.API_ERROR,
        "An unexpected internal server error occurred.",
        500,
    )


def build_error_response(
    error_type: CacheErrorType, message: str, status_code: int
) -> ORJSONResponse:
    """Creates a JSON error response in the ``{"type": "error", ...}`` shape."""
    error_resp_model = ErrorResponse(error=ErrorDetail(type=error_type, message=message))
    return ORJSONResponse(
        status_code=status_code, content=error_resp_model.model_dump(mode="json")
    )


async def log_and_return_error_response(
    request: Request,
    status_code: int,
    error_type: CacheErrorType,
    error_message: str,
    caught_exception: Optional[Exception] = None,
) -> ORJSONResponse:
    request_id = getattr(request.state, "request_id", "unknown")
    start_time_mono = getattr(request.state, "start_time_monotonic", time.monotonic())
    duration_ms = (time.monotonic() - start_time_mono) * 1000

    log_data = {
        "status_code": status_code,
        "duration_ms": duration_ms,
        "error_type": error_type.value,
        "path": request.url.path,
        "client_ip": request.client.host if request.client else "unknown",
    }

    record = LogRecord(
        event=LogEvent.REQUEST_FAILURE.value,
        message=f"Request failed: {error_message}",
        request_id=request_id,
        data=log_data,
    )
    if status_code >= 500:
        error(record, exc=caught_exception)
    else:
        warning(record, exc=caught_exception)

    return build_error_response(error_type, error_message, status_code)
