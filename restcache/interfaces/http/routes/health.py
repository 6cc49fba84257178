from datetime import datetime, timezone

from fastapi import APIRouter, Request
from fastapi.responses import ORJSONResponse

from ....logging import LogEvent, LogRecord, debug

router = APIRouter()


@router.get("/", include_in_schema=False)
async def root_health_check(request: Request) -> ORJSONResponse:
    """Check basic API health and availability.

    Returns:
        ORJSONResponse: Status 'ok', the current UTC timestamp and a short
        summary of the response cache.
    """
    settings = request.app.state.settings
    response_cache = getattr(request.app.state, "response_cache", None)

    cache_info = {
        "enabled": not settings.cache_disable,
        "backend": response_cache.store.backend_name if response_cache else None,
        "default_timeout_seconds": settings.cache_default_timeout,
    }
    debug(
        LogRecord(
            event=LogEvent.HEALTH_CHECK.value,
            message="Health check",
            request_id=getattr(request.state, "request_id", None),
            data=cache_info,
        )
    )
    return ORJSONResponse(
        {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "cache": cache_info,
        }
    )
