"""Cache management endpoints."""

from fastapi import APIRouter, Query, Request
from fastapi.responses import ORJSONResponse

from ....domain.models import CacheErrorType
from ..errors import build_error_response

router = APIRouter(prefix="/v1/cache")


@router.get("/stats")
async def get_cache_stats(request: Request) -> ORJSONResponse:
    """Get detailed cache statistics."""
    return ORJSONResponse(
        content={"response_cache": request.app.state.response_cache.get_stats()}
    )


@router.get("/entries/timeout")
async def get_cache_timeout(
    request: Request, key: str = Query(default="")
) -> ORJSONResponse:
    """Report when a stored entry expires.

    An empty ``key`` is rejected with ``missing_cache_key``; an absent entry
    yields a 404.
    """
    info = await request.app.state.response_cache.describe_timeout(key)
    if info is None:
        return build_error_response(
            CacheErrorType.NOT_FOUND, f"No cache entry for key '{key}'.", 404
        )
    return ORJSONResponse(content=info.model_dump())


@router.delete("/entries")
async def delete_cache_entry(
    request: Request,
    key: str = Query(default=""),
    flush: bool = Query(default=False),
) -> ORJSONResponse:
    """Delete one entry; ``flush=true`` also drops the whole cache namespace."""
    deleted = await request.app.state.response_cache.delete_cache(key, flush=flush)
    return ORJSONResponse(content={"key": key, "deleted": deleted, "flushed": flush})


@router.post("/flush")
async def flush_cache(request: Request) -> ORJSONResponse:
    """Drop every stored response."""
    count = await request.app.state.response_cache.flush_all()
    return ORJSONResponse(content={"status": "cache_flushed", "flushed": count})
