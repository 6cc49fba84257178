"""FastAPI middleware for the RestCache HTTP interface."""

import time
import uuid
from typing import Awaitable, Callable, Dict, FrozenSet

from fastapi import Request
from fastapi.responses import Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from ...application.cache import ResponseCache
from ...config import Settings
from ...constants import CACHE_DIAGNOSTIC_HEADERS, HOP_BY_HOP_HEADERS
from ...domain.models import CachedResponse, RequestContext
from ...logging import LogEvent, LogRecord, debug

_EXCLUDED_HEADERS = HOP_BY_HOP_HEADERS | CACHE_DIAGNOSTIC_HEADERS
_EVENT_STREAM = "text/event-stream"


async def logging_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Attach request ID and timing headers.

    Generates a per-request UUID (``X-Request-ID``), measures wall-clock
    latency and stores both on ``request.state`` for downstream handlers.
    """
    if not hasattr(request.state, "request_id"):
        request.state.request_id = str(uuid.uuid4())
    if not hasattr(request.state, "start_time_monotonic"):
        request.state.start_time_monotonic = time.monotonic()

    response = await call_next(request)

    response.headers["X-Request-ID"] = request.state.request_id
    duration_ms = (time.monotonic() - request.state.start_time_monotonic) * 1000
    response.headers["X-Response-Time-ms"] = str(duration_ms)
    return response


def request_uri_from(request: Request) -> str:
    """Raw request target: the undecoded path plus ``?query`` when present."""
    raw_path = request.scope.get("raw_path")
    path = raw_path.decode("latin-1") if raw_path else request.url.path
    query = request.scope.get("query_string", b"").decode("latin-1")
    return f"{path}?{query}" if query else path


class ResponseCacheMiddleware(BaseHTTPMiddleware):
    """Hosts the cache's pre- and post-dispatch interceptors around each request.

    Only requests whose method is in ``cache_methods`` and whose path falls
    under ``cache_rest_prefix`` are intercepted. Downstream bodies are buffered
    into a :class:`CachedResponse` so they can be stored and replayed.
    """

    def __init__(self, app: ASGIApp, cache: ResponseCache, settings: Settings) -> None:
        super().__init__(app)
        self._cache = cache
        self._methods: FrozenSet[str] = frozenset(settings.cache_methods)
        self._prefix = settings.cache_rest_prefix

    def _should_intercept(self, request: Request) -> bool:
        if request.method not in self._methods:
            return False
        path = request.url.path
        # Match whole path segments only: /wp-json covers /wp-json/x, not /wp-jsonfoo
        return path == self._prefix or path.startswith(self._prefix.rstrip("/") + "/")

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if not self._should_intercept(request):
            return await call_next(request)

        # Disabling at runtime turns the middleware into a passthrough
        if self._cache.read_config().disabled:
            return await call_next(request)

        context = RequestContext(
            request_uri=request_uri_from(request),
            method=request.method,
            route=request.url.path,
            request_id=getattr(request.state, "request_id", None),
        )

        async with self._cache.request_cycle(context):
            cache_headers: Dict[str, str] = await self._cache.pre_dispatch({}, context)
            response = await call_next(request)

            content_type = response.headers.get("content-type", "")
            if content_type.startswith(_EVENT_STREAM):
                debug(
                    LogRecord(
                        event=LogEvent.CACHE_PASSTHROUGH.value,
                        message="Streaming response not buffered",
                        request_id=context.request_id,
                        data={"route": context.route},
                    )
                )
                response.headers.update(cache_headers)
                return response

            fresh = await capture_response(response)
            served = await self._cache.post_dispatch(
                fresh, handler=request.scope.get("endpoint"), context=context
            )

        if not isinstance(served, CachedResponse):
            served = fresh
        out = replay_response(served)
        out.headers.update(cache_headers)
        return out


async def capture_response(response: Response) -> CachedResponse:
    """Drain a downstream response into a storable envelope."""
    body_iterator = getattr(response, "body_iterator", None)
    if body_iterator is not None:
        chunks = []
        async for chunk in body_iterator:
            chunks.append(chunk.encode("utf-8") if isinstance(chunk, str) else chunk)
        body = b"".join(chunks)
    else:
        body = bytes(response.body)

    headers = {
        name: value
        for name, value in response.headers.items()
        if name.lower() not in _EXCLUDED_HEADERS
    }
    return CachedResponse(
        status_code=response.status_code,
        media_type=response.headers.get("content-type"),
        headers=headers,
        body=body,
    )


def replay_response(envelope: CachedResponse) -> Response:
    """Rebuild a Starlette response from a stored or freshly captured envelope."""
    headers = dict(envelope.headers)
    if envelope.media_type and "content-type" not in headers:
        headers["content-type"] = envelope.media_type
    return Response(
        content=envelope.body, status_code=envelope.status_code, headers=headers
    )
