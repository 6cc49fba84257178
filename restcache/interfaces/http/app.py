import logging
from contextlib import asynccontextmanager
from typing import Iterable, Optional

import anyio
from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import ORJSONResponse

from ...application.cache import CacheHooks, CacheStore, ResponseCache
from ...config import Settings
from ...domain.exceptions import RestCacheException, StoreUnavailable
from ...infrastructure.stores.factory import create_store
from ...logging import LogEvent, LogRecord, init_logging, info as log_info, shutdown_logging
from .errors import get_error_details_from_exc, log_and_return_error_response
from .middleware import ResponseCacheMiddleware, logging_middleware
from .routes.cache_admin import router as cache_admin_router
from .routes.health import router as health_router


def build_response_cache(
    settings: Settings,
    store: Optional[CacheStore] = None,
    hooks: Optional[CacheHooks] = None,
) -> ResponseCache:
    """Wire a :class:`ResponseCache` from settings, building the store if needed."""
    return ResponseCache(
        store=store if store is not None else create_store(settings),
        config=settings.cache_config,
        hooks=hooks,
        single_flight=settings.cache_single_flight,
        show_key_header=settings.cache_show_key_header,
        timezone_name=settings.cache_timezone,
        store_timeout_seconds=settings.cache_store_timeout_seconds,
    )


def create_app(
    settings: Settings,
    store: Optional[CacheStore] = None,
    hooks: Optional[CacheHooks] = None,
    routers: Iterable[APIRouter] = (),
) -> FastAPI:
    """Creates and configures the FastAPI application instance.

    Initializes logging, builds the response cache, sets up middleware and
    registers routes. The cache middleware is only installed when the cache is
    enabled at startup; disabling it later turns the middleware into a
    passthrough.

    Args:
        settings: Configuration settings object
        store: Cache store to use instead of the one selected by settings
        hooks: Extension points applied by the cache
        routers: Host REST routers whose responses are cached

    Returns:
        Fully configured FastAPI application instance
    """
    init_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        response_cache: ResponseCache = app.state.response_cache

        logging.info(f"Starting {response_cache.store.backend_name} cache store")
        try:
            await response_cache.start()
        except StoreUnavailable as e:
            # Lookups degrade to misses until the backend answers again
            logging.error(f"Cache store unavailable at startup: {str(e)}")

        try:
            async with anyio.create_task_group() as tg:
                cleanup_loop = getattr(response_cache.store, "run_cleanup_loop", None)
                if cleanup_loop is not None:
                    tg.start_soon(cleanup_loop)
                try:
                    yield
                finally:
                    tg.cancel_scope.cancel()
        finally:
            logging.info("Initiating application shutdown")
            try:
                await response_cache.close()
                logging.info("Cache store closed")
            except Exception as e:
                logging.error(f"Error closing cache store: {str(e)}")
            finally:
                shutdown_logging()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        docs_url=None,
        redoc_url=None,
        description="Caches REST API responses with time-bounded expiry.",
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
    )
    app.state.settings = settings
    app.state.response_cache = build_response_cache(settings, store, hooks)

    log_info(
        LogRecord(
            event=LogEvent.CONFIGURATION.value,
            message="Response cache configured",
            data={
                "disabled": settings.cache_disable,
                "default_timeout_seconds": settings.cache_default_timeout,
                "rest_prefix": settings.cache_rest_prefix,
                "methods": settings.cache_methods,
                "single_flight": settings.cache_single_flight,
            },
        )
    )

    # Registered first so that logging_middleware wraps it and request ids exist
    if not settings.cache_disable:
        app.add_middleware(
            ResponseCacheMiddleware,
            cache=app.state.response_cache,
            settings=settings,
        )
    app.middleware("http")(logging_middleware)

    for router in routers:
        app.include_router(router, tags=["API"])
    app.include_router(health_router, tags=["Health"])
    if settings.cache_admin_enabled:
        app.include_router(cache_admin_router, tags=["Cache"])

    @app.exception_handler(RestCacheException)
    async def restcache_exception_handler(request: Request, exc: RestCacheException):
        err_type, err_msg, err_status = get_error_details_from_exc(exc)
        return await log_and_return_error_response(
            request, err_status, err_type, err_msg, exc
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        err_type, err_msg, err_status = get_error_details_from_exc(exc)
        return await log_and_return_error_response(
            request, err_status, err_type, err_msg, caught_exception=exc
        )

    return app
