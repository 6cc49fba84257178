"""Store construction from application settings."""

from ...application.cache.store import CacheStore
from ...config import Settings
from ...domain.exceptions import ConfigurationError
from ...logging import LogEvent, LogRecord, info
from .memory_store import InMemoryTransientStore
from .redis_store import RedisTransientStore


def create_store(settings: Settings) -> CacheStore:
    """Build the cache store selected by ``REST_API_CACHE_STORE``.

    Raises:
        ConfigurationError: If the backend is unknown or lacks its settings
    """
    backend = settings.cache_store_backend

    if backend == "memory":
        store: CacheStore = InMemoryTransientStore(
            max_entries=settings.cache_max_entries,
            cleanup_interval_seconds=settings.cache_cleanup_interval,
        )
    elif backend == "redis":
        if not settings.cache_redis_url:
            raise ConfigurationError(
                "A Redis URL is required for the redis store",
                config_key="REST_API_CACHE_REDIS_URL",
            )
        store = RedisTransientStore(
            redis_url=settings.cache_redis_url,
            socket_timeout=settings.cache_store_timeout_seconds,
        )
    else:
        raise ConfigurationError(
            f"Unknown cache store backend: {backend}",
            config_key="REST_API_CACHE_STORE",
        )

    info(
        LogRecord(
            event=LogEvent.CONFIGURATION.value,
            message=f"Using {store.backend_name} cache store",
            data={"backend": store.backend_name},
        )
    )
    return store
