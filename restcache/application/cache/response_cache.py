"""Time-bounded response cache with pre- and post-dispatch interceptors."""

import time
from contextlib import asynccontextmanager
from typing import (
    Any,
    AsyncIterator,
    Awaitable,
    Callable,
    Dict,
    List,
    MutableMapping,
    Optional,
    Union,
)

import anyio

from .hooks import CacheHooks
from .keys import derive_cache_key
from .models import CacheOutcome
from .statistics import CacheStatistics
from .store import CacheStore
from .timefmt import format_expiry, human_time_diff
from ...constants import (
    CACHE_STATUS_CACHED,
    CACHE_STATUS_NOT_CACHED,
    DEFAULT_CACHE_TIMEZONE,
    DEFAULT_STORE_TIMEOUT_SECONDS,
    HEADER_CACHE_CONTROL,
    HEADER_CACHE_KEY,
    HEADER_CACHE_STATUS,
    HEADER_CACHE_TIMEOUT,
    HEADER_CACHE_TIMEOUT_DIFF,
)
from ...domain.exceptions import (
    MissingCacheKey,
    MissingRequestURI,
    RestCacheException,
    StoreUnavailable,
)
from ...domain.models import CacheConfig, CachedResponse, CacheTimeoutInfo, RequestContext
from ...logging import LogEvent, LogRecord, debug, info, preview_key, warning

ConfigSource = Union[CacheConfig, Callable[[], CacheConfig]]


class ResponseCache:
    """
    Response cache sitting between a request router and its handlers.

    The cache holds no entry state of its own: every request cycle re-reads the
    configuration, re-derives the key and re-queries the store. Two hooks are
    exposed to the host pipeline:

    - :meth:`pre_dispatch` runs before the handler and only annotates headers
    - :meth:`post_dispatch` runs after the handler and either stores the fresh
      response (miss) or replaces it with the stored one (hit)

    Store failures never escape either hook; they degrade to a cache miss.
    """

    def __init__(
        self,
        store: CacheStore,
        config: Optional[ConfigSource] = None,
        hooks: Optional[CacheHooks] = None,
        statistics: Optional[CacheStatistics] = None,
        single_flight: bool = False,
        show_key_header: bool = True,
        timezone_name: str = DEFAULT_CACHE_TIMEZONE,
        store_timeout_seconds: float = DEFAULT_STORE_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self._store = store
        self._config: ConfigSource = config if config is not None else CacheConfig()
        self._hooks = hooks or CacheHooks()
        self._statistics = statistics or CacheStatistics()
        self._single_flight = single_flight
        self._show_key_header = show_key_header
        self._timezone_name = timezone_name
        self._store_timeout = store_timeout_seconds
        self._clock = clock

        # Per-key locks for single-flight mode: key -> [lock, holders]
        self._flights: Dict[str, List[Any]] = {}
        self._flights_lock = anyio.Lock()

    @property
    def store(self) -> CacheStore:
        return self._store

    @property
    def hooks(self) -> CacheHooks:
        return self._hooks

    @property
    def statistics(self) -> CacheStatistics:
        return self._statistics

    def read_config(self) -> CacheConfig:
        """Read the configuration afresh for the current request cycle."""
        if callable(self._config):
            return self._config()
        return self._config

    def get_timeout(self, config: Optional[CacheConfig] = None) -> int:
        """TTL applied when storing a response, after ``timeout_override``."""
        config = config or self.read_config()
        return self._hooks.timeout_override(config.default_timeout_seconds)

    def cache_key(
        self, request_uri: Optional[str], context: Optional[RequestContext] = None
    ) -> str:
        """Derive the cache key for ``request_uri``.

        Raises:
            MissingRequestURI: If the URI is empty or the key transform fails
        """
        return derive_cache_key(request_uri, self._hooks.key_transform, context)

    async def _call_store(
        self, operation: str, func: Callable[..., Awaitable[Any]], *args: Any
    ) -> Any:
        try:
            with anyio.fail_after(self._store_timeout):
                return await func(*args)
        except TimeoutError as e:
            raise StoreUnavailable(
                f"Store {operation} timed out after {self._store_timeout}s",
                operation=operation,
                backend=self._store.backend_name,
            ) from e
        except RestCacheException:
            raise
        except Exception as e:
            raise StoreUnavailable(
                f"Store {operation} failed: {e}",
                operation=operation,
                backend=self._store.backend_name,
            ) from e

    async def _lookup(self, key: str, context: RequestContext) -> Optional[Any]:
        try:
            return await self._call_store("get", self._store.get, key)
        except StoreUnavailable as e:
            self._statistics.record_store_error()
            warning(
                LogRecord(
                    event=LogEvent.CACHE_EVENT.value,
                    message="Cache lookup failed, treating as miss",
                    request_id=context.request_id,
                    data={"cache_key": preview_key(key), "operation": e.operation},
                ),
                exc=e,
            )
            return None

    async def _lookup_expiry(self, key: str, context: RequestContext) -> Optional[float]:
        try:
            return await self._call_store("get_expiry", self._store.get_expiry, key)
        except StoreUnavailable as e:
            self._statistics.record_store_error()
            warning(
                LogRecord(
                    event=LogEvent.CACHE_EVENT.value,
                    message="Cache expiry lookup failed, skipping timeout headers",
                    request_id=context.request_id,
                    data={"cache_key": preview_key(key)},
                ),
                exc=e,
            )
            return None

    def _try_cache_key(self, context: RequestContext) -> Optional[str]:
        try:
            return self.cache_key(context.request_uri, context)
        except MissingRequestURI as e:
            self._statistics.record_key_failure()
            warning(
                LogRecord(
                    event=LogEvent.CACHE_KEY_FAILED.value,
                    message="Could not derive cache key",
                    request_id=context.request_id,
                    data={"route": context.route},
                ),
                exc=e,
            )
            return None

    async def pre_dispatch(
        self, headers: MutableMapping[str, str], context: RequestContext
    ) -> MutableMapping[str, str]:
        """Annotate outgoing headers with the cache state of this request.

        Never touches the body and never prevents the handler from running.
        When the request URI is absent no header is written at all.

        Args:
            headers: Mutable header mapping of the outgoing response
            context: Identity of the inbound request

        Returns:
            The same ``headers`` mapping
        """
        config = self.read_config()
        if config.disabled or not context.request_uri:
            return headers

        timeout = config.default_timeout_seconds
        max_age = self._hooks.max_age_override(timeout)
        s_max_age = self._hooks.s_max_age_override(timeout)
        if max_age is not None and s_max_age is not None:
            headers[HEADER_CACHE_CONTROL] = (
                f"public s-maxage={s_max_age} max-age={max_age} re-validate"
            )

        cache_key = self._try_cache_key(context)
        cached = await self._lookup(cache_key, context) if cache_key else None

        if cached is None:
            headers[HEADER_CACHE_STATUS] = CACHE_STATUS_NOT_CACHED
            return headers

        headers[HEADER_CACHE_STATUS] = CACHE_STATUS_CACHED
        if self._hooks.show_key_header(self._show_key_header):
            headers[HEADER_CACHE_KEY] = cache_key  # type: ignore[assignment]

        expires_at = await self._lookup_expiry(cache_key, context)  # type: ignore[arg-type]
        if expires_at is not None:
            headers[HEADER_CACHE_TIMEOUT] = format_expiry(expires_at, self._timezone_name)
            headers[HEADER_CACHE_TIMEOUT_DIFF] = human_time_diff(expires_at, self._clock())

        return headers

    @staticmethod
    def _is_storable(response: Any) -> bool:
        if isinstance(response, CachedResponse):
            return response.is_cacheable
        return bool(response)

    async def post_dispatch(
        self,
        response: Any,
        handler: Any = None,
        context: Optional[RequestContext] = None,
    ) -> Any:
        """Store a fresh response on a miss, or swap in the stored one on a hit.

        Args:
            response: Response computed by the handler
            handler: The handler that produced ``response`` (logging only)
            context: Identity of the inbound request

        Returns:
            The stored payload on a hit, otherwise ``response`` unchanged
        """
        context = context or RequestContext()
        config = self.read_config()

        if config.disabled or not context.request_uri:
            self._statistics.record_outcome(CacheOutcome.PASSTHROUGH)
            return response

        cache_key = self._try_cache_key(context)
        if cache_key is None:
            self._statistics.record_outcome(CacheOutcome.PASSTHROUGH)
            return response

        cached = await self._lookup(cache_key, context)
        handler_name = getattr(handler, "__name__", None) or context.route

        if cached is not None:
            self._statistics.record_hit()
            self._statistics.record_outcome(CacheOutcome.SERVE_CACHED)
            info(
                LogRecord(
                    event=LogEvent.CACHE_HIT.value,
                    message="Cache hit",
                    request_id=context.request_id,
                    data={"cache_key": preview_key(cache_key), "handler": handler_name},
                )
            )
            return cached

        self._statistics.record_miss()
        self._statistics.record_outcome(CacheOutcome.SERVE_FRESH)

        if not self._is_storable(response):
            debug(
                LogRecord(
                    event=LogEvent.CACHE_MISS.value,
                    message="Cache miss, response not storable",
                    request_id=context.request_id,
                    data={"cache_key": preview_key(cache_key), "handler": handler_name},
                )
            )
            return response

        timeout = self.get_timeout(config)
        try:
            await self._call_store("set", self._store.set, cache_key, response, timeout)
        except StoreUnavailable as e:
            self._statistics.record_store_error()
            warning(
                LogRecord(
                    event=LogEvent.CACHE_STORE_FAILED.value,
                    message="Failed to store response",
                    request_id=context.request_id,
                    data={"cache_key": preview_key(cache_key), "ttl_seconds": timeout},
                ),
                exc=e,
            )
            return response

        self._statistics.record_store()
        info(
            LogRecord(
                event=LogEvent.CACHE_STORE.value,
                message="Cache miss, response stored",
                request_id=context.request_id,
                data={
                    "cache_key": preview_key(cache_key),
                    "ttl_seconds": timeout,
                    "handler": handler_name,
                },
            )
        )
        return response

    @asynccontextmanager
    async def request_cycle(self, context: RequestContext) -> AsyncIterator[None]:
        """Scope one pre-dispatch → handler → post-dispatch round trip.

        In single-flight mode at most one cycle per cache key runs at a time;
        later requests for the same key wait and then observe the stored entry.
        Otherwise this is a no-op and concurrent misses may both execute the
        handler, the last write winning.
        """
        cache_key = None
        if self._single_flight and context.request_uri:
            cache_key = self._try_cache_key(context)

        if cache_key is None:
            yield
            return

        async with self._flights_lock:
            flight = self._flights.setdefault(cache_key, [anyio.Lock(), 0])
            flight[1] += 1

        try:
            async with flight[0]:
                yield
        finally:
            async with self._flights_lock:
                flight[1] -= 1
                if flight[1] == 0:
                    self._flights.pop(cache_key, None)

    async def delete_cache(self, cache_key: str, flush: bool = False) -> bool:
        """Logically delete one entry.

        Args:
            cache_key: Key (transient name) to remove
            flush: Also drop the whole cache namespace afterwards, for
                backends whose deletes are not immediately consistent

        Returns:
            Whether an entry was removed

        Raises:
            MissingCacheKey: If ``cache_key`` is empty
            StoreUnavailable: If the backend fails
        """
        if not cache_key:
            raise MissingCacheKey()

        removed = await self._call_store("delete", self._store.delete, cache_key)
        self._statistics.record_delete()
        info(
            LogRecord(
                event=LogEvent.CACHE_DELETE.value,
                message="Cache entry deleted" if removed else "Cache entry not found",
                request_id=None,
                data={"cache_key": preview_key(cache_key), "flush": flush},
            )
        )

        if flush:
            await self.flush_all()
        return bool(removed)

    async def delete_all_cache(self) -> None:
        """Reserved operation; the stores implement it as a no-op."""
        await self._call_store("delete_all", self._store.delete_all)

    async def flush_all(self) -> int:
        """Drop every entry in the cache namespace."""
        count = await self._call_store("flush_all", self._store.flush_all)
        self._statistics.record_flush(count)
        info(
            LogRecord(
                event=LogEvent.CACHE_FLUSH.value,
                message=f"Flushed {count} cache entries",
                request_id=None,
                data={"flushed": count},
            )
        )
        return count

    async def get_cache_timeout(self, cache_key: str) -> Optional[float]:
        """Absolute expiry of ``cache_key``, or ``None`` if it is not stored.

        Raises:
            MissingCacheKey: If ``cache_key`` is empty
        """
        if not cache_key:
            raise MissingCacheKey()
        return await self._call_store("get_expiry", self._store.get_expiry, cache_key)

    async def describe_timeout(self, cache_key: str) -> Optional[CacheTimeoutInfo]:
        """Expiry of ``cache_key`` rendered the same way as the timeout headers."""
        expires_at = await self.get_cache_timeout(cache_key)
        if expires_at is None:
            return None
        return CacheTimeoutInfo(
            key=cache_key,
            expires_at=expires_at,
            expires_at_formatted=format_expiry(expires_at, self._timezone_name),
            remaining=human_time_diff(expires_at, self._clock()),
        )

    async def start(self) -> None:
        await self._store.start()

    async def close(self) -> None:
        await self._store.close()

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics merged with store statistics."""
        config = self.read_config()
        stats = self._statistics.get_stats()
        stats["store"] = self._store.get_stats()
        stats["config"] = {
            "disabled": config.disabled,
            "default_timeout_seconds": config.default_timeout_seconds,
            "single_flight": self._single_flight,
        }
        return stats
