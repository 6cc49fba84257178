"""In-process transient store with TTL expiry and LRU bounds."""

import time
from collections import OrderedDict
from typing import Any, Callable, Dict, List, Optional

import anyio

from ...application.cache.models import CacheEntry
from ...constants import (
    DEFAULT_CACHE_CLEANUP_INTERVAL_SECONDS,
    DEFAULT_CACHE_MAX_ENTRIES,
)
from ...domain.exceptions import MissingCacheKey
from ...logging import LogEvent, LogRecord, debug, info, preview_key, warning


class InMemoryTransientStore:
    """
    Transient store kept in process memory.

    Entries expire lazily on read and eagerly through a periodic cleanup loop.
    When ``max_entries`` is reached the least recently used entry is evicted
    to make room. Safe for concurrent use within one event loop.
    """

    backend_name = "memory"

    def __init__(
        self,
        max_entries: int = DEFAULT_CACHE_MAX_ENTRIES,
        cleanup_interval_seconds: int = DEFAULT_CACHE_CLEANUP_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self._cleanup_interval = cleanup_interval_seconds
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = anyio.Lock()
        self.eviction_count = 0
        self.expired_count = 0

    async def start(self) -> None:
        return None

    async def close(self) -> None:
        return None

    async def run_cleanup_loop(self) -> None:
        """Evict expired entries every ``cleanup_interval_seconds`` until cancelled."""
        if self._cleanup_interval <= 0:
            return
        while True:
            await anyio.sleep(self._cleanup_interval)
            try:
                await self.evict_expired()
            except Exception as e:
                warning(
                    LogRecord(
                        event=LogEvent.STORE_EVENT.value,
                        message=f"Error in cache cleanup: {e}",
                        request_id=None,
                        data={"backend": self.backend_name},
                    ),
                    exc=e,
                )

    async def get(self, key: str) -> Optional[Any]:
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(self._clock()):
                self._drop(key)
                self.expired_count += 1
                return None
            self._entries.move_to_end(key)
            return entry.payload

    async def set(self, key: str, payload: Any, ttl_seconds: int) -> None:
        if not key:
            raise MissingCacheKey()
        if ttl_seconds <= 0:
            return

        now = self._clock()
        async with self._lock:
            self._entries.pop(key, None)
            while len(self._entries) >= self.max_entries:
                self._evict_lru()
            self._entries[key] = CacheEntry(
                key=key, payload=payload, expires_at=now + ttl_seconds, created_at=now
            )

    async def delete(self, key: str) -> bool:
        if not key:
            raise MissingCacheKey()
        async with self._lock:
            return self._drop(key) is not None

    async def get_expiry(self, key: str) -> Optional[float]:
        if not key:
            raise MissingCacheKey()
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None or entry.is_expired(self._clock()):
                return None
            return entry.expires_at

    async def delete_all(self) -> None:
        return None

    async def flush_all(self) -> int:
        async with self._lock:
            count = len(self._entries)
            self._entries.clear()
        return count

    async def evict_expired(self) -> List[str]:
        """Remove every expired entry; returns the evicted keys."""
        now = self._clock()
        async with self._lock:
            expired = [k for k, e in self._entries.items() if e.is_expired(now)]
            for key in expired:
                self._drop(key)
            self.expired_count += len(expired)

        if expired:
            info(
                LogRecord(
                    event=LogEvent.STORE_EVENT.value,
                    message=f"Evicted {len(expired)} expired entries",
                    request_id=None,
                    data={"evicted_count": len(expired)},
                )
            )
        return expired

    def _drop(self, key: str) -> Optional[CacheEntry]:
        return self._entries.pop(key, None)

    def _evict_lru(self) -> None:
        key, entry = self._entries.popitem(last=False)
        self.eviction_count += 1
        debug(
            LogRecord(
                event=LogEvent.STORE_EVENT.value,
                message="Evicted LRU cache entry",
                request_id=None,
                data={"evicted_key": preview_key(key), "expires_at": entry.expires_at},
            )
        )

    def __len__(self) -> int:
        return len(self._entries)

    def get_stats(self) -> Dict[str, Any]:
        return {
            "backend": self.backend_name,
            "size": len(self._entries),
            "max_entries": self.max_entries,
            "eviction_count": self.eviction_count,
            "expired_count": self.expired_count,
        }
