"""Capability interface every cache backend implements."""

from typing import Any, Dict, Optional, Protocol, runtime_checkable


@runtime_checkable
class CacheStore(Protocol):
    """TTL-aware key-value store backing the response cache.

    Implementations must be safe for concurrent use from simultaneous requests
    and raise :class:`~restcache.domain.exceptions.StoreUnavailable` on backend
    failure. Absent and expired entries are indistinguishable to callers.
    """

    backend_name: str

    async def get(self, key: str) -> Optional[Any]:
        """Return the stored payload, or ``None`` if absent or expired."""
        ...

    async def set(self, key: str, payload: Any, ttl_seconds: int) -> None:
        """Store ``payload`` until now + ``ttl_seconds``, replacing any entry.

        A non-positive TTL means "do not cache" and stores nothing.
        """
        ...

    async def delete(self, key: str) -> bool:
        """Logically delete ``key``; returns whether an entry was removed.

        Deletion is best-effort: a backend fronted by another cache layer may
        still serve the value until :meth:`flush_all` is called.

        Raises:
            MissingCacheKey: If ``key`` is empty
        """
        ...

    async def get_expiry(self, key: str) -> Optional[float]:
        """Absolute expiry (epoch seconds) of ``key``, or ``None`` if absent.

        Raises:
            MissingCacheKey: If ``key`` is empty
        """
        ...

    async def delete_all(self) -> None:
        """Reserved; currently a no-op on every backend."""
        ...

    async def flush_all(self) -> int:
        """Drop every entry in the cache namespace; returns the count dropped."""
        ...

    async def start(self) -> None:
        ...

    async def close(self) -> None:
        ...

    def get_stats(self) -> Dict[str, Any]:
        ...
