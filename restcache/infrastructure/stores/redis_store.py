"""Redis-backed transient store."""

import time
from typing import Any, Awaitable, Callable, Dict, List, Optional

import orjson
import redis.asyncio as redis
from redis.exceptions import RedisError

from ...constants import CACHE_KEY_PREFIX, DEFAULT_STORE_TIMEOUT_SECONDS
from ...domain.exceptions import MissingCacheKey, StoreUnavailable
from ...domain.models import CachedResponse
from ...logging import LogEvent, LogRecord, error, info, preview_key, warning

_KIND_RESPONSE = "response"
_KIND_VALUE = "value"
_FLUSH_BATCH_SIZE = 500


def encode_payload(payload: Any) -> bytes:
    """Serialize a payload for storage, tagging response envelopes."""
    if isinstance(payload, CachedResponse):
        return orjson.dumps(
            {"kind": _KIND_RESPONSE, "value": orjson.Fragment(payload.model_dump_json())}
        )
    return orjson.dumps({"kind": _KIND_VALUE, "value": payload})


def decode_payload(raw: bytes) -> Any:
    doc = orjson.loads(raw)
    if not isinstance(doc, dict):
        raise ValueError("Stored value is not a tagged payload")
    if doc.get("kind") == _KIND_RESPONSE:
        return CachedResponse.model_validate_json(orjson.dumps(doc["value"]))
    return doc.get("value")


class RedisTransientStore:
    """
    Transient store backed by a Redis server.

    Expiry is delegated to Redis (``SET ... EX``). Every key written by the
    cache lives under the ``rest_api_cache_`` namespace, which is what
    :meth:`flush_all` scans; the rest of the database is never touched.
    """

    backend_name = "redis"

    def __init__(
        self,
        redis_url: Optional[str] = None,
        client: Optional[redis.Redis] = None,
        socket_timeout: float = DEFAULT_STORE_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        if client is None and not redis_url:
            raise ValueError("Either redis_url or client is required")
        self.redis_url = redis_url
        self._client = client
        self._socket_timeout = socket_timeout
        self._clock = clock
        self.error_count = 0

    @property
    def client(self) -> redis.Redis:
        if self._client is None:
            self._client = redis.from_url(
                self.redis_url,
                socket_connect_timeout=self._socket_timeout,
                socket_timeout=self._socket_timeout,
                retry_on_timeout=True,
                health_check_interval=30,
            )
        return self._client

    async def _run(self, operation: str, call: Callable[[], Awaitable[Any]]) -> Any:
        try:
            return await call()
        except (RedisError, TypeError, ValueError) as e:
            # TypeError covers unserializable payloads, ValueError a malformed URL
            self.error_count += 1
            raise StoreUnavailable(
                f"Redis {operation} failed: {e}",
                operation=operation,
                backend=self.backend_name,
            ) from e

    async def start(self) -> None:
        """Connect and verify the server answers ``PING``."""
        try:
            await self._run("ping", lambda: self.client.ping())
        except StoreUnavailable as e:
            error(
                LogRecord(
                    event=LogEvent.STORE_EVENT.value,
                    message="Failed to connect to Redis",
                    request_id=None,
                    data={"backend": self.backend_name},
                ),
                exc=e,
            )
            raise
        info(
            LogRecord(
                event=LogEvent.STORE_EVENT.value,
                message="Redis store started",
                request_id=None,
                data={"backend": self.backend_name},
            )
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def get(self, key: str) -> Optional[Any]:
        raw = await self._run("get", lambda: self.client.get(key))
        if raw is None:
            return None
        try:
            return decode_payload(raw)
        except (orjson.JSONDecodeError, ValueError) as e:
            warning(
                LogRecord(
                    event=LogEvent.STORE_EVENT.value,
                    message="Discarding undecodable cache entry",
                    request_id=None,
                    data={"cache_key": preview_key(key)},
                ),
                exc=e,
            )
            return None

    async def set(self, key: str, payload: Any, ttl_seconds: int) -> None:
        if not key:
            raise MissingCacheKey()
        if ttl_seconds <= 0:
            return
        async def _set() -> None:
            await self.client.set(key, encode_payload(payload), ex=ttl_seconds)

        await self._run("set", _set)

    async def delete(self, key: str) -> bool:
        if not key:
            raise MissingCacheKey()
        removed = await self._run("delete", lambda: self.client.delete(key))
        return removed > 0

    async def get_expiry(self, key: str) -> Optional[float]:
        if not key:
            raise MissingCacheKey()
        # TTL: -2 when the key is absent, -1 when it has no expiry
        ttl = await self._run("get_expiry", lambda: self.client.ttl(key))
        if ttl is None or ttl < 0:
            return None
        return self._clock() + ttl

    async def delete_all(self) -> None:
        return None

    async def flush_all(self) -> int:
        async def _flush() -> int:
            count = 0
            batch: List[bytes] = []
            async for key in self.client.scan_iter(match=f"{CACHE_KEY_PREFIX}*"):
                batch.append(key)
                if len(batch) >= _FLUSH_BATCH_SIZE:
                    count += await self.client.delete(*batch)
                    batch = []
            if batch:
                count += await self.client.delete(*batch)
            return count

        return await self._run("flush_all", _flush)

    def get_stats(self) -> Dict[str, Any]:
        return {
            "backend": self.backend_name,
            "error_count": self.error_count,
        }
