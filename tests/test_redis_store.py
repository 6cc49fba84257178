"""Tests for the Redis-backed store against a mocked client."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from restcache.domain.exceptions import MissingCacheKey, StoreUnavailable
from restcache.domain.models import CachedResponse
from restcache.infrastructure.stores.redis_store import (
    RedisTransientStore,
    decode_payload,
    encode_payload,
)


async def _aiter(items):
    for item in items:
        yield item


@pytest.fixture
def client() -> AsyncMock:
    client = AsyncMock()
    client.get.return_value = None
    client.ttl.return_value = -2
    client.delete.return_value = 0
    return client


@pytest.fixture
def store(client, clock) -> RedisTransientStore:
    return RedisTransientStore(client=client, clock=clock)


class TestPayloadEncoding:
    """Test the serialized form of stored payloads."""

    def test_envelope_survives_encoding(self):
        envelope = CachedResponse(
            status_code=200,
            media_type="application/json",
            headers={"content-type": "application/json"},
            body=b'{"id": 1}',
        )
        assert decode_payload(encode_payload(envelope)) == envelope

    def test_opaque_payload_survives_encoding(self):
        assert decode_payload(encode_payload({"posts": [1, 2]})) == {"posts": [1, 2]}


class TestRedisTransientStore:
    """Test command mapping and error translation."""

    def test_requires_url_or_client(self):
        with pytest.raises(ValueError):
            RedisTransientStore()

    @pytest.mark.anyio
    async def test_set_uses_expiring_set(self, store, client):
        await store.set("rest_api_cache_a", {"x": 1}, 300)
        client.set.assert_awaited_once_with(
            "rest_api_cache_a", encode_payload({"x": 1}), ex=300
        )

    @pytest.mark.anyio
    async def test_non_positive_ttl_stores_nothing(self, store, client):
        await store.set("rest_api_cache_a", {"x": 1}, 0)
        client.set.assert_not_awaited()

    @pytest.mark.anyio
    async def test_get_decodes_stored_value(self, store, client):
        client.get.return_value = encode_payload({"x": 1})
        assert await store.get("rest_api_cache_a") == {"x": 1}

    @pytest.mark.anyio
    async def test_get_miss(self, store):
        assert await store.get("rest_api_cache_a") is None

    @pytest.mark.anyio
    async def test_undecodable_value_is_a_miss(self, store, client):
        client.get.return_value = b"not json"
        assert await store.get("rest_api_cache_a") is None

    @pytest.mark.anyio
    async def test_delete(self, store, client):
        client.delete.return_value = 1
        assert await store.delete("rest_api_cache_a") is True
        client.delete.return_value = 0
        assert await store.delete("rest_api_cache_a") is False

    @pytest.mark.anyio
    async def test_empty_key_raises(self, store):
        with pytest.raises(MissingCacheKey):
            await store.delete("")
        with pytest.raises(MissingCacheKey):
            await store.get_expiry("")
        with pytest.raises(MissingCacheKey):
            await store.set("", "payload", 60)

    @pytest.mark.anyio
    async def test_get_expiry_from_ttl(self, store, client, clock):
        client.ttl.return_value = 120
        assert await store.get_expiry("rest_api_cache_a") == clock.now + 120

    @pytest.mark.anyio
    @pytest.mark.parametrize("ttl", [-1, -2])
    async def test_get_expiry_absent_or_persistent(self, store, client, ttl):
        client.ttl.return_value = ttl
        assert await store.get_expiry("rest_api_cache_a") is None

    @pytest.mark.anyio
    async def test_flush_all_scans_cache_namespace(self, store, client):
        client.scan_iter = MagicMock(
            return_value=_aiter([b"rest_api_cache_a", b"rest_api_cache_b"])
        )
        client.delete.return_value = 2

        assert await store.flush_all() == 2
        client.scan_iter.assert_called_once_with(match="rest_api_cache_*")
        client.delete.assert_awaited_once_with(b"rest_api_cache_a", b"rest_api_cache_b")

    @pytest.mark.anyio
    async def test_flush_all_empty_namespace(self, store, client):
        client.scan_iter = MagicMock(return_value=_aiter([]))
        assert await store.flush_all() == 0
        client.delete.assert_not_awaited()

    @pytest.mark.anyio
    async def test_redis_error_becomes_store_unavailable(self, store, client):
        client.get.side_effect = RedisConnectionError("connection refused")

        with pytest.raises(StoreUnavailable) as exc_info:
            await store.get("rest_api_cache_a")

        assert exc_info.value.operation == "get"
        assert exc_info.value.backend == "redis"
        assert store.get_stats()["error_count"] == 1

    @pytest.mark.anyio
    async def test_unserializable_payload_becomes_store_unavailable(self, store, client):
        with pytest.raises(StoreUnavailable) as exc_info:
            await store.set("rest_api_cache_a", {"data": object()}, 60)

        assert exc_info.value.operation == "set"
        client.set.assert_not_awaited()
        assert store.get_stats()["error_count"] == 1

    @pytest.mark.anyio
    async def test_malformed_url_becomes_store_unavailable(self):
        store = RedisTransientStore(redis_url="not-a-redis-url")
        with pytest.raises(StoreUnavailable):
            await store.get("rest_api_cache_a")

    @pytest.mark.anyio
    async def test_start_pings(self, store, client):
        await store.start()
        client.ping.assert_awaited_once()

    @pytest.mark.anyio
    async def test_start_failure_raises(self, store, client):
        client.ping.side_effect = RedisConnectionError("down")
        with pytest.raises(StoreUnavailable):
            await store.start()

    @pytest.mark.anyio
    async def test_close_releases_client(self, store, client):
        await store.close()
        client.aclose.assert_awaited_once()
