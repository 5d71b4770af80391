"""
Tests for the Redis-backed link cache.
"""

import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest
from redis.exceptions import TimeoutError as RedisTimeoutError

from shortlink.core.setting import Settings
from shortlink.db.models import ShortLink
from shortlink.services.link_cache import CacheKeySchema, CachedLink, LinkCache, connect_cache


class TestCacheKeySchema:

    def test_unprefixed_keys(self):
        keys = CacheKeySchema()
        assert keys.url_key("abc1234") == "url:abc1234"
        assert keys.qr_key("abc1234") == "qr:abc1234"

    def test_prefixed_keys(self):
        keys = CacheKeySchema(prefix="shortlink:test")
        assert keys.url_key("abc1234") == "shortlink:test:url:abc1234"
        assert keys.qr_key("abc1234") == "shortlink:test:qr:abc1234"

    def test_prefix_must_be_string(self):
        with pytest.raises(TypeError):
            CacheKeySchema(prefix=42)


class TestLinkCache:
    """Round trips against the in-memory Redis double."""

    @pytest.mark.asyncio
    async def test_set_then_get(self, cache, redis_client):
        expires_at = datetime(2030, 1, 1, tzinfo=timezone.utc)
        await cache.set("abc1234", CachedLink(target_url="https://example.com", expires_at=expires_at))

        entry = await cache.get("abc1234")

        assert entry.target_url == "https://example.com"
        assert entry.active is True
        assert entry.expires_at == expires_at
        assert redis_client.ttls["url:abc1234"] == 86400

    @pytest.mark.asyncio
    async def test_payload_uses_camel_case_fields(self, cache, redis_client):
        await cache.set_link(ShortLink(code="abc1234", target_url="https://example.com"))

        payload = json.loads(redis_client.data["url:abc1234"])

        assert payload == {"targetUrl": "https://example.com", "active": True, "expiresAt": None}

    @pytest.mark.asyncio
    async def test_miss(self, cache):
        assert await cache.get("missing") is None

    @pytest.mark.asyncio
    async def test_corrupt_payload_is_a_miss(self, cache, redis_client):
        redis_client.data["url:abc1234"] = "{not json"
        assert await cache.get("abc1234") is None

    @pytest.mark.asyncio
    async def test_purge_removes_url_and_qr_entries(self, cache, redis_client):
        await cache.set("abc1234", CachedLink(target_url="https://example.com"))
        redis_client.data["qr:abc1234"] = "png-bytes"

        assert await cache.purge("abc1234") is True

        assert redis_client.data == {}

    @pytest.mark.asyncio
    async def test_disabled_cache(self):
        cache = LinkCache(None)

        assert cache.enabled is False
        assert await cache.set("abc1234", CachedLink(target_url="https://example.com")) is False
        assert await cache.get("abc1234") is None
        assert await cache.delete("abc1234") is False


class TestUnreachableCache:
    """Cache failures are absorbed, never raised."""

    @pytest.mark.asyncio
    async def test_every_operation_degrades(self, broken_cache):
        assert await broken_cache.get("abc1234") is None
        assert await broken_cache.set("abc1234", CachedLink(target_url="https://example.com")) is False
        assert await broken_cache.delete("abc1234") is False
        assert await broken_cache.purge("abc1234") is False
        assert broken_cache.client.calls == 4

    @pytest.mark.asyncio
    async def test_timeout_is_a_miss(self):
        client = AsyncMock()
        client.get.side_effect = RedisTimeoutError("Timeout reading from socket")

        assert await LinkCache(client).get("abc1234") is None


class TestConnectCache:

    @pytest.mark.asyncio
    async def test_no_redis_url_disables_cache(self):
        cache = await connect_cache(Settings(REDIS_URL=None))
        assert cache.enabled is False

    @pytest.mark.asyncio
    async def test_unreachable_redis_disables_cache(self):
        client = AsyncMock()
        client.ping.side_effect = RedisTimeoutError("Timeout connecting to server")

        with patch("shortlink.services.link_cache.redis.Redis.from_url", return_value=client) as from_url:
            cache = await connect_cache(Settings(REDIS_URL="redis://redis.test:6379/0", CACHE_SOCKET_TIMEOUT=0.5))

        assert cache.enabled is False
        client.aclose.assert_awaited_once()
        from_url.assert_called_once_with(
            "redis://redis.test:6379/0",
            decode_responses=True,
            socket_timeout=0.5,
            socket_connect_timeout=0.5,
        )

    @pytest.mark.asyncio
    async def test_reachable_redis_enables_cache(self):
        client = AsyncMock()

        with patch("shortlink.services.link_cache.redis.Redis.from_url", return_value=client):
            cache = await connect_cache(Settings(REDIS_URL="redis://redis.test:6379/0", CACHE_KEY_PREFIX="sl"))

        assert cache.enabled is True
        assert cache.keys.url_key("abc1234") == "sl:url:abc1234"
