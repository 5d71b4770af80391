"""
Link Cache

Redis-backed fast path for short code lookups.

Keys:
    url:<code>  -> JSON {"targetUrl", "active", "expiresAt"}
    qr:<code>   -> owned by the QR image component; only invalidated here

Every operation is best-effort: connection problems, timeouts and bad
payloads are logged and reported as a miss (get) or ignored (set/delete).
The cache is never a source of truth.

Example:
    >>> cache = LinkCache(redis_client, ttl_seconds=86400)
    >>> await cache.set("abc1234", CachedLink(target_url="https://example.com"))
    >>> (await cache.get("abc1234")).target_url
    'https://example.com'
"""

import functools
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Optional

import redis.asyncio as redis
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from redis.exceptions import RedisError

from shortlink.core.setting import Settings, settings as default_settings
from shortlink.db.models import ShortLink

logger = logging.getLogger(__name__)

CACHE_ERRORS = (RedisError, PydanticValidationError, ValueError, TypeError)


def prefix_key(func: Callable) -> Callable:
    @functools.wraps(func)
    def wrapper(self, *args, **kwargs) -> str:
        key = func(self, *args, **kwargs)
        return f'{self.prefix}:{key}' if self.prefix is not None else key

    return wrapper


class CacheKeySchema:
    """Standardized cache keys, optionally namespaced, e.g. "shortlink:prod"."""

    def __init__(self, prefix: Optional[str] = None):
        if prefix is not None and not isinstance(prefix, str):
            raise TypeError(f'Prefix must be of type string (given type: {type(prefix)}).')

        self.prefix = prefix

    @prefix_key
    def url_key(self, code: str) -> str:
        return f'url:{code}'

    @prefix_key
    def qr_key(self, code: str) -> str:
        return f'qr:{code}'


class CachedLink(BaseModel):
    """Serialized form of a link in the cache."""
    model_config = ConfigDict(populate_by_name=True)

    target_url: str = Field(alias="targetUrl")
    active: bool = True
    expires_at: Optional[datetime] = Field(default=None, alias="expiresAt")

    @classmethod
    def from_link(cls, link: ShortLink) -> "CachedLink":
        return cls(target_url=link.target_url, active=link.active, expires_at=link.expires_at)

    def dumps(self) -> str:
        return self.model_dump_json(by_alias=True)


class LinkCache:
    """
    Best-effort cache of short code lookups.

    A cache built without a client is disabled: every get is a miss and
    writes are dropped.
    """

    def __init__(
        self,
        client: Optional[redis.Redis] = None,
        ttl_seconds: int = default_settings.CACHE_TTL_SECONDS,
        prefix: Optional[str] = None,
    ):
        self.client = client
        self.ttl_seconds = ttl_seconds
        self.keys = CacheKeySchema(prefix=prefix)

    @property
    def enabled(self) -> bool:
        return self.client is not None

    async def get(self, code: str) -> Optional[CachedLink]:
        """Return the cached entry, or None on miss or any cache failure."""
        if self.client is None:
            return None
        key = self.keys.url_key(code)
        try:
            payload = await self.client.get(key)
            if payload is None:
                return None
            return CachedLink.model_validate_json(payload)
        except CACHE_ERRORS as e:
            logger.warning(f"Cache read failed for {key}, treating as miss: {e}")
            return None

    async def set(self, code: str, entry: CachedLink, ttl_seconds: Optional[int] = None) -> bool:
        """Store an entry with the configured TTL; returns False if the write failed."""
        if self.client is None:
            return False
        key = self.keys.url_key(code)
        try:
            await self.client.set(key, entry.dumps(), ex=ttl_seconds or self.ttl_seconds)
            return True
        except CACHE_ERRORS as e:
            logger.warning(f"Failed to cache {key}: {e}")
            return False

    async def set_link(self, link: ShortLink) -> bool:
        return await self.set(link.code, CachedLink.from_link(link))

    async def delete(self, code: str) -> bool:
        """Evict the url entry for a code."""
        return await self._delete(self.keys.url_key(code))

    async def purge(self, code: str) -> bool:
        """Evict every entry derived from a code (url and qr)."""
        return await self._delete(self.keys.url_key(code), self.keys.qr_key(code))

    async def _delete(self, *keys: str) -> bool:
        if self.client is None:
            return False
        try:
            await self.client.delete(*keys)
            return True
        except CACHE_ERRORS as e:
            logger.warning(f"Failed to delete cache keys {', '.join(keys)}: {e}")
            return False

    async def close(self) -> None:
        if self.client is not None:
            await self.client.aclose()


async def connect_cache(config: Settings = default_settings) -> LinkCache:
    """
    Build the process-wide cache from settings.

    A Redis that does not answer PING at startup leaves caching disabled
    for the life of the process.
    """
    if not config.REDIS_URL:
        logger.info("REDIS_URL not set, caching disabled")
        return LinkCache(None, ttl_seconds=config.CACHE_TTL_SECONDS, prefix=config.CACHE_KEY_PREFIX)

    client = redis.Redis.from_url(
        config.REDIS_URL,
        decode_responses=True,
        socket_timeout=config.CACHE_SOCKET_TIMEOUT,
        socket_connect_timeout=config.CACHE_SOCKET_TIMEOUT,
    )
    try:
        await client.ping()
    except RedisError as e:
        logger.warning(f"Redis unreachable at startup, caching disabled: {e}")
        await client.aclose()
        client = None
    else:
        logger.info("Redis connected")

    return LinkCache(client, ttl_seconds=config.CACHE_TTL_SECONDS, prefix=config.CACHE_KEY_PREFIX)
