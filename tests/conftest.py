"""
Shared fixtures: an in-memory SQLite database and Redis test doubles.
"""

from datetime import timedelta
from typing import Optional

import pytest
import pytest_asyncio
from redis.exceptions import ConnectionError as RedisConnectionError

from shortlink.db.session import build_engine, build_session_maker, create_tables
from shortlink.services.link_cache import LinkCache

MEMORY_DATABASE_URL = "sqlite+aiosqlite://"


class InMemoryRedis:
    """Just enough of redis.asyncio.Redis for the link cache."""

    def __init__(self):
        self.data: dict[str, str] = {}
        self.ttls: dict[str, Optional[int]] = {}

    async def ping(self) -> bool:
        return True

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str, ex: Optional[int] = None) -> bool:
        self.data[key] = value
        self.ttls[key] = ex
        return True

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed

    async def aclose(self) -> None:
        return None


class UnreachableRedis:
    """Every command fails the way a dead server does."""

    def __init__(self):
        self.calls = 0

    async def _fail(self, *args, **kwargs):
        self.calls += 1
        raise RedisConnectionError("Error 111 connecting to redis.test:6379. Connection refused.")

    ping = get = set = delete = _fail

    async def aclose(self) -> None:
        return None


@pytest_asyncio.fixture
async def engine():
    engine = build_engine(MEMORY_DATABASE_URL)
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return build_session_maker(engine)


@pytest_asyncio.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def redis_client() -> InMemoryRedis:
    return InMemoryRedis()


@pytest.fixture
def cache(redis_client: InMemoryRedis) -> LinkCache:
    return LinkCache(redis_client, ttl_seconds=int(timedelta(hours=24).total_seconds()))


@pytest.fixture
def broken_cache() -> LinkCache:
    return LinkCache(UnreachableRedis(), ttl_seconds=86400)
