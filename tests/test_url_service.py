"""
Tests for creating and deleting short links.
"""

import asyncio
import re
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio

from shortlink.core.exceptions import (
    AliasAlreadyExistsError,
    InvalidAliasError,
    InvalidURLError,
    ShortCodeConflictError,
    ShortCodeNotFoundError,
    ValidationError,
)
from shortlink.db.models import ShortLink
from shortlink.db.session import build_engine, build_session_maker, create_tables
from shortlink.services.code_generator import ShortCodeGenerator
from shortlink.services.link_cache import CachedLink
from shortlink.services.link_store import LinkStore
from shortlink.services.redirect_service import RedirectService
from shortlink.services.url_service import URLShorteningService

CODE_PATTERN = re.compile(r"^[0-9a-zA-Z]{7}$")


class TestCreateShortLink:
    """Test the write path."""

    @pytest.mark.asyncio
    async def test_generated_code_round_trip(self, session, cache):
        service = URLShorteningService(session, cache=cache)

        link = await service.create_short_link("https://example.com/page")

        assert CODE_PATTERN.match(link.code)
        assert link.custom_alias is None
        assert link.active is True
        assert link.click_count == 0
        assert link.expires_at is None
        assert await RedirectService(session, cache=cache).resolve(link.code) == "https://example.com/page"

    @pytest.mark.asyncio
    async def test_create_populates_cache(self, session, cache):
        link = await URLShorteningService(session, cache=cache).create_short_link("https://example.com/page")

        assert await cache.get(link.code) == CachedLink(target_url="https://example.com/page")

    @pytest.mark.asyncio
    async def test_same_url_without_alias_is_deduplicated(self, session, cache):
        service = URLShorteningService(session, cache=cache)

        first = await service.create_short_link("https://example.com/page")
        second = await service.create_short_link("https://example.com/page", owner_id="someone-else", expires_in_days=3)

        assert second.code == first.code
        assert second.owner_id is None
        assert second.expires_at is None

    @pytest.mark.asyncio
    async def test_alias_requests_are_not_deduplicated(self, session, cache):
        service = URLShorteningService(session, cache=cache)

        first = await service.create_short_link("https://example.com/page")
        aliased = await service.create_short_link("https://example.com/page", alias="my-link")

        assert aliased.code == "my-link"
        assert aliased.code != first.code
        assert aliased.is_custom_alias

    @pytest.mark.asyncio
    async def test_deleted_link_is_not_reused(self, session, cache):
        service = URLShorteningService(session, cache=cache)

        first = await service.create_short_link("https://example.com/page")
        await service.delete_short_link(first.code)
        second = await service.create_short_link("https://example.com/page")

        assert second.code != first.code

    @pytest.mark.asyncio
    async def test_alias_collision(self, session, cache):
        service = URLShorteningService(session, cache=cache)
        await service.create_short_link("https://example.com/one", alias="my-link")

        with pytest.raises(ValidationError) as exc_info:
            await service.create_short_link("https://example.com/two", alias="my-link")

        assert isinstance(exc_info.value, AliasAlreadyExistsError)
        assert "already exists" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_concurrent_alias_loser_gets_validation_error(self, session, cache):
        """The unique index decides when both requests pass the pre-check."""
        service = URLShorteningService(session, cache=cache)
        await service.create_short_link("https://example.com/one", alias="my-link")

        with patch.object(LinkStore, "find_active_by_alias", AsyncMock(return_value=None)):
            with pytest.raises(AliasAlreadyExistsError):
                await service.create_short_link("https://example.com/two", alias="my-link")

    @pytest.mark.asyncio
    async def test_invalid_inputs_rejected_before_persisting(self, session, cache):
        service = URLShorteningService(session, cache=cache)

        with pytest.raises(InvalidURLError):
            await service.create_short_link("javascript:alert(1)")
        with pytest.raises(InvalidAliasError):
            await service.create_short_link("https://example.com", alias="admin")
        with pytest.raises(ValidationError):
            await service.create_short_link("https://example.com", expires_in_days=-1)

        assert await LinkStore(session).count_links() == 0

    @pytest.mark.asyncio
    async def test_internal_targets_rejected_in_production(self, session, cache):
        service = URLShorteningService(session, cache=cache, allow_internal=False)

        with pytest.raises(InvalidURLError) as exc_info:
            await service.create_short_link("http://192.168.0.1/router")

        assert exc_info.value.reason == "Local/internal URLs are not allowed in production"

    @pytest.mark.asyncio
    async def test_expiry_offset(self, session, cache):
        link = await URLShorteningService(session, cache=cache).create_short_link(
            "https://example.com/sale", expires_in_days=7
        )

        assert (link.expires_at - link.created_at).days in (6, 7)

    @pytest.mark.asyncio
    async def test_create_succeeds_with_cache_down(self, session, broken_cache):
        link = await URLShorteningService(session, cache=broken_cache).create_short_link("https://example.com/page")

        assert CODE_PATTERN.match(link.code)
        assert await RedirectService(session, cache=broken_cache).resolve(link.code) == "https://example.com/page"


class TestDeleteShortLink:

    @pytest.mark.asyncio
    async def test_delete_deactivates_and_purges_cache(self, session, cache, redis_client):
        service = URLShorteningService(session, cache=cache)
        link = await service.create_short_link("https://example.com/page", alias="my-link")
        redis_client.data["qr:my-link"] = "png-bytes"

        await service.delete_short_link("my-link")

        assert await cache.get("my-link") is None
        assert "qr:my-link" not in redis_client.data
        assert (await LinkStore(session).find_by_code("my-link")).active is False
        with pytest.raises(ShortCodeNotFoundError):
            await RedirectService(session, cache=cache).resolve(link.code)

    @pytest.mark.asyncio
    async def test_delete_unknown_code(self, session, cache):
        with pytest.raises(ShortCodeNotFoundError):
            await URLShorteningService(session, cache=cache).delete_short_link("missing")

    @pytest.mark.asyncio
    async def test_delete_twice_is_allowed(self, session, cache):
        service = URLShorteningService(session, cache=cache)
        await service.create_short_link("https://example.com/page", alias="my-link")

        await service.delete_short_link("my-link")
        await service.delete_short_link("my-link")


FIXED_MILLIS = 1_700_000_000_000


@pytest_asyncio.fixture
async def file_session_maker(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'shortlink.db'}")
    await create_tables(engine)
    yield build_session_maker(engine)
    await engine.dispose()


class TestGeneratedCodeConflicts:
    """Generated codes taken between the existence check and the insert."""

    @pytest.mark.asyncio
    async def test_conflicting_generated_code_is_regenerated(self, session, cache):
        await LinkStore(session).add(ShortLink(code="taken01", target_url="https://example.com/other"))
        service = URLShorteningService(session, cache=cache)

        with patch.object(service.generator, "generate", AsyncMock(side_effect=["taken01", "fresh01"])):
            link = await service.create_short_link("https://example.com/page")

        assert link.code == "fresh01"
        assert link.target_url == "https://example.com/page"
        assert (await LinkStore(session).find_by_code("taken01")).target_url == "https://example.com/other"

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, session, cache):
        await LinkStore(session).add(ShortLink(code="taken01", target_url="https://example.com/other"))
        service = URLShorteningService(session, cache=cache)
        generate = AsyncMock(return_value="taken01")

        with patch.object(service.generator, "generate", generate):
            with pytest.raises(ShortCodeConflictError):
                await service.create_short_link("https://example.com/page")

        assert generate.await_count == service.generator.max_attempts

    @pytest.mark.asyncio
    async def test_concurrent_creates_in_the_same_millisecond(self, file_session_maker):
        async def create(target_url: str) -> str:
            async with file_session_maker() as session:
                generator = ShortCodeGenerator(LinkStore(session), clock=lambda: FIXED_MILLIS)
                link = await URLShorteningService(session, generator=generator).create_short_link(target_url)
                return link.code

        codes = await asyncio.gather(create("https://example.com/a"), create("https://example.com/b"))

        assert len(set(codes)) == 2
        async with file_session_maker() as session:
            store = LinkStore(session)
            assert (await store.find_by_code(codes[0])).target_url == "https://example.com/a"
            assert (await store.find_by_code(codes[1])).target_url == "https://example.com/b"
