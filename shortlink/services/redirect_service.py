"""
Redirect Service

This service resolves short codes to target URLs on the redirect path.

Design Decisions:
- Cache first, store second: a cache hit never touches the database
- Any cache failure is a miss
- Lazy expiry: an expired link is deactivated on the first lookup that
  notices it, from either tier
- The store is only asked for active records, so a soft-deleted link is
  indistinguishable from a missing one
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from shortlink.core.clock import is_expired
from shortlink.core.exceptions import LinkExpiredError, LinkInactiveError, ShortCodeNotFoundError
from shortlink.services.link_cache import LinkCache
from shortlink.services.link_store import LinkStore

logger = logging.getLogger(__name__)


class RedirectService:
    """
    Service for handling URL redirections.

    This service encapsulates the read path, making it easy to
    move to a separate microservice if needed.
    """

    def __init__(self, session: AsyncSession, cache: Optional[LinkCache] = None):
        """
        Args:
            session: Async database session for database operations
            cache: Link cache; a disabled cache is used when omitted
        """
        self.store = LinkStore(session)
        self.cache = cache or LinkCache()

    async def resolve(self, short_code: str) -> str:
        """
        Resolve a short code to its target URL.

        Raises:
            ShortCodeNotFoundError: No active record has this code
            LinkExpiredError: The link's expiry has passed
            LinkInactiveError: A cached entry marks the link inactive
            DatabaseError: If the store fails
        """
        cached = await self.cache.get(short_code)
        if cached is not None:
            if is_expired(cached.expires_at):
                await self.cache.delete(short_code)
                await self._expire(short_code)
                raise LinkExpiredError(short_code)
            if not cached.active:
                raise LinkInactiveError(short_code)
            return cached.target_url

        link = await self.store.find_active_by_code(short_code)
        if link is None:
            raise ShortCodeNotFoundError(short_code)

        if is_expired(link.expires_at):
            await self.store.deactivate(link)
            logger.info(f"Short link {short_code} expired, deactivated")
            raise LinkExpiredError(short_code)

        await self.cache.set_link(link)
        return link.target_url

    async def _expire(self, short_code: str) -> None:
        if await self.store.deactivate_code(short_code):
            logger.info(f"Short link {short_code} expired, deactivated")

    async def get_link_info(self, short_code: str) -> dict:
        """Resolve and describe a link: {short_code, original_url}."""
        target_url = await self.resolve(short_code)
        return {"short_code": short_code, "original_url": target_url}
