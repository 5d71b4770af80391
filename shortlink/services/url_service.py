"""
URL Shortening Service

This service handles the write side of short links:
- Validating target URLs, aliases and expiry offsets
- De-duplicating non-aliased requests for an already shortened URL
- Generating or accepting the short code and persisting the record
- Soft-deleting links and purging their cache entries

Design Decisions:
- Validation runs before anything is persisted
- De-duplication: the existing active record wins; its owner and expiry
  are left untouched
- Aliases are unique among active records; the unique index on the code
  column settles concurrent requests for the same alias
- A generated code lost to a concurrent insert is regenerated, up to
  SHORT_CODE_MAX_ATTEMPTS times
- Cache population is best-effort; a cache outage never fails a create
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from shortlink.core.clock import expiry_from_days, is_expired
from shortlink.core.exceptions import (
    AliasAlreadyExistsError,
    ShortCodeConflictError,
    ShortCodeNotFoundError,
)
from shortlink.core.setting import settings
from shortlink.core.validators import validate_alias, validate_expiration_days, validate_url
from shortlink.db.models import ShortLink
from shortlink.services.code_generator import ShortCodeGenerator
from shortlink.services.link_cache import LinkCache
from shortlink.services.link_store import LinkStore

logger = logging.getLogger(__name__)


class URLShorteningService:
    """
    Core business logic for creating and deleting short links.

    Separated from the API layer for testability; the session, cache and
    generator are injected.
    """

    def __init__(
        self,
        session: AsyncSession,
        cache: Optional[LinkCache] = None,
        generator: Optional[ShortCodeGenerator] = None,
        allow_internal: Optional[bool] = None,
    ):
        """
        Args:
            session: Database session
            cache: Link cache; a disabled cache is used when omitted
            generator: Short code generator; built on the same store when omitted
            allow_internal: Accept localhost/private targets (defaults to "not production")
        """
        self.store = LinkStore(session)
        self.cache = cache or LinkCache()
        self.generator = generator or ShortCodeGenerator(self.store)
        self.allow_internal = (
            not settings.is_production if allow_internal is None else allow_internal
        )

    async def find_reusable_link(self, target_url: str) -> Optional[ShortLink]:
        """Oldest active, unexpired link already pointing at target_url."""
        for link in await self.store.find_active_by_target_url(target_url):
            if not is_expired(link.expires_at):
                return link
        return None

    async def create_short_link(
        self,
        target_url: str,
        alias: Optional[str] = None,
        expires_in_days: Optional[int] = None,
        owner_id: Optional[str] = None,
    ) -> ShortLink:
        """
        Create a short link, or return the existing one for a non-aliased URL.

        Args:
            target_url: The long URL to shorten
            alias: Optional user-chosen code; empty means generate one
            expires_in_days: Days from now until expiry; 0 expires immediately
            owner_id: Optional owner; None for anonymous links

        Returns:
            The persisted ShortLink

        Raises:
            ValidationError: Bad URL, alias or expiry, or alias already taken
            DatabaseError: If the store fails
        """
        alias = alias or None
        validate_url(target_url, allow_internal=self.allow_internal)
        if alias is not None:
            validate_alias(alias)
        validate_expiration_days(expires_in_days)

        if alias is None:
            existing = await self.find_reusable_link(target_url)
            if existing is not None:
                logger.debug(f"Reusing {existing.code} for already shortened URL")
                return existing
        elif await self.store.find_active_by_alias(alias) is not None:
            raise AliasAlreadyExistsError(alias)

        expires_at = expiry_from_days(expires_in_days)
        attempts = 0
        while True:
            attempts += 1
            code = alias if alias is not None else await self.generator.generate()
            link = ShortLink(
                code=code,
                target_url=target_url,
                custom_alias=alias,
                owner_id=owner_id,
                expires_at=expires_at,
            )
            try:
                link = await self.store.add(link)
                break
            except ShortCodeConflictError:
                if alias is not None:
                    raise AliasAlreadyExistsError(alias)
                # A concurrent create took the generated code between the check and the insert
                if attempts >= self.generator.max_attempts:
                    raise
                logger.warning(f"Generated code {code} was taken concurrently, retrying")

        await self.cache.set_link(link)
        logger.info(f"Created short link {link.code}")
        return link

    async def delete_short_link(self, short_code: str) -> None:
        """
        Soft-delete a link and purge every cache entry derived from its code.

        Raises:
            ShortCodeNotFoundError: If no record has this code, active or not
            DatabaseError: If the store fails
        """
        link = await self.store.find_by_code(short_code)
        if link is None:
            raise ShortCodeNotFoundError(short_code)

        await self.store.deactivate(link)
        await self.cache.purge(short_code)
        logger.info(f"Deactivated short link {short_code}")
