"""
Link Store

Persistence for short links and their click history. Every query the
services need goes through this class, and every SQLAlchemy failure is
converted to DatabaseError here, so nothing above this layer handles
driver exceptions.

Design Decisions:
- One store per session; callers own the session lifetime
- Click recording is a single transaction: increment, append, trim
- Soft delete only: rows are never removed by the service
"""

import functools
import logging
from collections.abc import Callable, Sequence
from datetime import datetime
from typing import Any, Optional, TypeVar

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shortlink.core.clock import utcnow
from shortlink.core.exceptions import DatabaseError, ShortCodeConflictError
from shortlink.db.models import ClickEvent, ShortLink

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def handle_database_errors(method: F) -> F:
    """
    Wrap store methods so driver errors surface as DatabaseError.

    The session is rolled back before re-raising so it stays usable.
    """

    @functools.wraps(method)
    async def wrapper(self, *args, **kwargs):
        try:
            return await method(self, *args, **kwargs)
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Store operation {method.__name__} failed: {e}")
            raise DatabaseError(f"{method.__name__} failed: {e}", original_error=e) from e

    return wrapper


class LinkStore:
    """
    Data access for ShortLink and ClickEvent rows.

    Lookup methods return None when nothing matches; they never raise for
    a missing row.
    """

    SORT_RECENT = "recent"
    SORT_CLICKS = "clicks"

    def __init__(self, session: AsyncSession):
        self.session = session

    @handle_database_errors
    async def find_by_code(self, code: str) -> Optional[ShortLink]:
        """Find a link by code regardless of its active state."""
        statement = select(ShortLink).where(ShortLink.code == code)
        result = await self.session.execute(statement)
        return result.scalar_one_or_none()

    @handle_database_errors
    async def find_active_by_code(self, code: str) -> Optional[ShortLink]:
        statement = select(ShortLink).where(
            ShortLink.code == code,
            ShortLink.active == True,  # noqa: E712
        )
        result = await self.session.execute(statement)
        return result.scalar_one_or_none()

    @handle_database_errors
    async def find_active_by_alias(self, alias: str) -> Optional[ShortLink]:
        statement = select(ShortLink).where(
            ShortLink.custom_alias == alias,
            ShortLink.active == True,  # noqa: E712
        ).limit(1)
        result = await self.session.execute(statement)
        return result.scalars().first()

    @handle_database_errors
    async def find_active_by_target_url(self, target_url: str) -> Sequence[ShortLink]:
        """All active links for a target URL, oldest first."""
        statement = (
            select(ShortLink)
            .where(ShortLink.target_url == target_url, ShortLink.active == True)  # noqa: E712
            .order_by(ShortLink.created_at, ShortLink.id)
        )
        result = await self.session.execute(statement)
        return result.scalars().all()

    @handle_database_errors
    async def code_exists(self, code: str) -> bool:
        """Check a code against all records, active or not."""
        statement = select(func.count(ShortLink.id)).where(ShortLink.code == code)
        result = await self.session.execute(statement)
        return (result.scalar() or 0) > 0

    @handle_database_errors
    async def add(self, link: ShortLink) -> ShortLink:
        """
        Insert a new link.

        Raises:
            ShortCodeConflictError: If the code is already taken by any record
        """
        self.session.add(link)
        try:
            await self.session.flush()
        except IntegrityError as e:
            await self.session.rollback()
            raise ShortCodeConflictError(link.code, original_error=e) from e
        await self.session.commit()
        await self.session.refresh(link)
        return link

    @handle_database_errors
    async def deactivate(self, link: ShortLink) -> ShortLink:
        statement = (
            update(ShortLink)
            .where(ShortLink.id == link.id)
            .values(active=False)
        )
        await self.session.execute(statement)
        await self.session.commit()
        link.active = False
        return link

    @handle_database_errors
    async def deactivate_code(self, code: str) -> bool:
        """Deactivate by code; returns False when no active row matched."""
        statement = (
            update(ShortLink)
            .where(ShortLink.code == code, ShortLink.active == True)  # noqa: E712
            .values(active=False)
        )
        result = await self.session.execute(statement)
        await self.session.commit()
        return result.rowcount > 0

    @handle_database_errors
    async def record_click(self, code: str, event: ClickEvent, history_limit: int) -> Optional[ShortLink]:
        """
        Record one click atomically.

        In one transaction: increment click_count with a database-level
        UPDATE (no read-modify-write), set last_accessed, append the event,
        and trim the history to the newest `history_limit` events.

        Returns:
            The updated link, or None if no link has this code
        """
        now = event.timestamp or utcnow()
        statement = (
            update(ShortLink)
            .where(ShortLink.code == code)
            .values(click_count=ShortLink.click_count + 1, last_accessed=now)
        )
        result = await self.session.execute(statement)
        if result.rowcount == 0:
            await self.session.rollback()
            return None

        link = (
            await self.session.execute(select(ShortLink).where(ShortLink.code == code))
        ).scalar_one()

        event.link_id = link.id
        self.session.add(event)
        await self.session.flush()

        await self._trim_history(link.id, history_limit)
        await self.session.commit()
        await self.session.refresh(link)
        return link

    async def _trim_history(self, link_id: int, history_limit: int) -> None:
        # id of the oldest event that survives the cut
        boundary_statement = (
            select(ClickEvent.id)
            .where(ClickEvent.link_id == link_id)
            .order_by(ClickEvent.id.desc())
            .offset(history_limit - 1)
            .limit(1)
        )
        boundary = (await self.session.execute(boundary_statement)).scalar_one_or_none()
        if boundary is None:
            return

        await self.session.execute(
            delete(ClickEvent).where(ClickEvent.link_id == link_id, ClickEvent.id < boundary)
        )

    @handle_database_errors
    async def click_history(self, link_id: int) -> Sequence[ClickEvent]:
        """Stored events for one link, oldest first."""
        statement = (
            select(ClickEvent)
            .where(ClickEvent.link_id == link_id)
            .order_by(ClickEvent.id)
        )
        result = await self.session.execute(statement)
        return result.scalars().all()

    @handle_database_errors
    async def clicks_for_links(self, link_ids: Sequence[int]) -> Sequence[ClickEvent]:
        if not link_ids:
            return []
        statement = (
            select(ClickEvent)
            .where(ClickEvent.link_id.in_(list(link_ids)))
            .order_by(ClickEvent.id)
        )
        result = await self.session.execute(statement)
        return result.scalars().all()

    def _dashboard_filter(self, owner_id: Optional[str]) -> list:
        conditions = [ShortLink.active == True]  # noqa: E712
        if owner_id:
            conditions.append(ShortLink.owner_id == owner_id)
        return conditions

    @handle_database_errors
    async def list_links(
        self,
        owner_id: Optional[str] = None,
        sort: str = SORT_RECENT,
        limit: int = 100,
    ) -> Sequence[ShortLink]:
        """Active links, newest first or most clicked first."""
        if sort == self.SORT_CLICKS:
            ordering = (ShortLink.click_count.desc(), ShortLink.created_at.desc())
        else:
            ordering = (ShortLink.created_at.desc(), ShortLink.id.desc())

        statement = (
            select(ShortLink)
            .where(*self._dashboard_filter(owner_id))
            .order_by(*ordering)
            .limit(limit)
        )
        result = await self.session.execute(statement)
        return result.scalars().all()

    @handle_database_errors
    async def count_links(self, owner_id: Optional[str] = None) -> int:
        statement = select(func.count(ShortLink.id)).where(*self._dashboard_filter(owner_id))
        result = await self.session.execute(statement)
        return result.scalar() or 0

    @handle_database_errors
    async def sum_clicks(self, owner_id: Optional[str] = None) -> int:
        statement = (
            select(func.coalesce(func.sum(ShortLink.click_count), 0))
            .where(*self._dashboard_filter(owner_id))
        )
        result = await self.session.execute(statement)
        return int(result.scalar() or 0)

    @handle_database_errors
    async def expire_before(self, moment: datetime) -> int:
        """
        Deactivate every active link whose expiry is at or before `moment`.

        Optional sweep; resolution never depends on it.
        """
        statement = (
            update(ShortLink)
            .where(
                ShortLink.active == True,  # noqa: E712
                ShortLink.expires_at.is_not(None),
                ShortLink.expires_at <= moment,
            )
            .values(active=False)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(statement)
        await self.session.commit()
        return result.rowcount
