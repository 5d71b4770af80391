"""
Statistics Service

This service handles retrieving analytics for short links.
Separated from the URL service so the read-heavy analytics path can move
to its own service later.

Design Decisions:
- Aggregation itself lives in services.analytics (pure functions)
- This service only loads rows and shapes the result
- Dashboard scope: active links, optionally one owner's
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from shortlink.core.exceptions import ShortCodeNotFoundError
from shortlink.core.setting import settings
from shortlink.db.models import ClickEvent, ShortLink
from shortlink.services import analytics
from shortlink.services.link_store import LinkStore


def serialize_click(event: ClickEvent) -> dict:
    return {
        "timestamp": event.timestamp,
        "ip_address": event.ip_address,
        "user_agent": event.user_agent,
        "referer": event.referer,
        "browser": event.browser,
        "os": event.os,
        "device": event.device_class,
        "browser_version": event.browser_version,
        "os_version": event.os_version,
        "device_model": event.device_model,
        "country": event.country,
        "region": event.region,
    }


def serialize_link_summary(link: ShortLink) -> dict:
    return {
        "short_code": link.code,
        "original_url": link.target_url,
        "click_count": link.click_count,
        "created_at": link.created_at,
        "expires_at": link.expires_at,
        "is_custom_alias": link.is_custom_alias,
    }


class StatsService:
    """
    Service for retrieving link statistics.

    Example:
        >>> stats = await StatsService(session).get_link_analytics("abc1234")
        >>> stats["unique_visitors"]
        2
    """

    def __init__(
        self,
        session: AsyncSession,
        recent_limit: int = settings.DASHBOARD_RECENT_LIMIT,
        top_limit: int = settings.DASHBOARD_TOP_LIMIT,
    ):
        self.store = LinkStore(session)
        self.recent_limit = recent_limit
        self.top_limit = top_limit

    async def get_link_analytics(self, short_code: str) -> dict:
        """
        Full analytics for one link, active or not.

        Note:
        - click_count is the lifetime total; `clicks` holds only the
          retained history, so the two diverge once history is trimmed

        Raises:
            ShortCodeNotFoundError: If no record has this code
            DatabaseError: If the store fails
        """
        link = await self.store.find_by_code(short_code)
        if link is None:
            raise ShortCodeNotFoundError(short_code)

        events = list(await self.store.click_history(link.id))

        return {
            "short_code": link.code,
            "original_url": link.target_url,
            "click_count": link.click_count,
            "created_at": link.created_at,
            "expires_at": link.expires_at,
            "last_accessed": link.last_accessed,
            "is_active": link.active,
            "clicks": [serialize_click(event) for event in events],
            **analytics.summarize_clicks(events),
        }

    async def get_dashboard_analytics(self, owner_id: Optional[str] = None) -> dict:
        """
        Totals over all active links plus breakdowns over the recent window.

        Raises:
            DatabaseError: If the store fails
        """
        recent = await self.store.list_links(owner_id, sort=LinkStore.SORT_RECENT, limit=self.recent_limit)
        top = await self.store.list_links(owner_id, sort=LinkStore.SORT_CLICKS, limit=self.top_limit)
        total_urls = await self.store.count_links(owner_id)
        total_clicks = await self.store.sum_clicks(owner_id)

        events = list(await self.store.clicks_for_links([link.id for link in recent]))

        return {
            "total_urls": total_urls,
            "total_clicks": total_clicks,
            "recent_urls": [serialize_link_summary(link) for link in recent],
            "top_urls": [serialize_link_summary(link) for link in top],
            "clicks_by_day": analytics.calculate_clicks_by_day(events),
            "clicks_by_referer": analytics.calculate_clicks_by_referer(events),
        }
