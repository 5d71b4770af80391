"""
Click Tracking Service

Records a single redirect: derives browser/OS/device and location from
the request context, then hands the event to the store, which increments
the counter, appends the event and trims the history in one transaction.

Design Decisions:
- Runs off the redirect path (see ClickDispatcher); the visitor never waits on it
- A code with no record is a silent no-op
- Geolocation is skipped for loopback, private and unknown addresses
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from shortlink.core.clock import utcnow
from shortlink.core.setting import settings
from shortlink.db.models import ClickEvent, ShortLink
from shortlink.services.geolocation import GeoLocator
from shortlink.services.link_store import LinkStore
from shortlink.services.user_agent_classifier import classify_user_agent

logger = logging.getLogger(__name__)

MAX_USER_AGENT_LENGTH = 512


@dataclass(frozen=True)
class ClickContext:
    """What the redirect endpoint knows about a visitor."""
    source_ip: Optional[str]
    user_agent: Optional[str]
    referer: str = "direct"


class ClickTracker:
    def __init__(
        self,
        session: AsyncSession,
        geo_locator: Optional[GeoLocator] = None,
        history_limit: int = settings.CLICK_HISTORY_LIMIT,
    ):
        self.store = LinkStore(session)
        self.geo_locator = geo_locator or GeoLocator()
        self.history_limit = history_limit

    def build_event(self, context: ClickContext) -> ClickEvent:
        agent = classify_user_agent(context.user_agent)
        location = self.geo_locator.lookup(context.source_ip)
        user_agent = context.user_agent[:MAX_USER_AGENT_LENGTH] if context.user_agent else None

        return ClickEvent(
            timestamp=utcnow(),
            ip_address=context.source_ip,
            user_agent=user_agent,
            referer=context.referer or "direct",
            browser=agent.browser,
            os=agent.os,
            device_class=agent.device,
            browser_version=agent.browser_version,
            os_version=agent.os_version,
            device_model=agent.device_model,
            country=location.country,
            region=location.region,
        )

    async def track(self, code: str, context: ClickContext) -> Optional[ShortLink]:
        """
        Record one click for `code`.

        Returns:
            The updated link, or None when no record has this code

        Raises:
            DatabaseError: If the store write fails
        """
        event = self.build_event(context)
        link = await self.store.record_click(code, event, self.history_limit)
        if link is None:
            logger.debug(f"Click for unknown code {code} ignored")
        return link
