"""
Background Tasks

Runs click tracking after the redirect response has been produced, and
the periodic sweep that deactivates expired links.
Background work cannot use the endpoint's session, which is closed once
the endpoint returns, so each dispatched click and each sweep opens its own.
"""

import asyncio
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from shortlink.core.clock import utcnow
from shortlink.core.setting import settings
from shortlink.services.click_tracker import ClickContext, ClickTracker
from shortlink.services.geolocation import GeoLocator
from shortlink.services.link_store import LinkStore

logger = logging.getLogger(__name__)


class ClickDispatcher:
    """
    Fire-and-forget scheduler for click tracking.

    Failures are logged and dropped; they never reach the visitor.
    Pending tasks are held here so they are not garbage collected
    mid-flight, and `drain` waits for them at shutdown.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker,
        geo_locator: Optional[GeoLocator] = None,
        history_limit: int = settings.CLICK_HISTORY_LIMIT,
    ):
        self.session_maker = session_maker
        self.geo_locator = geo_locator or GeoLocator()
        self.history_limit = history_limit
        self._pending: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def dispatch(self, code: str, context: ClickContext) -> asyncio.Task:
        """Schedule tracking for one click and return immediately."""
        task = asyncio.create_task(self.track_click(code, context))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def track_click(self, code: str, context: ClickContext) -> None:
        try:
            async with self.session_maker() as session:
                tracker = ClickTracker(session, self.geo_locator, self.history_limit)
                await tracker.track(code, context)
        except Exception as e:
            logger.error(
                f"Failed to track click for {code}: {str(e)}",
                exc_info=True
            )

    async def drain(self) -> None:
        """Wait for every in-flight click to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


class ExpirySweeper:
    """
    Periodic task that deactivates links whose expiry has passed.

    Resolution checks expiry on every lookup regardless, so the sweep only
    keeps stored `active` flags and dashboard totals current. An interval
    of 0 disables it.
    """

    def __init__(self, session_maker: async_sessionmaker, interval_seconds: float):
        self.session_maker = session_maker
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.interval_seconds <= 0 or self.running:
            return
        self._task = asyncio.create_task(self._run())
        logger.info(f"Expiry sweep scheduled every {self.interval_seconds}s")

    async def sweep(self) -> int:
        """Deactivate every expired link now; returns how many were deactivated."""
        async with self.session_maker() as session:
            expired = await LinkStore(session).expire_before(utcnow())
        if expired:
            logger.info(f"Expiry sweep deactivated {expired} links")
        return expired

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.sweep()
            except Exception as e:
                logger.error(f"Expiry sweep failed: {str(e)}", exc_info=True)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
