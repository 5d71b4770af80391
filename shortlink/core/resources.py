"""
Service Resources

Process-wide handles built once at startup and torn down at shutdown:
the database engine and session factory, the link cache, the geolocator,
the click dispatcher and the expiry sweep. They live on
`app.state.resources` and reach request handlers through FastAPI
dependencies; nothing here is a module-level global.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from shortlink.core.setting import Settings, settings as default_settings
from shortlink.db.session import build_engine, build_session_maker, create_tables
from shortlink.services.background_tasks import ClickDispatcher, ExpirySweeper
from shortlink.services.geolocation import GeoLocator
from shortlink.services.link_cache import LinkCache, connect_cache

logger = logging.getLogger(__name__)


@dataclass
class ServiceResources:
    engine: AsyncEngine
    session_maker: async_sessionmaker
    cache: LinkCache
    geo_locator: GeoLocator
    dispatcher: ClickDispatcher
    sweeper: Optional[ExpirySweeper] = None

    async def close(self) -> None:
        """Stop the expiry sweep, drain pending clicks, then release the cache, geolocator and engine."""
        if self.sweeper is not None:
            await self.sweeper.stop()
        await self.dispatcher.drain()
        await self.cache.close()
        self.geo_locator.close()
        await self.engine.dispose()
        logger.info("Service resources closed")


async def build_resources(
    config: Settings = default_settings,
    cache: Optional[LinkCache] = None,
    geo_locator: Optional[GeoLocator] = None,
) -> ServiceResources:
    """
    Build every long-lived handle from settings.

    `cache` and `geo_locator` may be supplied to override the configured ones.
    """
    engine = build_engine(config.DATABASE_URL)
    if config.DATABASE_AUTO_CREATE:
        await create_tables(engine)
    session_maker = build_session_maker(engine)

    if cache is None:
        cache = await connect_cache(config)
    if geo_locator is None:
        geo_locator = GeoLocator.from_path(config.GEOIP_DATABASE_PATH)

    dispatcher = ClickDispatcher(session_maker, geo_locator, history_limit=config.CLICK_HISTORY_LIMIT)
    sweeper = ExpirySweeper(session_maker, config.EXPIRY_SWEEP_INTERVAL_SECONDS)
    sweeper.start()

    logger.info(f"Service resources ready (cache {'enabled' if cache.enabled else 'disabled'})")
    return ServiceResources(
        engine=engine,
        session_maker=session_maker,
        cache=cache,
        geo_locator=geo_locator,
        dispatcher=dispatcher,
        sweeper=sweeper,
    )


def get_resources(request: Request) -> ServiceResources:
    """Dependency function for FastAPI to reach the process-wide resources."""
    return request.app.state.resources
