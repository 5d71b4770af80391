"""
FastAPI Endpoints for the Link Service

This module defines all REST API endpoints with minimal logic.
Endpoints only handle:
- Request parsing (Pydantic models)
- Building services from the request's session and process resources
- Shaping HTTP responses

Service exceptions propagate to the handlers in api.errors, which map
them to status codes. All business logic is in services.

Design Principles:
- Thin endpoints: no business rules here
- Service layer: All business logic
- Fire-and-forget: click tracking never delays the redirect
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from shortlink.api.request_context import build_click_context
from shortlink.api.schemas import (
    DashboardResponse,
    DeleteResponse,
    LinkAnalyticsResponse,
    LinkInfoResponse,
    ShortenRequest,
    ShortenResponse,
)
from shortlink.core.exceptions import ShortCodeNotFoundError
from shortlink.core.resources import ServiceResources, get_resources
from shortlink.core.setting import settings
from shortlink.core.validators import sanitize_short_code
from shortlink.db.session import get_session
from shortlink.services.redirect_service import RedirectService
from shortlink.services.stats_service import StatsService
from shortlink.services.url_service import URLShorteningService

router = APIRouter(prefix="/api")
redirect_router = APIRouter()


def build_short_url(short_code: str) -> str:
    return f"{settings.BASE_URL.rstrip('/')}/{short_code}"


def require_short_code(short_code: str) -> str:
    """Codes that fail the format check cannot exist: answer NotFound."""
    sanitized_code = sanitize_short_code(short_code)
    if not sanitized_code:
        raise ShortCodeNotFoundError(short_code)
    return sanitized_code


@router.post(
    "/url/shorten",
    response_model=ShortenResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a short URL",
    description="Takes a long URL and returns a shortened version, optionally with a custom alias and expiry"
)
async def create_short_url(
    body: ShortenRequest,
    session: AsyncSession = Depends(get_session),
    resources: ServiceResources = Depends(get_resources),
) -> ShortenResponse:
    url_service = URLShorteningService(session, cache=resources.cache)
    link = await url_service.create_short_link(
        body.url,
        alias=body.custom_alias,
        expires_in_days=body.expires_in_days,
        owner_id=body.owner_id,
    )

    return ShortenResponse(
        short_code=link.code,
        short_url=build_short_url(link.code),
        original_url=link.target_url,
        created_at=link.created_at,
        expires_at=link.expires_at,
    )


@router.get(
    "/url/{short_code}/info",
    response_model=LinkInfoResponse,
    summary="Describe a short URL",
)
async def get_url_info(
    short_code: str,
    session: AsyncSession = Depends(get_session),
    resources: ServiceResources = Depends(get_resources),
) -> LinkInfoResponse:
    short_code = require_short_code(short_code)
    info = await RedirectService(session, cache=resources.cache).get_link_info(short_code)
    return LinkInfoResponse(short_url=build_short_url(short_code), **info)


@router.delete(
    "/url/{short_code}",
    response_model=DeleteResponse,
    summary="Deactivate a short URL",
)
async def delete_short_url(
    short_code: str,
    session: AsyncSession = Depends(get_session),
    resources: ServiceResources = Depends(get_resources),
) -> DeleteResponse:
    short_code = require_short_code(short_code)
    await URLShorteningService(session, cache=resources.cache).delete_short_link(short_code)
    return DeleteResponse(success=True, message="URL deleted successfully")


@router.get(
    "/analytics/dashboard",
    response_model=DashboardResponse,
    summary="Dashboard analytics",
    description="Totals across active links plus breakdowns over the most recent links"
)
async def get_dashboard(
    owner_id: Optional[str] = None,
    session: AsyncSession = Depends(get_session),
) -> DashboardResponse:
    stats = await StatsService(session).get_dashboard_analytics(owner_id)
    return DashboardResponse(**stats)


@router.get(
    "/analytics/{short_code}",
    response_model=LinkAnalyticsResponse,
    summary="Get URL analytics",
    description="Returns click history and grouped statistics for a short URL"
)
async def get_url_analytics(
    short_code: str,
    session: AsyncSession = Depends(get_session),
) -> LinkAnalyticsResponse:
    short_code = require_short_code(short_code)
    stats = await StatsService(session).get_link_analytics(short_code)
    return LinkAnalyticsResponse(short_url=build_short_url(short_code), **stats)


@redirect_router.get(
    "/{short_code}",
    status_code=status.HTTP_302_FOUND,
    summary="Redirect to original URL",
    description="Takes a short code and redirects to the original long URL"
)
async def redirect_to_url(
    short_code: str,
    request: Request,
    session: AsyncSession = Depends(get_session),
    resources: ServiceResources = Depends(get_resources),
) -> RedirectResponse:
    """
    Redirect to the original URL for a given short code.

    The click is dispatched to the background before the response is
    returned; its outcome never affects the redirect.

    Raises:
        ShortCodeNotFoundError / LinkExpiredError / LinkInactiveError: mapped to 404
    """
    short_code = require_short_code(short_code)
    original_url = await RedirectService(session, cache=resources.cache).resolve(short_code)

    resources.dispatcher.dispatch(short_code, build_click_context(request))

    return RedirectResponse(
        url=original_url,
        status_code=status.HTTP_302_FOUND
    )
