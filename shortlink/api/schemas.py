"""
API Request and Response Schemas

This module defines all Pydantic models for API requests and responses.
Separated from endpoints to keep concerns separated and enable reuse.

Design Principles:
- Request models: Define input shape; business validation stays in the service layer
- Response models: Define output structure
- Separation: Can be imported by other modules (services, tests, etc.)
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ShortenRequest(BaseModel):
    """Request model for URL shortening endpoint."""
    model_config = ConfigDict(populate_by_name=True)

    url: str = Field(..., description="The long URL to shorten")
    custom_alias: Optional[str] = Field(
        default=None, alias="customAlias", description="Optional user-chosen short code"
    )
    expires_in_days: Optional[int] = Field(
        default=None, alias="expiresInDays", description="Days until the link expires"
    )
    owner_id: Optional[str] = Field(
        default=None, alias="ownerId", description="Owner of the link; omitted for anonymous links"
    )


class ShortenResponse(BaseModel):
    """Response model for URL shortening endpoint."""
    short_code: str = Field(..., description="The generated or custom short code")
    short_url: str = Field(..., description="The complete short URL")
    original_url: str = Field(..., description="The original long URL")
    created_at: datetime
    expires_at: Optional[datetime] = None


class LinkInfoResponse(BaseModel):
    short_code: str
    short_url: str
    original_url: str


class DeleteResponse(BaseModel):
    success: bool
    message: str


class ClickResponse(BaseModel):
    timestamp: datetime
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    referer: str = "direct"
    browser: Optional[str] = None
    os: Optional[str] = None
    device: Optional[str] = None
    browser_version: Optional[str] = None
    os_version: Optional[str] = None
    device_model: Optional[str] = None
    country: Optional[str] = None
    region: Optional[str] = None


class DailyVisits(BaseModel):
    visits: int
    visitors: int


class LinkAnalyticsResponse(BaseModel):
    """Response model for per-link analytics."""
    short_code: str
    short_url: str
    original_url: str
    click_count: int
    unique_visitors: int
    created_at: datetime
    expires_at: Optional[datetime] = None
    last_accessed: Optional[datetime] = None
    is_active: bool
    clicks: list[ClickResponse]
    clicks_by_day: dict[str, int]
    clicks_by_referer: dict[str, int]
    clicks_by_browser: dict[str, int]
    clicks_by_os: dict[str, int]
    clicks_by_device: dict[str, int]
    clicks_by_country: dict[str, int]
    clicks_by_region: dict[str, int]
    visits_and_visitors_by_day: dict[str, DailyVisits]


class LinkSummary(BaseModel):
    short_code: str
    original_url: str
    click_count: int
    created_at: datetime
    expires_at: Optional[datetime] = None
    is_custom_alias: bool


class DashboardResponse(BaseModel):
    """Response model for the dashboard endpoint."""
    total_urls: int
    total_clicks: int
    recent_urls: list[LinkSummary]
    top_urls: list[LinkSummary]
    clicks_by_day: dict[str, int]
    clicks_by_referer: dict[str, int]
