"""
Database Models for the Link Service

This module defines the SQLModel database schemas for:
- ShortLink: Stores the mapping between short codes and target URLs
- ClickEvent: Stores the bounded click history of each link

Design Decisions:
- Separate ClickEvent table so history can be trimmed per link without
  rewriting the link row
- Unique index on code for fast lookups (most common operation)
- click_count is denormalized in ShortLink and never shrinks, even when the
  history is trimmed
- Derived user-agent and geo fields are stored at ingest time; they are
  nullable because older rows may not carry them
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlmodel import Column, Field, SQLModel

from shortlink.core.clock import utcnow


class ShortLink(SQLModel, table=True):
    """
    Main table storing short code mappings.

    Fields:
    - code: Unique short code (generated or user-supplied alias)
    - target_url: The URL the code redirects to
    - custom_alias: Set to the code when it was user-supplied
    - owner_id: Optional owner; None for anonymous links
    - expires_at: Optional absolute expiry; None never expires
    - active: False after soft delete or lazy expiry
    - click_count: Total clicks ever recorded
    - last_accessed: Time of the latest recorded click
    """
    __tablename__ = "short_links"
    __table_args__ = (
        Index("ix_short_links_code_active", "code", "active"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    code: str = Field(
        sa_column=Column(String(20), nullable=False, unique=True, index=True),
        max_length=20
    )
    target_url: str = Field(sa_column=Column(Text, nullable=False, index=True))
    custom_alias: Optional[str] = Field(
        default=None,
        sa_column=Column(String(20), nullable=True, index=True)
    )
    owner_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(128), nullable=True, index=True)
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True)
    )
    expires_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True, index=True)
    )
    active: bool = Field(default=True, sa_column=Column(Boolean, nullable=False, default=True))
    click_count: int = Field(default=0, sa_column=Column(Integer, nullable=False, default=0, index=True))
    last_accessed: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True)
    )

    @property
    def is_custom_alias(self) -> bool:
        return self.custom_alias is not None


class ClickEvent(SQLModel, table=True):
    """
    One recorded visit of a short link.

    Only the newest CLICK_HISTORY_LIMIT events are kept per link.
    """
    __tablename__ = "click_events"

    id: Optional[int] = Field(default=None, primary_key=True)
    link_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("short_links.id"), nullable=False, index=True)
    )
    timestamp: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True)
    )
    ip_address: Optional[str] = Field(default=None, sa_column=Column(String(45), nullable=True))  # IPv6 max length
    user_agent: Optional[str] = Field(default=None, sa_column=Column(String(512), nullable=True))
    referer: str = Field(default="direct", sa_column=Column(Text, nullable=False, default="direct"))

    browser: Optional[str] = Field(default=None, sa_column=Column(String(64), nullable=True))
    os: Optional[str] = Field(default=None, sa_column=Column(String(64), nullable=True))
    device_class: Optional[str] = Field(default=None, sa_column=Column(String(16), nullable=True))
    browser_version: Optional[str] = Field(default=None, sa_column=Column(String(32), nullable=True))
    os_version: Optional[str] = Field(default=None, sa_column=Column(String(32), nullable=True))
    device_model: Optional[str] = Field(default=None, sa_column=Column(String(128), nullable=True))
    country: Optional[str] = Field(default=None, sa_column=Column(String(8), nullable=True))
    region: Optional[str] = Field(default=None, sa_column=Column(String(16), nullable=True))
