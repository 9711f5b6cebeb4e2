"""
Database Models for the Click Attribution Service

This module defines the SQLModel database schemas for:
- AffiliateLink: The directory entry a visitor clicks through to. Owned by the
  link management side of the directory; this service only reads `status` and
  `affiliate_url` and increments `click_count`
- ClickEvent: One attribution record per accepted click, never updated or deleted here
- ClickEventCreate: Input for creating a ClickEvent

Design Decisions:
- UUID primary keys, matching the ids used in public URLs
- Separate click_events table so analytics can be partitioned independently
- click_count denormalized on affiliate_links for quick sorting by popularity
- Indexes on link_id, timestamp and session_id for the analytics queries
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, ForeignKey, Integer, String, Text, DateTime, Uuid
from sqlmodel import SQLModel, Field, Column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LinkStatus(str, Enum):
    """Lifecycle states of an affiliate link. Only `active` links receive redirects."""
    active = "active"
    inactive = "inactive"
    pending = "pending"


class AffiliateLink(SQLModel, table=True):
    """
    Affiliate directory entry.

    Fields:
    - id: UUID primary key
    - title: Display title
    - url: The merchant's plain URL
    - affiliate_url: Tracking URL visitors are redirected to
    - status: active / inactive / pending
    - click_count: Number of recorded clicks (only ever incremented)
    """
    __tablename__ = "affiliate_links"
    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'inactive', 'pending')",
            name="ck_affiliate_links_status",
        ),
    )

    id: UUID = Field(default_factory=uuid4, sa_column=Column(Uuid, primary_key=True))
    title: str = Field(sa_column=Column(String(200), nullable=False))
    url: str = Field(sa_column=Column(Text, nullable=False))
    affiliate_url: str = Field(sa_column=Column(Text, nullable=False))
    status: str = Field(
        default=LinkStatus.active.value,
        sa_column=Column(String(20), nullable=False, default=LinkStatus.active.value, index=True)
    )
    click_count: int = Field(
        default=0,
        sa_column=Column(Integer, nullable=False, default=0, index=True)
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True)
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )


class ClickEventCreate(SQLModel):
    """Everything needed to record a click except the id and timestamp."""
    link_id: UUID
    ip_address: str = Field(max_length=45)  # IPv6 max length
    session_id: str = Field(max_length=255)
    user_agent: Optional[str] = None
    referrer: Optional[str] = None
    country_code: Optional[str] = Field(default=None, min_length=2, max_length=2)


class ClickEvent(SQLModel, table=True):
    """
    Attribution record for one click.

    `timestamp` is assigned when the row is built, never taken from the client.
    `ip_address` is the transport-level origin of the request.
    """
    __tablename__ = "click_events"

    id: UUID = Field(default_factory=uuid4, sa_column=Column(Uuid, primary_key=True))
    link_id: UUID = Field(
        sa_column=Column(
            Uuid,
            ForeignKey("affiliate_links.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )
    )
    timestamp: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True)
    )
    user_agent: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    referrer: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    ip_address: str = Field(sa_column=Column(String(45), nullable=False))
    session_id: str = Field(sa_column=Column(String(255), nullable=False, index=True))
    country_code: Optional[str] = Field(default=None, sa_column=Column(String(2), nullable=True))
