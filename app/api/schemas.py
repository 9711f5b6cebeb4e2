"""
API Request and Response Schemas

This module defines all Pydantic models for API requests and responses.
Separated from endpoints so the attribution pipeline can validate request
bodies itself (it has to rate limit before it validates).

Design Principles:
- Request models: Define input validation
- Response models: Define output structure
- Error bodies: Stable `error` / `message` pair for every failure
"""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from app.core.validators import (
    COUNTRY_CODE_LENGTH,
    SESSION_ID_MAX_LENGTH,
    is_valid_referrer,
    parse_link_id,
)


class ClickEventRequest(BaseModel):
    """Request body for POST /api/clicks."""
    link_id: UUID = Field(..., description="Id of the clicked affiliate link")
    user_agent: Optional[str] = Field(
        default=None,
        description="Client user agent; defaults to the User-Agent header"
    )
    referrer: Optional[str] = Field(
        default=None,
        description="Absolute URL or empty string; defaults to the Referer header"
    )
    session_id: Optional[str] = Field(
        default=None,
        max_length=SESSION_ID_MAX_LENGTH,
        description="Visit correlation id; allocated by the server when omitted"
    )
    country_code: Optional[str] = Field(
        default=None,
        min_length=COUNTRY_CODE_LENGTH,
        max_length=COUNTRY_CODE_LENGTH,
        description="Two-character country code"
    )

    @field_validator("link_id", mode="before")
    @classmethod
    def _canonical_uuid(cls, value: Any) -> UUID:
        link_id = parse_link_id(value)
        if link_id is None:
            raise ValueError("link_id must be a valid UUID")
        return link_id

    @field_validator("referrer")
    @classmethod
    def _absolute_url_or_empty(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not is_valid_referrer(value):
            raise ValueError("referrer must be an absolute URL or an empty string")
        return value


class ClickEventResponse(BaseModel):
    """Response body for a recorded click."""
    success: bool = True
    click_event_id: UUID
    timestamp: datetime


class ErrorResponse(BaseModel):
    """Body of every error response."""
    error: str
    message: str
    details: Optional[list[dict[str, Any]]] = None


class LinkStatsResponse(BaseModel):
    """Response body for GET /api/links/{link_id}/stats."""
    link_id: UUID
    click_count: int = Field(..., description="Counter stored on the link")
    total_click_events: int = Field(..., description="Click events recorded for the link")
    unique_sessions: int = Field(..., description="Distinct session ids among those events")
