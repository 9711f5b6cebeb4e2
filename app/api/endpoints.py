"""
FastAPI Endpoints for the Click Attribution Service

Endpoints only handle HTTP concerns:
- Extracting the client address and headers
- Decoding the request
- Turning pipeline results into responses

Rate limiting, validation order and the failure policy live in
AttributionPipeline. Domain exceptions are rendered by app.api.error_handlers.
Anything unexpected becomes a generic 500 with the endpoint's stable message.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_client_ip, get_pipeline
from app.api.schemas import ClickEventRequest, ClickEventResponse, ErrorResponse, LinkStatsResponse
from app.core.exceptions import (
    AttributionServiceError,
    InternalError,
    InvalidLinkIdError,
    LinkNotFoundError,
)
from app.core.validators import parse_link_id
from app.db.session import get_session
from app.services.attribution_pipeline import AttributionPipeline
from app.services.stats_service import StatsService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


@router.post(
    "/clicks",
    response_model=ClickEventResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a click",
    description="Records a click the browser tracked itself and increments the link's click count",
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    # The body is read by hand so the rate limit runs before validation
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": ClickEventRequest.model_json_schema()}},
        }
    },
)
async def record_click(
    request: Request,
    pipeline: AttributionPipeline = Depends(get_pipeline),
) -> ClickEventResponse:
    """
    Record a click event.

    Returns:
        ClickEventResponse with the event id and timestamp

    Raises:
        400: Body is not valid JSON or fails validation
        404: Link does not exist
        429: Rate limit exceeded
        500: Event could not be stored
    """
    try:
        payload = await request.json()
    except ValueError:
        payload = None

    try:
        click_event = await pipeline.record_attribution(
            client_ip=get_client_ip(request),
            payload=payload,
            user_agent_header=request.headers.get("User-Agent"),
            referer_header=request.headers.get("Referer"),
        )
    except AttributionServiceError:
        raise
    except Exception as e:
        logger.error("Error recording click event", exc_info=True)
        raise InternalError("Failed to record click event.") from e

    return ClickEventResponse(
        click_event_id=click_event.id,
        timestamp=click_event.timestamp,
    )


@router.get(
    "/redirect/{link_id}",
    status_code=status.HTTP_302_FOUND,
    response_class=RedirectResponse,
    summary="Tracked redirect",
    description="Records a click and redirects to the link's affiliate URL",
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        410: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
    },
)
async def tracked_redirect(
    link_id: str,
    request: Request,
    session_id: Optional[str] = None,
    country: Optional[str] = None,
    pipeline: AttributionPipeline = Depends(get_pipeline),
) -> RedirectResponse:
    """
    Redirect to an active link's affiliate URL.

    Attribution is best effort: the redirect happens whether or not the click
    could be recorded.

    Raises:
        400: link_id is not a UUID
        404: Link does not exist
        410: Link is inactive or pending
        429: Rate limit exceeded
    """
    try:
        destination = await pipeline.tracked_redirect(
            client_ip=get_client_ip(request),
            link_id=link_id,
            session_id=session_id,
            country=country,
            user_agent_header=request.headers.get("User-Agent"),
            referer_header=request.headers.get("Referer"),
        )
    except AttributionServiceError:
        raise
    except Exception as e:
        logger.error(f"Error in redirect endpoint for link {link_id}", exc_info=True)
        raise InternalError("Failed to process redirect.") from e

    return RedirectResponse(url=destination, status_code=status.HTTP_302_FOUND)


@router.get(
    "/links/{link_id}/stats",
    response_model=LinkStatsResponse,
    summary="Link click statistics",
    description="Returns the stored click count and recorded click event totals for a link",
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)
async def get_link_stats(
    link_id: str,
    session: AsyncSession = Depends(get_session),
) -> LinkStatsResponse:
    parsed_id = parse_link_id(link_id)
    if parsed_id is None:
        raise InvalidLinkIdError(link_id)

    stats = await StatsService(session).get_link_stats(parsed_id)
    if stats is None:
        raise LinkNotFoundError(parsed_id)

    return LinkStatsResponse(**stats)
