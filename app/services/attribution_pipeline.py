"""
Attribution Pipeline

Orchestrates the two public click operations:

- record_attribution: the browser already knows where it is going and only
  reports the click (POST /api/clicks)
- tracked_redirect: the server records the click and sends the browser on to
  the affiliate destination (GET /api/redirect/{link_id})

Both pass through their own per-origin rate limiter. They deliberately
differ in two ways:

- Eligibility: recording needs the link to exist; redirecting needs it to be
  `active`
- Failure policy: a failed recording is an error on the record path, but on
  the redirect path it is logged and ignored. Attribution is telemetry and
  never stands between a visitor and the destination

Recorder writes run as separate tasks behind asyncio.shield, so a client
that disconnects mid-request does not cancel a half-finished write.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

from pydantic import ValidationError

from app.api.schemas import ClickEventRequest
from app.core.exceptions import (
    InternalError,
    InvalidInputError,
    InvalidLinkIdError,
    LinkGoneError,
    LinkNotFoundError,
    RateLimitedError,
    RecordingFailure,
)
from app.core.rate_limit import FixedWindowRateLimiter
from app.core.validators import normalize_country_code, normalize_referrer, parse_link_id
from app.db.interface import EventStore, LinkStore
from app.db.models import ClickEvent, ClickEventCreate
from app.services.attribution_recorder import AttributionRecorder
from app.services.eligibility_service import Eligibility, LinkEligibilityService
from app.services.session_allocator import resolve_session_id

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AttributionPipeline:
    """Entry point for click attribution and tracked redirects."""

    def __init__(
        self,
        link_store: LinkStore,
        event_store: EventStore,
        click_limiter: FixedWindowRateLimiter,
        redirect_limiter: FixedWindowRateLimiter,
        session_id_resolver: Callable[[Optional[str]], str] = resolve_session_id,
    ):
        """
        Args:
            link_store: Link lookups and click counter
            event_store: Click event persistence
            click_limiter: Limiter for record_attribution
            redirect_limiter: Limiter for tracked_redirect
            session_id_resolver: Passes through or allocates session ids
        """
        self.link_store = link_store
        self.click_limiter = click_limiter
        self.redirect_limiter = redirect_limiter
        self.resolve_session_id = session_id_resolver
        self.recorder = AttributionRecorder(event_store, link_store)
        self.eligibility = LinkEligibilityService(link_store)
        self._pending_writes: set[asyncio.Task] = set()

    async def record_attribution(
        self,
        client_ip: str,
        payload: Any,
        user_agent_header: Optional[str] = None,
        referer_header: Optional[str] = None,
    ) -> ClickEvent:
        """
        Record a click reported by the client.

        Args:
            client_ip: Transport-level address of the client
            payload: Decoded request body (validated here, after the rate limit)
            user_agent_header: User-Agent header, used when the body has none
            referer_header: Referer header, used when the body has none

        Returns:
            The stored ClickEvent

        Raises:
            RateLimitedError: Origin exceeded its window
            InvalidInputError: Body failed validation
            LinkNotFoundError: No link with that id
            InternalError: The event could not be stored
        """
        self._admit(self.click_limiter, client_ip)

        try:
            request = ClickEventRequest.model_validate(payload)
        except ValidationError as e:
            raise InvalidInputError(details=_validation_details(e)) from e

        if not await self.link_store.exists(request.link_id):
            raise LinkNotFoundError(request.link_id)

        data = ClickEventCreate(
            link_id=request.link_id,
            ip_address=client_ip,
            session_id=self.resolve_session_id(request.session_id),
            user_agent=request.user_agent or user_agent_header,
            referrer=request.referrer or normalize_referrer(referer_header),
            country_code=request.country_code,
        )

        try:
            click_event = await self._run_to_completion(self.recorder.record(data))
        except RecordingFailure as e:
            logger.error(f"Error recording click event for link {data.link_id}", exc_info=True)
            raise InternalError("Failed to record click event.") from e

        logger.info(
            f"Click event recorded: id={click_event.id} link={click_event.link_id} "
            f"ip={client_ip} user_agent={click_event.user_agent!r}"
        )
        return click_event

    async def tracked_redirect(
        self,
        client_ip: str,
        link_id: str,
        session_id: Optional[str] = None,
        country: Optional[str] = None,
        user_agent_header: Optional[str] = None,
        referer_header: Optional[str] = None,
    ) -> str:
        """
        Attribute a click and return where to redirect the visitor.

        The returned URL does not depend on whether attribution succeeded.

        Args:
            client_ip: Transport-level address of the client
            link_id: Raw link id from the URL path
            session_id: Client session id from the query string, if any
            country: Country code from the query string; dropped if malformed
            user_agent_header: User-Agent header
            referer_header: Referer header

        Returns:
            The link's affiliate destination URL

        Raises:
            InvalidLinkIdError: link_id is not a UUID
            RateLimitedError: Origin exceeded its window
            LinkNotFoundError: No link with that id
            LinkGoneError: Link exists but is not active
        """
        parsed_id = parse_link_id(link_id)
        if parsed_id is None:
            raise InvalidLinkIdError(link_id)

        self._admit(self.redirect_limiter, client_ip)

        result = await self.eligibility.check(parsed_id)
        if result.outcome is Eligibility.NOT_FOUND:
            raise LinkNotFoundError(parsed_id)
        if not result.is_eligible:
            raise LinkGoneError(parsed_id)

        try:
            data = ClickEventCreate(
                link_id=parsed_id,
                ip_address=client_ip,
                session_id=self.resolve_session_id(session_id),
                user_agent=user_agent_header,
                referrer=normalize_referrer(referer_header),
                country_code=normalize_country_code(country),
            )
            click_event = await self._run_to_completion(self.recorder.record(data))
        except Exception:
            logger.error(f"Error recording click for redirect to link {parsed_id}", exc_info=True)
        else:
            logger.info(
                f"Redirect click tracked: id={click_event.id} link={parsed_id} "
                f"ip={client_ip} destination={result.destination}"
            )

        return result.destination

    async def drain(self) -> None:
        """Wait for recorder writes that outlived their requests."""
        if self._pending_writes:
            await asyncio.gather(*self._pending_writes, return_exceptions=True)

    def _admit(self, limiter: FixedWindowRateLimiter, client_ip: str) -> None:
        if limiter.allow(client_ip):
            return

        logger.warning(f"Rate limit exceeded on '{limiter.name}' for {client_ip}")
        raise RateLimitedError(client_ip, retry_after=limiter.retry_after(client_ip))

    async def _run_to_completion(self, write: Awaitable[T]) -> T:
        task = asyncio.ensure_future(write)
        self._pending_writes.add(task)
        task.add_done_callback(self._pending_writes.discard)

        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            # The request went away; the write carries on and reports its own outcome.
            task.add_done_callback(_log_detached_write)
            raise


def _log_detached_write(task: asyncio.Task) -> None:
    if task.cancelled():
        logger.warning("Detached click attribution write was cancelled")
        return

    error = task.exception()
    if error is not None:
        logger.error("Detached click attribution write failed", exc_info=error)


def _validation_details(error: ValidationError) -> list[dict[str, Any]]:
    return [
        {
            "field": ".".join(str(part) for part in issue["loc"]),
            "message": issue["msg"],
        }
        for issue in error.errors()
    ]
