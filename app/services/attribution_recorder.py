"""
Attribution Recorder

Builds and persists click events and bumps the link's aggregate counter.

Write order:
1. Store the ClickEvent. If this fails, nothing else happens and the caller
   gets a RecordingFailure.
2. Increment the link's click_count. The two writes are not atomic. A failed
   increment after a stored event is logged as a recoverable inconsistency;
   the event is kept and the increment is not retried.

The recorder never decides what a failure means for the user. The pipeline
surfaces it on the record path and swallows it on the redirect path.
"""

import logging

from app.core.exceptions import RecordingFailure
from app.db.interface import EventStore, LinkStore
from app.db.models import ClickEvent, ClickEventCreate

logger = logging.getLogger(__name__)


class AttributionRecorder:
    """Persists one ClickEvent per accepted attribution attempt."""

    def __init__(self, event_store: EventStore, link_store: LinkStore):
        """
        Args:
            event_store: Where click events are stored
            link_store: Owner of the click_count counter
        """
        self.event_store = event_store
        self.link_store = link_store

    async def record(self, data: ClickEventCreate) -> ClickEvent:
        """
        Record a click.

        Args:
            data: Event fields. `ip_address` must come from the transport layer.

        Returns:
            The stored ClickEvent

        Raises:
            RecordingFailure: If the event could not be stored
        """
        try:
            click_event = await self.event_store.create(data)
        except Exception as e:
            raise RecordingFailure(data.link_id, e) from e

        try:
            await self.link_store.increment_click_count(data.link_id)
        except Exception:
            logger.warning(
                f"Click event {click_event.id} stored but click_count for link "
                f"{data.link_id} was not incremented",
                exc_info=True
            )

        return click_event
