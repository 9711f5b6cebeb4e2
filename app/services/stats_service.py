"""
Statistics Service

Read-only click statistics for a single affiliate link, for dashboards and
analytics pullers.

Design Decisions:
- click_count is read from the link itself (denormalized, cheap)
- Event totals are counted from click_events, so a gap between the two
  numbers exposes counter increments that were lost after a stored event
- Uses the request's session; nothing here writes
"""

from typing import Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import AffiliateLink, ClickEvent


class StatsService:
    """Aggregates click statistics for affiliate links."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_link_stats(self, link_id: UUID) -> Optional[dict]:
        """
        Get click statistics for a link.

        Returns:
            Dictionary with link_id, click_count, total_click_events and
            unique_sessions, or None if the link does not exist
        """
        click_count = await self.session.scalar(
            select(AffiliateLink.click_count).where(AffiliateLink.id == link_id)
        )
        if click_count is None:
            return None

        statement = (
            select(
                func.count(ClickEvent.id),
                func.count(func.distinct(ClickEvent.session_id)),
            )
            .where(ClickEvent.link_id == link_id)
        )
        result = await self.session.execute(statement)
        total_click_events, unique_sessions = result.one()

        return {
            "link_id": link_id,
            "click_count": click_count,
            "total_click_events": total_click_events,
            "unique_sessions": unique_sessions,
        }
