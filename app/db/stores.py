"""
SQL Store Implementations

LinkStore and EventStore backed by SQLModel tables.

Each call opens its own short-lived session from the session factory instead
of borrowing the request's session. Attribution writes may keep running after
the request that triggered them is gone (see AttributionPipeline), and a
request-scoped session would already be closed by then.
"""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.core.exceptions import DatabaseError
from app.db.interface import EventStore, LinkStore
from app.db.models import AffiliateLink, ClickEvent, ClickEventCreate

logger = logging.getLogger(__name__)


class SQLLinkStore(LinkStore):
    """Affiliate link lookups and the atomic click counter."""

    def __init__(self, session_maker: async_sessionmaker):
        self.session_maker = session_maker

    async def exists(self, link_id: UUID) -> bool:
        statement = select(func.count()).select_from(AffiliateLink).where(AffiliateLink.id == link_id)

        async with self.session_maker() as session:
            result = await session.execute(statement)
            return result.scalar_one() > 0

    async def find_by_id(self, link_id: UUID) -> Optional[AffiliateLink]:
        async with self.session_maker() as session:
            return await session.get(AffiliateLink, link_id)

    async def increment_click_count(self, link_id: UUID) -> None:
        """
        Increment click_count with a single UPDATE.

        Database-level increment, so concurrent clicks never lose an update.
        A missing link is a no-op.
        """
        statement = (
            update(AffiliateLink)
            .where(AffiliateLink.id == link_id)
            .values(click_count=AffiliateLink.click_count + 1)
        )

        try:
            async with self.session_maker() as session:
                await session.execute(statement)
                await session.commit()
        except SQLAlchemyError as e:
            raise DatabaseError(f"failed to increment click count for {link_id}", e) from e


class SQLEventStore(EventStore):
    """Inserts click events. Rows are never updated or deleted by this store."""

    def __init__(self, session_maker: async_sessionmaker):
        self.session_maker = session_maker

    async def create(self, data: ClickEventCreate) -> ClickEvent:
        click_event = ClickEvent(**data.model_dump())

        try:
            async with self.session_maker() as session:
                session.add(click_event)
                await session.commit()
        except SQLAlchemyError as e:
            raise DatabaseError(f"failed to store click event for {data.link_id}", e) from e

        logger.debug(f"Stored click event {click_event.id} for link {click_event.link_id}")
        return click_event
