"""
Database Abstraction Interfaces

This module defines the abstractions the rest of the codebase talks to:

- DatabaseAdapter: backend-specific engine configuration (SQLite, PostgreSQL)
- LinkStore: read access to affiliate links plus the click counter
- EventStore: durable storage of click events

The attribution pipeline only ever sees LinkStore and EventStore, so tests can
hand it in-memory doubles and deployments can back it with any database.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.pool import Pool

from app.db.models import AffiliateLink, ClickEvent, ClickEventCreate


class DatabaseAdapter(ABC):
    """
    Abstract base class for database adapters.

    To add a new database backend:
    1. Create a new class inheriting from DatabaseAdapter
    2. Implement all abstract methods
    3. Register it in get_database_adapter()
    """

    @abstractmethod
    def create_engine(self, database_url: str, **kwargs) -> AsyncEngine:
        """
        Create and configure the async database engine.

        Args:
            database_url: Connection string for the database
            **kwargs: Additional engine configuration options

        Returns:
            Configured AsyncEngine instance
        """
        pass

    @abstractmethod
    def get_pool_class(self) -> Optional[type[Pool]]:
        """Connection pool class for this backend, or None for SQLAlchemy's default."""
        pass

    @abstractmethod
    def get_connect_args(self) -> dict[str, Any]:
        """Driver-level connection arguments."""
        pass

    @abstractmethod
    def get_engine_kwargs(self) -> dict[str, Any]:
        """Extra create_async_engine() options."""
        pass

    @abstractmethod
    def get_dialect_name(self) -> str:
        """SQLAlchemy dialect name (e.g. 'sqlite', 'postgresql')."""
        pass


class LinkStore(ABC):
    """Access to affiliate links as seen by the attribution pipeline."""

    @abstractmethod
    async def exists(self, link_id: UUID) -> bool:
        """Whether a link with this id exists, regardless of status."""
        pass

    @abstractmethod
    async def find_by_id(self, link_id: UUID) -> Optional[AffiliateLink]:
        """The link with this id, or None."""
        pass

    @abstractmethod
    async def increment_click_count(self, link_id: UUID) -> None:
        """Add exactly one to the link's click_count."""
        pass


class EventStore(ABC):
    """Durable storage for click events."""

    @abstractmethod
    async def create(self, data: ClickEventCreate) -> ClickEvent:
        """
        Persist a new click event.

        Returns:
            The stored event with its id and timestamp assigned

        Raises:
            DatabaseError: If the event could not be stored
        """
        pass
