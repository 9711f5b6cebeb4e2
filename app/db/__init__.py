"""
Database module with abstraction layer.

This module provides:
- DatabaseAdapter, LinkStore, EventStore: Abstract interfaces
- SQLLinkStore, SQLEventStore: SQLModel-backed store implementations
- Session management: Database session creation and management

To add a new database backend:
1. Create a new adapter class inheriting from DatabaseAdapter
2. Implement all abstract methods
3. Register it in get_database_adapter() in adapters.py
"""

from app.db.interface import DatabaseAdapter, EventStore, LinkStore
from app.db.session import get_session, async_session_maker, engine
from app.db.stores import SQLEventStore, SQLLinkStore

__all__ = [
    "DatabaseAdapter",
    "EventStore",
    "LinkStore",
    "SQLEventStore",
    "SQLLinkStore",
    "get_session",
    "async_session_maker",
    "engine",
]
