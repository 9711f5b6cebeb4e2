"""
Database Adapters

This module implements the DatabaseAdapter interface for the supported backends.

SQLite (default) is file-based and suits local development, tests and
single-instance deployments. PostgreSQL (asyncpg driver) is the production
choice when several service instances share one database.
"""

from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from app.db.interface import DatabaseAdapter


class SQLiteAdapter(DatabaseAdapter):
    """
    SQLite database adapter implementation.

    Uses NullPool: every session opens its own connection to the file, which
    is what lets the click stores open short-lived sessions freely.
    """

    def create_engine(self, database_url: str, **kwargs) -> AsyncEngine:
        engine_kwargs = self.get_engine_kwargs()
        engine_kwargs.update(kwargs)

        return create_async_engine(
            database_url,
            poolclass=self.get_pool_class(),
            connect_args=self.get_connect_args(),
            **engine_kwargs
        )

    def get_pool_class(self) -> type[NullPool]:
        return NullPool

    def get_connect_args(self) -> dict[str, Any]:
        # Required for aiosqlite, which runs the connection in a worker thread
        return {
            "check_same_thread": False
        }

    def get_engine_kwargs(self) -> dict[str, Any]:
        return {
            "echo": False  # Set to True only for SQL debugging in development
        }

    def get_dialect_name(self) -> str:
        return "sqlite"


class PostgreSQLAdapter(DatabaseAdapter):
    """
    PostgreSQL database adapter implementation (postgresql+asyncpg://).

    Uses SQLAlchemy's default queue pool, sized for a single service instance.
    """

    def create_engine(self, database_url: str, **kwargs) -> AsyncEngine:
        engine_kwargs = self.get_engine_kwargs()
        engine_kwargs.update(kwargs)

        return create_async_engine(
            database_url,
            connect_args=self.get_connect_args(),
            **engine_kwargs
        )

    def get_pool_class(self) -> None:
        return None

    def get_connect_args(self) -> dict[str, Any]:
        return {}

    def get_engine_kwargs(self) -> dict[str, Any]:
        return {
            "echo": False,
            "pool_size": 10,
            "max_overflow": 20,
            "pool_pre_ping": True,  # Drop connections the server closed while idle
        }

    def get_dialect_name(self) -> str:
        return "postgresql"


def get_database_adapter(database_url: str) -> DatabaseAdapter:
    """
    Pick the adapter matching the URL's dialect.

    Args:
        database_url: SQLAlchemy connection string

    Returns:
        DatabaseAdapter instance

    Raises:
        ValueError: If the dialect is not supported
    """
    dialect = make_url(database_url).get_backend_name()

    if dialect == "sqlite":
        return SQLiteAdapter()
    if dialect == "postgresql":
        return PostgreSQLAdapter()

    raise ValueError(f"Unsupported database dialect: {dialect}")
