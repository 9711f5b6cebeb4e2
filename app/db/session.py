"""
Database Session Management

This module handles async database connections using SQLAlchemy's async engine.
The adapter for the configured DATABASE_URL supplies all backend-specific
engine options, so no other module branches on the database type.

Two ways to get a session:
- get_session(): FastAPI dependency, one session per request
- async_session_maker(): for code that must outlive the request, such as
  the click stores' shielded writes
"""

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession as SQLModelAsyncSession

from app.core.setting import settings
from app.db.adapters import get_database_adapter

db_adapter = get_database_adapter(settings.DATABASE_URL)

engine = db_adapter.create_engine(
    settings.DATABASE_URL
)

async_session_maker = async_sessionmaker(
    engine,
    class_=SQLModelAsyncSession,
    expire_on_commit=False,  # Stored events stay readable after commit
    autoflush=False,
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency function for FastAPI to get database session.

    Commits on success, rolls back on any exception.

    Usage in FastAPI:
        @router.get("/endpoint")
        async def endpoint(session: AsyncSession = Depends(get_session)):
            ...
    """
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def create_tables() -> None:
    """
    Create missing tables directly from the models.

    Used by development setups and tests. Deployed databases are managed by
    the Alembic migrations in migrations/.
    """
    async with engine.begin() as connection:
        await connection.run_sync(SQLModel.metadata.create_all)
