"""
Shared fixtures for the click attribution tests.

- In-memory LinkStore/EventStore doubles that record every call
- A pipeline with fresh rate limiters per test
- An httpx client against the FastAPI app with the pipeline overridden
- A temporary SQLite database for the SQL store tests
"""

import asyncio
from typing import AsyncGenerator, Optional
from uuid import UUID

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession as SQLModelAsyncSession

from app.api.dependencies import get_pipeline
from app.core.exceptions import DatabaseError
from app.core.rate_limit import FixedWindowRateLimiter
from app.db.adapters import SQLiteAdapter
from app.db.interface import EventStore, LinkStore
from app.db.models import AffiliateLink, ClickEvent, ClickEventCreate
from app.db.session import get_session
from app.main import app
from app.services.attribution_pipeline import AttributionPipeline


def make_link(status: str = "active", **kwargs) -> AffiliateLink:
    fields = {
        "title": "Example Store",
        "url": "https://store.example.com",
        "affiliate_url": "https://store.example.com/?ref=directory",
        "status": status,
    }
    fields.update(kwargs)
    return AffiliateLink(**fields)


class InMemoryLinkStore(LinkStore):
    def __init__(self, links=()):
        self.links = {link.id: link for link in links}
        self.calls: list[tuple[str, UUID]] = []
        self.fail_increment = False

    async def exists(self, link_id: UUID) -> bool:
        self.calls.append(("exists", link_id))
        return link_id in self.links

    async def find_by_id(self, link_id: UUID) -> Optional[AffiliateLink]:
        self.calls.append(("find_by_id", link_id))
        return self.links.get(link_id)

    async def increment_click_count(self, link_id: UUID) -> None:
        self.calls.append(("increment_click_count", link_id))
        if self.fail_increment:
            raise DatabaseError("counter unavailable")
        link = self.links.get(link_id)
        if link is not None:
            link.click_count += 1


class InMemoryEventStore(EventStore):
    def __init__(self, fail: bool = False):
        self.events: list[ClickEvent] = []
        self.fail = fail
        self.calls = 0

    async def create(self, data: ClickEventCreate) -> ClickEvent:
        self.calls += 1
        if self.fail:
            raise DatabaseError("event store unavailable")
        click_event = ClickEvent(**data.model_dump())
        self.events.append(click_event)
        return click_event


class BlockingEventStore(InMemoryEventStore):
    """Holds every write until `release` is set."""

    def __init__(self):
        super().__init__()
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def create(self, data: ClickEventCreate) -> ClickEvent:
        self.started.set()
        await self.release.wait()
        return await super().create(data)


@pytest.fixture
def active_link() -> AffiliateLink:
    return make_link("active", affiliate_url="https://shop.example.com/item?aff=42")


@pytest.fixture
def inactive_link() -> AffiliateLink:
    return make_link("inactive")


@pytest.fixture
def pending_link() -> AffiliateLink:
    return make_link("pending")


@pytest.fixture
def link_store(active_link, inactive_link, pending_link) -> InMemoryLinkStore:
    return InMemoryLinkStore([active_link, inactive_link, pending_link])


@pytest.fixture
def event_store() -> InMemoryEventStore:
    return InMemoryEventStore()


@pytest.fixture
def click_limiter() -> FixedWindowRateLimiter:
    return FixedWindowRateLimiter(limit=10, window=60, name="clicks")


@pytest.fixture
def redirect_limiter() -> FixedWindowRateLimiter:
    return FixedWindowRateLimiter(limit=10, window=60, name="redirect")


@pytest.fixture
def pipeline(link_store, event_store, click_limiter, redirect_limiter) -> AttributionPipeline:
    return AttributionPipeline(
        link_store=link_store,
        event_store=event_store,
        click_limiter=click_limiter,
        redirect_limiter=redirect_limiter,
    )


@pytest.fixture
async def client(pipeline) -> AsyncGenerator[AsyncClient, None]:
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
            yield c
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
async def session_maker(tmp_path) -> AsyncGenerator[async_sessionmaker, None]:
    engine = SQLiteAdapter().create_engine(f"sqlite+aiosqlite:///{tmp_path / 'clicks.db'}")
    async with engine.begin() as connection:
        await connection.run_sync(SQLModel.metadata.create_all)

    yield async_sessionmaker(engine, class_=SQLModelAsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def override_session(session_maker):
    async def _get_session():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_session] = _get_session
    yield
    app.dependency_overrides.pop(get_session, None)


async def add_link(session_maker, link: AffiliateLink) -> AffiliateLink:
    async with session_maker() as session:
        session.add(link)
        await session.commit()
    return link


@pytest.fixture
def link_factory():
    return make_link


@pytest.fixture
def store_link(session_maker):
    async def _store_link(link: AffiliateLink) -> AffiliateLink:
        return await add_link(session_maker, link)

    return _store_link


@pytest.fixture
def blocking_event_store() -> BlockingEventStore:
    return BlockingEventStore()
