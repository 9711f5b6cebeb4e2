"""
Tests for the SQL stores, the stats service and adapter selection,
run against a temporary SQLite database.
"""

from uuid import uuid4

import pytest
from sqlalchemy import select

from app.core.exceptions import DatabaseError
from app.db.adapters import PostgreSQLAdapter, SQLiteAdapter, get_database_adapter
from app.db.models import ClickEvent, ClickEventCreate
from app.db.stores import SQLEventStore, SQLLinkStore
from app.services.stats_service import StatsService


class TestSQLLinkStore:

    @pytest.mark.asyncio
    async def test_exists_and_find_by_id(self, session_maker, store_link, link_factory):
        link = await store_link(link_factory("pending"))
        store = SQLLinkStore(session_maker)

        assert await store.exists(link.id)
        assert not await store.exists(uuid4())

        found = await store.find_by_id(link.id)
        assert found.status == "pending"
        assert found.affiliate_url == link.affiliate_url
        assert await store.find_by_id(uuid4()) is None

    @pytest.mark.asyncio
    async def test_increment_click_count(self, session_maker, store_link, link_factory):
        link = await store_link(link_factory())
        store = SQLLinkStore(session_maker)

        await store.increment_click_count(link.id)
        await store.increment_click_count(link.id)

        assert (await store.find_by_id(link.id)).click_count == 2

    @pytest.mark.asyncio
    async def test_increment_missing_link_is_a_no_op(self, session_maker):
        await SQLLinkStore(session_maker).increment_click_count(uuid4())


class TestSQLEventStore:

    @pytest.mark.asyncio
    async def test_create_assigns_id_and_timestamp(self, session_maker, store_link, link_factory):
        link = await store_link(link_factory())
        store = SQLEventStore(session_maker)

        click_event = await store.create(ClickEventCreate(
            link_id=link.id,
            ip_address="2001:db8::1",
            session_id="visit-1",
            user_agent="Mozilla/5.0",
            referrer="",
            country_code="NL",
        ))

        assert click_event.id is not None
        assert click_event.timestamp is not None

        async with session_maker() as session:
            rows = (await session.execute(select(ClickEvent))).scalars().all()

        assert len(rows) == 1
        assert rows[0].id == click_event.id
        assert rows[0].link_id == link.id
        assert rows[0].ip_address == "2001:db8::1"
        assert rows[0].country_code == "NL"

    @pytest.mark.asyncio
    async def test_database_errors_are_wrapped(self, session_maker, store_link, link_factory):
        link = await store_link(link_factory())
        store = SQLEventStore(session_maker)
        data = ClickEventCreate(link_id=link.id, ip_address="192.0.2.1", session_id="s")

        async with session_maker() as session:
            await session.run_sync(lambda sync_session: ClickEvent.__table__.drop(sync_session.connection()))
            await session.commit()

        with pytest.raises(DatabaseError):
            await store.create(data)


class TestStatsService:

    @pytest.mark.asyncio
    async def test_link_stats(self, session_maker, store_link, link_factory):
        link = await store_link(link_factory(click_count=5))
        other = await store_link(link_factory())
        events = SQLEventStore(session_maker)
        for link_id, session_id in ((link.id, "a"), (link.id, "b"), (link.id, "b"), (other.id, "c")):
            await events.create(ClickEventCreate(link_id=link_id, ip_address="192.0.2.1", session_id=session_id))

        async with session_maker() as session:
            stats = await StatsService(session).get_link_stats(link.id)

        assert stats == {
            "link_id": link.id,
            "click_count": 5,
            "total_click_events": 3,
            "unique_sessions": 2,
        }

    @pytest.mark.asyncio
    async def test_unknown_link(self, session_maker):
        async with session_maker() as session:
            assert await StatsService(session).get_link_stats(uuid4()) is None


class TestAdapterSelection:

    def test_sqlite(self):
        assert isinstance(get_database_adapter("sqlite+aiosqlite:///./clicks.db"), SQLiteAdapter)

    def test_postgresql(self):
        adapter = get_database_adapter("postgresql+asyncpg://user:pw@db:5432/clicks")
        assert isinstance(adapter, PostgreSQLAdapter)
        assert adapter.get_dialect_name() == "postgresql"

    def test_unsupported_dialect(self):
        with pytest.raises(ValueError):
            get_database_adapter("mysql+aiomysql://user:pw@db/clicks")
