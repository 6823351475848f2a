"""Pytest fixtures for gig ledger tests."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import AsyncGenerator

import pytest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from gig_ledger.cache import ResultCache
from gig_ledger.config import Settings
from gig_ledger.database import enable_sqlite_savepoints
from gig_ledger.models import Base, Gig, User
from gig_ledger.services.record_store import RecordStore

# In-memory SQLite shared by every connection of one engine
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class FakeClock:
    """Manually advanced monotonic clock for cache tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url=TEST_DATABASE_URL,
        mileage_rate=Decimal("0.70"),
        default_tax_percentage=23,
        cache_max_entries=100,
        aggregate_cache_ttl=300,
        gig_list_cache_ttl=120,
        max_recreate_days=30,
        log_level="DEBUG",
        debug=False,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> ResultCache:
    return ResultCache(max_entries=100, default_ttl=300, clock=clock)


@pytest.fixture
async def engine():
    """Create test database engine with a fresh schema."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_savepoints(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def session(engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def store(session: AsyncSession, cache: ResultCache, settings: Settings) -> RecordStore:
    return RecordStore(session, cache=cache, settings=settings)


@pytest.fixture
async def user(store: RecordStore) -> User:
    return await store.create_user("ba@example.com", name="Test BA", default_tax_percentage=23)


@pytest.fixture
async def other_user(store: RecordStore) -> User:
    return await store.create_user("other@example.com", name="Other BA")


@pytest.fixture
def make_gig(store: RecordStore, user: User):
    """Factory for persisted day-rows; defaults describe one recurring event."""

    async def _make(
        day: date,
        *,
        event_name: str = "Spring Expo",
        client_name: str = "Acme Events",
        gig_type: str = "Brand Ambassador",
        user_id: int | None = None,
        **fields,
    ) -> Gig:
        return await store.create_gig(
            user_id if user_id is not None else user.id,
            date=day,
            event_name=event_name,
            client_name=client_name,
            gig_type=gig_type,
            **fields,
        )

    return _make



@pytest.fixture
def reject_writes(session: AsyncSession):
    """Install a SQLite trigger that aborts matching writes like a failing constraint.

    ``action`` is INSERT, UPDATE or DELETE; ``condition`` is a trigger WHEN
    clause over NEW/OLD.
    """

    async def _install(table: str, action: str, condition: str) -> None:
        await session.execute(
            text(
                f"CREATE TRIGGER reject_{table}_{action.lower()} "
                f"BEFORE {action} ON {table} WHEN {condition} "
                "BEGIN SELECT RAISE(ABORT, 'write rejected'); END"
            )
        )

    return _install
