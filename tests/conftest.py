"""Shared fixtures: per-test in-memory SQLite engine and an ASGI client."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.adapters.memory import InMemoryNoteStorage, MemoryNoteBackend
from app.adapters.sql import SqlNoteStorage
from app.config import settings
from app.database import Base, get_db
from app.main import app
from app.models import Note, SweepLock  # noqa: F401  register tables

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture(autouse=True)
def fast_settings(monkeypatch):
    """No latency floor and no background scheduler unless a test asks."""
    monkeypatch.setattr(settings, "min_response_ms", 0)
    monkeypatch.setattr(settings, "sweeper_enabled", False)


@pytest_asyncio.fixture
async def engine():
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def sql_storage(db_session) -> SqlNoteStorage:
    return SqlNoteStorage(db_session)


@pytest.fixture
def open_sql_storage(engine):
    """Storage opener for the sweeper, pinned to one connection."""

    @asynccontextmanager
    async def opener():
        async with engine.connect() as conn:
            async with AsyncSession(bind=conn, expire_on_commit=False) as session:
                yield SqlNoteStorage(session)

    return opener


@pytest.fixture
def memory_backend() -> MemoryNoteBackend:
    return MemoryNoteBackend()


@pytest.fixture
def memory_storage(memory_backend) -> InMemoryNoteStorage:
    return InMemoryNoteStorage(memory_backend)


@pytest_asyncio.fixture
async def client(session_factory, open_sql_storage, monkeypatch) -> AsyncIterator[AsyncClient]:
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    monkeypatch.setattr("app.services.sweep_service.open_sweep_storage", open_sql_storage)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
