from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from vacation_scheduler.config import Settings, set_settings
from vacation_scheduler.db import engine_options, get_session
from vacation_scheduler.main import app
from vacation_scheduler.models import SQLModel
from vacation_scheduler.services.org_unit import InMemoryOrgUnitService, set_org_unit_service

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterator
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncEngine


@pytest.fixture(autouse=True)
def settings() -> Iterator[Settings]:
    """Fresh settings for every test; tests may replace them with set_settings()."""
    _settings = Settings()
    set_settings(_settings)
    yield _settings
    set_settings(None)


@pytest.fixture(autouse=True)
def org_units() -> Iterator[InMemoryOrgUnitService]:
    """Install an empty in-memory org-unit service; tests seed it as needed."""
    svc = InMemoryOrgUnitService()
    set_org_unit_service(svc)
    yield svc
    set_org_unit_service(InMemoryOrgUnitService())


@pytest.fixture
async def engine(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    """Create a throwaway SQLite database file with every table."""
    url = f"sqlite+aiosqlite:///{tmp_path / 'vacations.db'}"
    _engine = create_async_engine(url, **engine_options(url))
    async with _engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield _engine
    await _engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    """Yield a database session for direct service calls and assertions."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def async_client(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncClient]:
    """Async HTTP client; every request gets its own session on the test database."""

    async def _override_get_session() -> AsyncIterator[AsyncSession]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = _override_get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
