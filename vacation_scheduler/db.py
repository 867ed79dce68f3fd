from __future__ import annotations

from typing import TYPE_CHECKING, Annotated, Any

from fastapi import Depends
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from vacation_scheduler.config import get_settings

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def engine_options(database_url: str, echo: bool = False) -> dict[str, Any]:
    """Keyword arguments for ``create_async_engine`` suited to the backend.

    SQLite (aiosqlite) is used for local runs and tests: writers wait on the
    file lock instead of failing immediately. PostgreSQL (asyncpg) gets
    connection health checks.
    """
    options: dict[str, Any] = {"echo": echo}
    if make_url(database_url).get_backend_name() == "sqlite":
        options["connect_args"] = {"timeout": 30}
    else:
        options["pool_pre_ping"] = True
    return options


def get_engine() -> AsyncEngine:
    """The process-wide async engine, created on first use."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_async_engine(settings.database_url, **engine_options(settings.database_url, settings.debug))
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    # Snapshots built before commit stay readable after it.
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(get_engine(), expire_on_commit=False)
    return _session_factory


async def get_session() -> AsyncIterator[AsyncSession]:
    """Yield one session per HTTP request.

    Services commit on success. If an error escapes first, closing the
    session rolls the open transaction back, so nothing is partially written.
    """
    async with get_session_factory()() as session:
        yield session


SessionDep = Annotated[AsyncSession, Depends(get_session)]


async def create_tables() -> None:
    """Create every table from model metadata. Migrations are the normal path."""
    import vacation_scheduler.models  # noqa: F401

    async with get_engine().begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def dispose_engine() -> None:
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
