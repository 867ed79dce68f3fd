"""Alembic environment for the vacation scheduler schema.

The database URL comes from application settings (``DATABASE_URL``), not from
alembic.ini. SQLite databases are migrated in batch mode because SQLite cannot
alter constraints in place.
"""

from __future__ import annotations

import asyncio
from logging.config import fileConfig
from typing import TYPE_CHECKING, Any, Literal

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import create_async_engine

from vacation_scheduler.config import get_settings
from vacation_scheduler.models import SQLModel

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection

if context.config.config_file_name is not None:
    fileConfig(context.config.config_file_name)


def _render_item(type_: str, obj: object, autogen_context: object) -> str | Literal[False]:
    # Autogenerated revisions should not import sqlmodel.
    if type_ == "type":
        from sqlmodel.sql.sqltypes import AutoString

        if isinstance(obj, AutoString):
            return f"sa.String(length={obj.length})" if obj.length else "sa.String()"
    return False


def _common_options(database_url: str) -> dict[str, Any]:
    return {
        "target_metadata": SQLModel.metadata,
        "render_item": _render_item,
        "render_as_batch": make_url(database_url).get_backend_name() == "sqlite",
        "compare_type": True,
    }


def _migrate_offline(database_url: str) -> None:
    context.configure(
        url=database_url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_common_options(database_url),
    )
    with context.begin_transaction():
        context.run_migrations()


def _migrate_connection(connection: Connection, database_url: str) -> None:
    context.configure(connection=connection, **_common_options(database_url))
    with context.begin_transaction():
        context.run_migrations()


async def _migrate_online(database_url: str) -> None:
    engine = create_async_engine(database_url, poolclass=pool.NullPool)
    async with engine.connect() as connection:
        await connection.run_sync(_migrate_connection, database_url)
    await engine.dispose()


_database_url = get_settings().database_url

if context.is_offline_mode():
    _migrate_offline(_database_url)
else:
    asyncio.run(_migrate_online(_database_url))
