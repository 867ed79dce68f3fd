from __future__ import annotations

import uuid
from datetime import UTC, datetime

import sqlalchemy as sa
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(UTC)


def timestamp_field(**kwargs: object) -> datetime:
    """A timezone-aware timestamp column defaulting to now on both client and server."""
    return Field(  # type: ignore[no-any-return]
        default_factory=utcnow,
        sa_type=sa.DateTime(timezone=True),  # ty: ignore[invalid-argument-type]
        sa_column_kwargs={"server_default": sa.func.now()},
        **kwargs,  # type: ignore[arg-type]
    )


class UUIDBase(SQLModel):
    """Tables keyed by a random UUID."""

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, sa_type=sa.Uuid)


class CreatedAtMixin(SQLModel):
    created_at: datetime = timestamp_field()


class TimestampMixin(CreatedAtMixin):
    """Adds ``updated_at``; services set it explicitly on every write."""

    updated_at: datetime = timestamp_field()
