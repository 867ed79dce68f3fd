# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from vacation_scheduler.models.base import CreatedAtMixin, UUIDBase, timestamp_field


class VacationLimit(SQLModel, table=True):
    """Yearly allowance of one employee and the days committed against it."""

    __tablename__ = "vacation_limit"

    owner_id: uuid.UUID = Field(primary_key=True)
    year: int = Field(primary_key=True)
    total_days: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    committed_days: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    updated_at: datetime = timestamp_field()
    version: int = Field(default=1, sa_column_kwargs={"server_default": "1"})


class VacationLimitEntry(UUIDBase, CreatedAtMixin, table=True):
    """Append-only ledger entry that records every change to a yearly limit."""

    __tablename__ = "vacation_limit_entry"
    __table_args__ = (
        sa.Index("ix_limit_entry_owner_year", "owner_id", "year"),
        sa.UniqueConstraint("source_type", "source_id", "entry_type", name="uq_limit_entry_idempotency"),
    )

    owner_id: uuid.UUID
    year: int
    entry_type: str = Field(max_length=50)
    days: int
    source_type: str = Field(max_length=50)
    source_id: str = Field(max_length=255)
    overdraft: bool = Field(default=False, sa_column_kwargs={"server_default": sa.false()})
    metadata_json: dict[str, Any] | None = Field(default=None, sa_type=sa.JSON)
