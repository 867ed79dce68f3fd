# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime

import sqlalchemy as sa
from sqlmodel import Field

from vacation_scheduler.models.base import TimestampMixin, UUIDBase
from vacation_scheduler.models.enums import RequestStatus


class VacationRequest(UUIDBase, TimestampMixin, table=True):
    """An employee's vacation request with approval workflow state."""

    __tablename__ = "vacation_request"
    __table_args__ = (
        sa.Index("ix_request_owner_year", "owner_id", "year"),
        sa.Index("ix_request_year_status", "year", "status"),
    )

    owner_id: uuid.UUID = Field(index=True)
    year: int
    status: str = Field(
        default=RequestStatus.DRAFT, max_length=50, index=True, sa_column_kwargs={"server_default": "DRAFT"}
    )
    comment: str = Field(default="", sa_column_kwargs={"server_default": ""})
    days_requested: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    submitted_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    decided_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    decided_by: uuid.UUID | None = None
    decision_note: str | None = None


class VacationPeriod(UUIDBase, table=True):
    """One inclusive date range of a vacation request."""

    __tablename__ = "vacation_period"
    __table_args__ = (
        sa.UniqueConstraint("request_id", "position", name="uq_period_request_position"),
        sa.CheckConstraint("start_date <= end_date", name="ck_period_date_order"),
    )

    request_id: uuid.UUID = Field(
        sa_column=sa.Column(
            sa.Uuid, sa.ForeignKey("vacation_request.id", ondelete="CASCADE"), nullable=False, index=True
        ),
    )
    position: int
    start_date: date
    end_date: date
    day_count: int
