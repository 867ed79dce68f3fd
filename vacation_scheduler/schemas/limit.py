# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class LimitResponse(BaseModel):
    """Allowance and committed days of one employee for one year."""

    owner_id: uuid.UUID
    year: int
    total_days: int
    committed_days: int
    available_days: int
    updated_at: datetime | None


class LimitListResponse(BaseModel):
    """Limits of every employee in a scope for one year."""

    items: list[LimitResponse]
    total: int


class SetAllowancePayload(BaseModel):
    """Request body for setting a yearly allowance (admin only)."""

    total_days: int = Field(ge=0, le=366)


class ReservationResult(BaseModel):
    """Outcome of a ledger reservation."""

    owner_id: uuid.UUID
    year: int
    days: int
    committed_days: int
    available_days: int
    overdraft: bool = False
