# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from vacation_scheduler.models.enums import RequestStatus
from vacation_scheduler.schemas.conflict import ConflictRecord

# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class PeriodPayload(BaseModel):
    """One inclusive date range supplied by the owner."""

    start_date: date
    end_date: date
    day_count: int | None = Field(default=None, ge=1)

    @model_validator(mode="after")
    def _validate_dates(self) -> Self:
        if self.end_date < self.start_date:
            msg = "end_date must not be before start_date"
            raise ValueError(msg)
        return self


class CreateRequestPayload(BaseModel):
    """Request body for creating a draft vacation request."""

    year: int = Field(ge=1900, le=9999)
    periods: list[PeriodPayload] = Field(min_length=1)
    comment: str = Field(default="", max_length=2000)


class UpdateRequestPayload(BaseModel):
    """Request body for editing a draft. Omitted fields are left unchanged."""

    year: int | None = Field(default=None, ge=1900, le=9999)
    periods: list[PeriodPayload] | None = Field(default=None, min_length=1)
    comment: str | None = Field(default=None, max_length=2000)


class RejectPayload(BaseModel):
    """Request body for rejecting a pending request."""

    reason: str = Field(default="", max_length=1000)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class PeriodResponse(BaseModel):
    """Stored period of a vacation request."""

    model_config = ConfigDict(frozen=True)

    start_date: date
    end_date: date
    day_count: int


class RequestResponse(BaseModel):
    """Immutable snapshot of a vacation request."""

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID
    owner_id: uuid.UUID
    year: int
    status: RequestStatus
    periods: tuple[PeriodResponse, ...]
    comment: str
    days_requested: int
    submitted_at: datetime | None
    decided_at: datetime | None
    decided_by: uuid.UUID | None
    decision_note: str | None
    created_at: datetime
    updated_at: datetime


class RequestListResponse(BaseModel):
    """Paginated list of vacation requests."""

    items: list[RequestResponse]
    total: int


class ApprovalResponse(BaseModel):
    """Result of an approval. ``warnings`` lists the conflicts a forced approval overrode."""

    request: RequestResponse
    forced: bool = False
    warnings: list[ConflictRecord] = Field(default_factory=list)
