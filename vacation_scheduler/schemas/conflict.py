# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date

from pydantic import BaseModel, ConfigDict


class PeriodRef(BaseModel):
    """An inclusive date range as it appears inside a conflict report."""

    model_config = ConfigDict(frozen=True)

    start_date: date
    end_date: date
    day_count: int


class ConflictRecord(BaseModel):
    """One overlap between a period of the subject request and an approved period of another owner."""

    model_config = ConfigDict(frozen=True)

    subject_request_id: uuid.UUID
    subject_period: PeriodRef
    other_request_id: uuid.UUID
    other_owner_id: uuid.UUID
    other_period: PeriodRef
    overlap_start: date
    overlap_end: date
    overlap_days: int


class IntersectionRecord(BaseModel):
    """Overlap between two employees' periods inside a visibility scope."""

    model_config = ConfigDict(frozen=True)

    first_owner_id: uuid.UUID
    first_request_id: uuid.UUID
    first_period: PeriodRef
    second_owner_id: uuid.UUID
    second_request_id: uuid.UUID
    second_period: PeriodRef
    overlap_start: date
    overlap_end: date
    overlap_days: int


class IntersectionListResponse(BaseModel):
    """All intersections found in a scope for one year."""

    items: list[IntersectionRecord]
    total: int
