# ruff: noqa: B008, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query

from vacation_scheduler.api.deps import ActorDep
from vacation_scheduler.db import SessionDep
from vacation_scheduler.models.enums import RequestStatus
from vacation_scheduler.schemas.conflict import IntersectionListResponse
from vacation_scheduler.services import conflicts as conflict_service
from vacation_scheduler.services.lifecycle import COMMITTED_STATUSES
from vacation_scheduler.services.org_unit import report_scope

intersections_router = APIRouter(prefix="/intersections", tags=["conflicts"])


@intersections_router.get("", response_model=IntersectionListResponse)
async def list_intersections(
    session: SessionDep,
    actor: ActorDep,
    year: int = Query(),
    include_pending: bool = Query(default=False),
    unit_id: uuid.UUID | None = Query(default=None),
) -> IntersectionListResponse:
    """Overlapping vacations between employees of the caller's team or one org unit.

    Admins without a unit filter see overlaps across every employee.
    """
    scope = await report_scope(actor, unit_id)
    statuses = COMMITTED_STATUSES if include_pending else frozenset({RequestStatus.APPROVED})
    return await conflict_service.find_scope_intersections(session, scope, year, statuses)
