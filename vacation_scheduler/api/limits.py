# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query

from vacation_scheduler.api.deps import ActorDep, AdminDep
from vacation_scheduler.db import SessionDep
from vacation_scheduler.exceptions import AuthorizationError
from vacation_scheduler.schemas.limit import LimitListResponse, LimitResponse, SetAllowancePayload
from vacation_scheduler.services import ledger as ledger_service
from vacation_scheduler.services.org_unit import report_scope

employee_limits_router = APIRouter(
    prefix="/employees/{employee_id}/limits",
    tags=["limits"],
)

limits_router = APIRouter(prefix="/limits", tags=["limits"])


@employee_limits_router.get("/{year}", response_model=LimitResponse)
async def get_limit(
    employee_id: uuid.UUID,
    year: int,
    session: SessionDep,
    actor: ActorDep,
) -> LimitResponse:
    """Get an employee's allowance and committed days for a year."""
    if not actor.can_view(employee_id):
        raise AuthorizationError("Not authorized to view this employee's limit")
    return await ledger_service.get_limit(session, employee_id, year)


@employee_limits_router.put("/{year}", response_model=LimitResponse)
async def set_allowance(
    employee_id: uuid.UUID,
    year: int,
    payload: SetAllowancePayload,
    session: SessionDep,
    actor: AdminDep,
) -> LimitResponse:
    """Set an employee's yearly allowance (admin only)."""
    return await ledger_service.set_allowance(session, actor, employee_id, year, payload.total_days)


@limits_router.get("", response_model=LimitListResponse)
async def list_limits(
    session: SessionDep,
    actor: ActorDep,
    year: int = Query(),
    unit_id: uuid.UUID | None = Query(default=None),
) -> LimitListResponse:
    """Limits for a year: the caller's team, one org unit, or (admins) every stored limit."""
    employee_ids = await report_scope(actor, unit_id)
    return await ledger_service.list_limits(session, employee_ids, year)
