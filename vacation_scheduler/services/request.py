# ruff: noqa: TC003
"""Owner-side request operations: create, edit, delete, submit, and reads."""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from vacation_scheduler.config import get_settings
from vacation_scheduler.exceptions import AuthorizationError
from vacation_scheduler.models.enums import AuditAction, AuditEntityType, RequestStatus, TransitionEvent
from vacation_scheduler.services import ledger, store
from vacation_scheduler.services.audit import model_to_audit_dict, write_audit_log
from vacation_scheduler.services.lifecycle import authorize, next_status, validate_for_submit, validate_periods
from vacation_scheduler.services.locks import ledger_key
from vacation_scheduler.services.org_unit import unit_members_visible_to
from vacation_scheduler.services.periods import Period

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from vacation_scheduler.models.request import VacationRequest
    from vacation_scheduler.schemas.auth import Actor
    from vacation_scheduler.schemas.request import (
        CreateRequestPayload,
        RequestListResponse,
        RequestResponse,
        UpdateRequestPayload,
    )

logger = logging.getLogger(__name__)


def _owner_ledger_key(request: VacationRequest) -> set[str]:
    return {ledger_key(request.owner_id, request.year)}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def create_request(
    session: AsyncSession,
    actor: Actor,
    payload: CreateRequestPayload,
) -> RequestResponse:
    """Create a Draft request owned by the actor.

    Periods are validated structurally (date order, in-year, non-overlapping);
    the long-block rule is left for submission.
    """
    periods = validate_periods(payload.year, payload.periods)
    request = await store.create(session, actor.id, payload.year, periods, payload.comment)

    response = await store.snapshot(session, request)
    await write_audit_log(
        session,
        actor_id=actor.id,
        entity_type=AuditEntityType.REQUEST,
        entity_id=request.id,
        action=AuditAction.CREATE,
        after_json=model_to_audit_dict(response),
    )
    await session.commit()

    logger.info(
        "Request %s created by %s for %d (%d days)", request.id, actor.id, request.year, response.days_requested
    )
    return response


async def update_request(
    session: AsyncSession,
    actor: Actor,
    request_id: uuid.UUID,
    payload: UpdateRequestPayload,
) -> RequestResponse:
    """Edit a Draft request. Only the owner may edit."""
    async with store.hold_request(session, request_id) as request:
        authorize(actor, request.owner_id, TransitionEvent.EDIT)
        next_status(request.status, TransitionEvent.EDIT)

        before = await store.snapshot(session, request)
        year = payload.year if payload.year is not None else request.year
        if payload.periods is not None:
            periods = validate_periods(year, payload.periods)
        elif year != request.year:
            # Revalidate the stored periods against the new year.
            periods = validate_periods(year, before.periods)  # type: ignore[arg-type]
        else:
            periods = None

        await store.update(session, request, year=payload.year, periods=periods, comment=payload.comment)
        after = await store.snapshot(session, request)

        await write_audit_log(
            session,
            actor_id=actor.id,
            entity_type=AuditEntityType.REQUEST,
            entity_id=request.id,
            action=AuditAction.UPDATE,
            before_json=model_to_audit_dict(before),
            after_json=model_to_audit_dict(after),
        )
        await session.commit()

    logger.info("Request %s edited by %s", request_id, actor.id)
    return after


async def delete_request(
    session: AsyncSession,
    actor: Actor,
    request_id: uuid.UUID,
) -> None:
    """Delete a Draft request. Drafts never reserved days, so the ledger is untouched."""
    async with store.hold_request(session, request_id) as request:
        authorize(actor, request.owner_id, TransitionEvent.DELETE)
        next_status(request.status, TransitionEvent.DELETE)

        before = await store.snapshot(session, request)
        await store.remove(session, request)
        await write_audit_log(
            session,
            actor_id=actor.id,
            entity_type=AuditEntityType.REQUEST,
            entity_id=request_id,
            action=AuditAction.DELETE,
            before_json=model_to_audit_dict(before),
        )
        await session.commit()

    logger.info("Request %s deleted by %s", request_id, actor.id)


async def submit_request(
    session: AsyncSession,
    actor: Actor,
    request_id: uuid.UUID,
) -> RequestResponse:
    """Submit a Draft for approval, reserving its days against the allowance.

    Flow:
    1. Lock the request and the owner's ledger for the request year.
    2. Authorize (owner only) and check the transition.
    3. Revalidate structure and enforce the long-block rule.
    4. Reserve the requested days (never forced).
    5. Move the request to PENDING.
    6. Audit and commit.
    """
    settings = get_settings()

    async with store.hold_request(session, request_id, _owner_ledger_key) as request:
        authorize(actor, request.owner_id, TransitionEvent.SUBMIT)
        target = next_status(request.status, TransitionEvent.SUBMIT)

        before = await store.snapshot(session, request)
        periods = [Period(p.start_date, p.end_date) for p in before.periods]
        validate_for_submit(periods, settings.long_block_days)

        reservation = await ledger.reserve(
            session,
            request.owner_id,
            request.year,
            request.days_requested,
            source_id=request.id,
            require_exact=settings.require_exact_allowance,
        )

        await store.set_status(session, request, target)  # type: ignore[arg-type]
        after = await store.snapshot(session, request)

        await write_audit_log(
            session,
            actor_id=actor.id,
            entity_type=AuditEntityType.REQUEST,
            entity_id=request.id,
            action=AuditAction.SUBMIT,
            before_json=model_to_audit_dict(before),
            after_json=model_to_audit_dict(after, committed_days=reservation.committed_days),
        )
        await session.commit()

    logger.info(
        "Request %s submitted: reserved %d days, %d available",
        request_id,
        reservation.days,
        reservation.available_days,
    )
    return after


async def get_request(
    session: AsyncSession,
    actor: Actor,
    request_id: uuid.UUID,
) -> RequestResponse:
    """Get a single request visible to the actor (own, owner in scope, or admin)."""
    response = await store.get(session, request_id)
    if not actor.can_view(response.owner_id):
        raise AuthorizationError("Not authorized to view this request")
    return response


async def list_requests(
    session: AsyncSession,
    actor: Actor,
    *,
    year: int | None = None,
    status: RequestStatus | None = None,
    owner_id: uuid.UUID | None = None,
    unit_id: uuid.UUID | None = None,
    offset: int = 0,
    limit: int | None = None,
) -> RequestListResponse:
    """List requests visible to the actor.

    - ``owner_id``: that owner's requests; the owner must be visible to the actor.
    - ``unit_id``: requests of the unit's members, sub-units included.
    - Neither: everything for admins, otherwise the actor's own requests plus
      those of everyone in scope.
    """
    if owner_id is not None and not actor.can_view(owner_id):
        raise AuthorizationError("Not authorized to list this employee's requests")

    if unit_id is not None:
        owners = await unit_members_visible_to(actor, unit_id)
        if owner_id is not None:
            owners &= {owner_id}
        return await store.list_by_scope(session, owners, year, status, offset, limit)
    if owner_id is not None:
        return await store.list_by_owner(session, owner_id, year, status, offset, limit)
    if actor.is_admin:
        return await store.list_all(session, year, status, offset, limit)
    return await store.list_by_scope(session, {actor.id, *actor.scope}, year, status, offset, limit)
