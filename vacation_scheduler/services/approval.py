# ruff: noqa: TC003
"""Approver-side transitions: approve (with force override), reject, cancel.

Each operation runs as one critical section: the request row, the owner's
ledger and (for approval) the ledger of every employee in the approver's
visibility scope are locked before anything is read for the decision, and the
transaction commits once at the end.
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from vacation_scheduler.exceptions import ConflictError
from vacation_scheduler.models.enums import AuditAction, AuditEntityType, TransitionEvent
from vacation_scheduler.schemas.request import ApprovalResponse
from vacation_scheduler.services import ledger, store
from vacation_scheduler.services.audit import model_to_audit_dict, write_audit_log
from vacation_scheduler.services.conflicts import find_conflicts
from vacation_scheduler.services.lifecycle import COMMITTED_STATUSES, authorize, next_status
from vacation_scheduler.services.locks import ledger_key

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from vacation_scheduler.models.request import VacationRequest
    from vacation_scheduler.schemas.auth import Actor
    from vacation_scheduler.schemas.request import RequestResponse

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _owner_ledger_key(request: VacationRequest) -> set[str]:
    return {ledger_key(request.owner_id, request.year)}


async def _release_reservation(
    session: AsyncSession,
    request: VacationRequest,
    actor: Actor,
    event: TransitionEvent,
    audit_action: AuditAction,
    decision_note: str | None = None,
) -> RequestResponse:
    """Shared logic for reject and cancel.

    1. Authorize and check the transition.
    2. Update request status.
    3. Release the reservation made at submit, if the request held one.
    4. Audit log.
    5. Commit and return.
    """
    authorize(actor, request.owner_id, event)
    target = next_status(request.status, event)

    before = await store.snapshot(session, request)
    await store.set_status(session, request, target, decided_by=actor.id, decision_note=decision_note)  # type: ignore[arg-type]

    committed_days = None
    if before.status in COMMITTED_STATUSES:
        limit = await ledger.release(
            session, request.owner_id, request.year, request.days_requested, source_id=request.id
        )
        committed_days = limit.committed_days
    after = await store.snapshot(session, request)

    await write_audit_log(
        session,
        actor_id=actor.id,
        entity_type=AuditEntityType.REQUEST,
        entity_id=request.id,
        action=audit_action,
        before_json=model_to_audit_dict(before),
        after_json=model_to_audit_dict(after, committed_days=committed_days),
    )
    await session.commit()
    return after


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def approve_request(
    session: AsyncSession,
    actor: Actor,
    request_id: uuid.UUID,
    force: bool = False,
) -> ApprovalResponse:
    """Approve a Pending request.

    Flow:
    1. Lock the request and the ledger of every employee in scope for the year.
    2. Authorize (owner must be in the actor's scope) and check the transition.
    3. Find overlaps with Approved periods of other employees in scope.
    4. Without force, any overlap raises ConflictError and nothing changes.
    5. With force, the overlaps are returned as warnings and audited.
    6. Move the request to APPROVED; the reservation from submit stays.
    7. Audit and commit.
    """

    def _scope_keys(request: VacationRequest) -> set[str]:
        return {ledger_key(employee_id, request.year) for employee_id in {request.owner_id, *actor.scope}}

    async with store.hold_request(session, request_id, _scope_keys) as request:
        authorize(actor, request.owner_id, TransitionEvent.APPROVE)
        target = next_status(request.status, TransitionEvent.APPROVE)

        before = await store.snapshot(session, request)
        conflicts = await find_conflicts(session, before, actor.scope)
        if conflicts and not force:
            logger.info("Approval of request %s blocked by %d conflict(s)", request_id, len(conflicts))
            raise ConflictError(conflicts)

        await store.set_status(session, request, target, decided_by=actor.id)  # type: ignore[arg-type]
        after = await store.snapshot(session, request)

        forced = bool(conflicts)
        await write_audit_log(
            session,
            actor_id=actor.id,
            entity_type=AuditEntityType.REQUEST,
            entity_id=request.id,
            action=AuditAction.FORCE_APPROVE if forced else AuditAction.APPROVE,
            before_json=model_to_audit_dict(before),
            after_json=model_to_audit_dict(
                after,
                overridden_conflicts=[c.model_dump(mode="json") for c in conflicts],
            ),
        )
        await session.commit()

    if forced:
        logger.warning(
            "Request %s force-approved by %s overriding %d conflict(s)",
            request_id,
            actor.id,
            len(conflicts),
        )
    else:
        logger.info("Request %s approved by %s", request_id, actor.id)

    return ApprovalResponse(request=after, forced=forced, warnings=conflicts)


async def reject_request(
    session: AsyncSession,
    actor: Actor,
    request_id: uuid.UUID,
    reason: str = "",
) -> RequestResponse:
    """Reject a Pending request and release its reservation."""
    async with store.hold_request(session, request_id, _owner_ledger_key) as request:
        response = await _release_reservation(
            session,
            request,
            actor,
            TransitionEvent.REJECT,
            AuditAction.REJECT,
            decision_note=reason,
        )

    logger.info("Request %s rejected by %s", request_id, actor.id)
    return response


async def cancel_request(
    session: AsyncSession,
    actor: Actor,
    request_id: uuid.UUID,
) -> RequestResponse:
    """Cancel a Pending or Approved request and release its reservation.

    The owner or an approver with the owner in scope can cancel.
    """
    async with store.hold_request(session, request_id, _owner_ledger_key) as request:
        response = await _release_reservation(
            session,
            request,
            actor,
            TransitionEvent.CANCEL,
            AuditAction.CANCEL,
        )

    logger.info("Request %s cancelled by %s", request_id, actor.id)
    return response
