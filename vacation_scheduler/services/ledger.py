# ruff: noqa: TC003
"""Per (employee, year) allowance ledger.

``committed_days`` is the sum of ``days_requested`` over the owner's Pending
and Approved requests for the year. It only moves through ``reserve`` and
``release``, each of which also appends a ``VacationLimitEntry`` row. Callers
hold the ``ledger:<owner>:<year>`` lock while mutating.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Collection
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from vacation_scheduler.config import get_settings
from vacation_scheduler.exceptions import AuthorizationError, InsufficientAllowance, ValidationError
from vacation_scheduler.models.enums import AuditAction, AuditEntityType, LimitEntryType, LimitSourceType
from vacation_scheduler.models.limit import VacationLimit, VacationLimitEntry
from vacation_scheduler.schemas.limit import LimitListResponse, LimitResponse, ReservationResult
from vacation_scheduler.services.audit import model_to_audit_dict, write_audit_log
from vacation_scheduler.services.locks import ledger_key, lock_registry

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from vacation_scheduler.schemas.auth import Actor

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _build_limit_response(limit: VacationLimit) -> LimitResponse:
    """Map a limit row to its response schema."""
    return LimitResponse(
        owner_id=limit.owner_id,
        year=limit.year,
        total_days=limit.total_days,
        committed_days=limit.committed_days,
        available_days=limit.total_days - limit.committed_days,
        updated_at=limit.updated_at,
    )


def _default_limit_response(owner_id: uuid.UUID, year: int) -> LimitResponse:
    total = get_settings().default_allowance_days
    return LimitResponse(
        owner_id=owner_id,
        year=year,
        total_days=total,
        committed_days=0,
        available_days=total,
        updated_at=None,
    )


async def _get_or_create_limit_for_update(
    session: AsyncSession,
    owner_id: uuid.UUID,
    year: int,
) -> VacationLimit:
    """Get the limit row with a FOR UPDATE lock, creating it if absent."""
    result = await session.execute(
        select(VacationLimit)
        .where(
            col(VacationLimit.owner_id) == owner_id,
            col(VacationLimit.year) == year,
        )
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    limit = result.scalar_one_or_none()

    if limit is None:
        limit = VacationLimit(
            owner_id=owner_id,
            year=year,
            total_days=get_settings().default_allowance_days,
            committed_days=0,
            version=1,
        )
        session.add(limit)
        await session.flush()

    return limit


# ---------------------------------------------------------------------------
# Read path
# ---------------------------------------------------------------------------


async def get_limit(session: AsyncSession, owner_id: uuid.UUID, year: int) -> LimitResponse:
    """Return the limit of ``owner_id`` for ``year``; an absent record reads as the default."""
    result = await session.execute(
        select(VacationLimit).where(
            col(VacationLimit.owner_id) == owner_id,
            col(VacationLimit.year) == year,
        )
    )
    limit = result.scalar_one_or_none()
    if limit is None:
        return _default_limit_response(owner_id, year)
    return _build_limit_response(limit)


async def list_limits(
    session: AsyncSession,
    employee_ids: Collection[uuid.UUID] | None,
    year: int,
) -> LimitListResponse:
    """Limits of every employee in ``employee_ids`` for ``year``, defaults included.

    With ``employee_ids=None`` every stored limit for the year is listed;
    employees without a row are unknown to the ledger and do not appear.
    """
    if employee_ids is None:
        result = await session.execute(
            select(VacationLimit).where(col(VacationLimit.year) == year).order_by(col(VacationLimit.owner_id))
        )
        items = [_build_limit_response(limit) for limit in result.scalars().all()]
        return LimitListResponse(items=items, total=len(items))
    if not employee_ids:
        return LimitListResponse(items=[], total=0)
    result = await session.execute(
        select(VacationLimit).where(
            col(VacationLimit.owner_id).in_(list(employee_ids)),
            col(VacationLimit.year) == year,
        )
    )
    stored = {limit.owner_id: limit for limit in result.scalars().all()}
    items = [
        _build_limit_response(stored[owner_id]) if owner_id in stored else _default_limit_response(owner_id, year)
        for owner_id in sorted(employee_ids, key=str)
    ]
    return LimitListResponse(items=items, total=len(items))


# ---------------------------------------------------------------------------
# Write path: lifecycle transitions
# ---------------------------------------------------------------------------


async def reserve(
    session: AsyncSession,
    owner_id: uuid.UUID,
    year: int,
    days: int,
    source_id: uuid.UUID | str,
    *,
    force: bool = False,
    require_exact: bool = False,
) -> ReservationResult:
    """Commit ``days`` against the allowance.

    Raises InsufficientAllowance when the reservation would exceed
    ``total_days`` (or, with ``require_exact``, when it does not use the
    available days exactly). In force mode the reservation always succeeds and
    the result and ledger entry are flagged as an overdraft.
    """
    if days < 0:
        raise ValidationError("Cannot reserve a negative number of days")

    limit = await _get_or_create_limit_for_update(session, owner_id, year)
    available = limit.total_days - limit.committed_days

    overdraft = days > available
    if not force:
        if overdraft:
            raise InsufficientAllowance(requested_days=days, available_days=available)
        if require_exact and days != available:
            raise ValidationError(
                f"All available days must be used: available {available}, requested {days}",
                context={"requested_days": days, "available_days": available},
            )

    entry = VacationLimitEntry(
        owner_id=owner_id,
        year=year,
        entry_type=LimitEntryType.RESERVE.value,
        days=days,
        source_type=LimitSourceType.REQUEST.value,
        source_id=str(source_id),
        overdraft=overdraft,
        metadata_json={"available_before": available} if overdraft else None,
    )
    session.add(entry)

    limit.committed_days += days
    limit.updated_at = datetime.now(UTC)
    limit.version += 1
    await session.flush()

    if overdraft:
        logger.warning(
            "Forced overdraft for owner=%s year=%d: reserved %d days with %d available",
            owner_id,
            year,
            days,
            available,
        )

    return ReservationResult(
        owner_id=owner_id,
        year=year,
        days=days,
        committed_days=limit.committed_days,
        available_days=limit.total_days - limit.committed_days,
        overdraft=overdraft,
    )


async def release(
    session: AsyncSession,
    owner_id: uuid.UUID,
    year: int,
    days: int,
    source_id: uuid.UUID | str,
) -> LimitResponse:
    """Return ``days`` to the allowance. ``committed_days`` never drops below zero."""
    limit = await _get_or_create_limit_for_update(session, owner_id, year)

    released = min(days, limit.committed_days)
    if released != days:
        logger.warning(
            "Release of %d days for owner=%s year=%d floored at zero (committed %d)",
            days,
            owner_id,
            year,
            limit.committed_days,
        )

    entry = VacationLimitEntry(
        owner_id=owner_id,
        year=year,
        entry_type=LimitEntryType.RELEASE.value,
        days=released,
        source_type=LimitSourceType.REQUEST.value,
        source_id=str(source_id),
        metadata_json={"requested": days} if released != days else None,
    )
    session.add(entry)

    limit.committed_days -= released
    limit.updated_at = datetime.now(UTC)
    limit.version += 1
    await session.flush()
    return _build_limit_response(limit)


# ---------------------------------------------------------------------------
# Write path: administrative
# ---------------------------------------------------------------------------


async def set_allowance(
    session: AsyncSession,
    actor: Actor,
    owner_id: uuid.UUID,
    year: int,
    total_days: int,
) -> LimitResponse:
    """Replace the yearly allowance of ``owner_id``. Never touches committed days."""
    if not actor.is_admin:
        raise AuthorizationError("Admin access required to set allowances")
    if total_days < 0:
        raise ValidationError("Allowance cannot be negative")

    async with lock_registry.hold([ledger_key(owner_id, year)], session):
        limit = await _get_or_create_limit_for_update(session, owner_id, year)
        before_dict = model_to_audit_dict(limit)

        entry_id = uuid.uuid4()
        session.add(
            VacationLimitEntry(
                id=entry_id,
                owner_id=owner_id,
                year=year,
                entry_type=LimitEntryType.ALLOWANCE.value,
                days=total_days - limit.total_days,
                source_type=LimitSourceType.ADMIN.value,
                source_id=str(entry_id),
                metadata_json={"total_days": total_days, "set_by": str(actor.id)},
            )
        )

        limit.total_days = total_days
        limit.updated_at = datetime.now(UTC)
        limit.version += 1
        await session.flush()

        await write_audit_log(
            session,
            actor_id=actor.id,
            entity_type=AuditEntityType.LIMIT,
            entity_id=f"{owner_id}:{year}",
            action=AuditAction.SET_ALLOWANCE,
            before_json=before_dict,
            after_json=model_to_audit_dict(limit),
        )

        await session.commit()
        response = _build_limit_response(limit)

    logger.info("Allowance for owner=%s year=%d set to %d by %s", owner_id, year, total_days, actor.id)
    return response
