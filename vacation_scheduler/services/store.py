# ruff: noqa: TC003
"""Durable storage of vacation requests and their periods.

Reads return frozen ``RequestResponse`` snapshots. Writes touch a single
request (and its periods) and are made by callers holding that request's lock.
"""

from __future__ import annotations

import uuid
from collections import defaultdict
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import delete, func, select
from sqlmodel import col

from vacation_scheduler.exceptions import NotFoundError
from vacation_scheduler.models.enums import RequestStatus
from vacation_scheduler.models.request import VacationPeriod, VacationRequest
from vacation_scheduler.schemas.request import PeriodResponse, RequestListResponse, RequestResponse
from vacation_scheduler.services.locks import lock_registry, request_key
from vacation_scheduler.services.periods import Period, total_days

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable, Collection, Sequence

    from sqlalchemy.ext.asyncio import AsyncSession


@dataclass(frozen=True, slots=True)
class OwnedPeriod:
    """A stored period together with the request and owner it belongs to."""

    request_id: uuid.UUID
    owner_id: uuid.UUID
    period: Period


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _build_request_response(request: VacationRequest, periods: Sequence[VacationPeriod]) -> RequestResponse:
    """Map a request row and its period rows to an immutable snapshot."""
    return RequestResponse(
        id=request.id,
        owner_id=request.owner_id,
        year=request.year,
        status=RequestStatus(request.status),
        periods=tuple(
            PeriodResponse(start_date=p.start_date, end_date=p.end_date, day_count=p.day_count)
            for p in sorted(periods, key=lambda p: p.position)
        ),
        comment=request.comment,
        days_requested=request.days_requested,
        submitted_at=request.submitted_at,
        decided_at=request.decided_at,
        decided_by=request.decided_by,
        decision_note=request.decision_note,
        created_at=request.created_at,
        updated_at=request.updated_at,
    )


async def _load_periods(
    session: AsyncSession,
    request_ids: Collection[uuid.UUID],
) -> dict[uuid.UUID, list[VacationPeriod]]:
    """Fetch the periods of several requests in one query."""
    grouped: dict[uuid.UUID, list[VacationPeriod]] = defaultdict(list)
    if not request_ids:
        return grouped
    result = await session.execute(
        select(VacationPeriod)
        .where(col(VacationPeriod.request_id).in_(list(request_ids)))
        .order_by(col(VacationPeriod.request_id), col(VacationPeriod.position))
    )
    for period in result.scalars().all():
        grouped[period.request_id].append(period)
    return grouped


def _add_periods(session: AsyncSession, request_id: uuid.UUID, periods: Sequence[Period]) -> None:
    for position, period in enumerate(periods):
        session.add(
            VacationPeriod(
                request_id=request_id,
                position=position,
                start_date=period.start,
                end_date=period.end,
                day_count=period.day_count,
            )
        )


async def _list(
    session: AsyncSession,
    filters: list,
    offset: int,
    limit: int | None,
) -> RequestListResponse:
    count_result = await session.execute(select(func.count()).select_from(VacationRequest).where(*filters))
    total = count_result.scalar_one()

    query = (
        select(VacationRequest)
        .where(*filters)
        .order_by(col(VacationRequest.created_at).desc(), col(VacationRequest.id))
        .offset(offset)
    )
    if limit is not None:
        query = query.limit(limit)
    result = await session.execute(query)
    requests = list(result.scalars().all())

    periods = await _load_periods(session, [r.id for r in requests])
    return RequestListResponse(
        items=[_build_request_response(r, periods[r.id]) for r in requests],
        total=total,
    )


def _status_filters(year: int | None, status: RequestStatus | None) -> list:
    filters = []
    if year is not None:
        filters.append(col(VacationRequest.year) == year)
    if status is not None:
        filters.append(col(VacationRequest.status) == status.value)
    return filters


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def get_request_row(
    session: AsyncSession,
    request_id: uuid.UUID,
    *,
    for_update: bool = False,
) -> VacationRequest:
    """Fetch a request row. Raises NotFoundError if it does not exist."""
    query = select(VacationRequest).where(col(VacationRequest.id) == request_id)
    if for_update:
        query = query.with_for_update()
    # A locked re-read must not be served from the identity map.
    result = await session.execute(query.execution_options(populate_existing=True))
    request = result.scalar_one_or_none()
    if request is None:
        raise NotFoundError(f"Vacation request {request_id} not found")
    return request


@asynccontextmanager
async def hold_request(
    session: AsyncSession,
    request_id: uuid.UUID,
    keys_for: Callable[[VacationRequest], Collection[str]] | None = None,
) -> AsyncIterator[VacationRequest]:
    """Lock a request (plus any keys derived from it) and yield its row re-read under the lock.

    ``keys_for`` maps the row to extra lock keys such as the owner's ledger.
    The keys are computed from an unlocked read first; if the row changed in a
    way that alters them before the locks were granted, the locks are dropped
    and taken again.
    """
    while True:
        unlocked = await get_request_row(session, request_id)
        wanted = {request_key(request_id), *(keys_for(unlocked) if keys_for else ())}
        async with lock_registry.hold(wanted, session):
            request = await get_request_row(session, request_id, for_update=True)
            if keys_for is None or {request_key(request_id), *keys_for(request)} == wanted:
                yield request
                return


async def snapshot(session: AsyncSession, request: VacationRequest) -> RequestResponse:
    """Build the immutable snapshot of a loaded request row."""
    periods = await _load_periods(session, [request.id])
    return _build_request_response(request, periods[request.id])


async def get(session: AsyncSession, request_id: uuid.UUID) -> RequestResponse:
    """Get a single request snapshot by ID."""
    request = await get_request_row(session, request_id)
    return await snapshot(session, request)


async def list_by_owner(
    session: AsyncSession,
    owner_id: uuid.UUID,
    year: int | None = None,
    status: RequestStatus | None = None,
    offset: int = 0,
    limit: int | None = None,
) -> RequestListResponse:
    """List one owner's requests, newest first."""
    filters = [col(VacationRequest.owner_id) == owner_id, *_status_filters(year, status)]
    return await _list(session, filters, offset, limit)


async def list_by_scope(
    session: AsyncSession,
    employee_ids: Collection[uuid.UUID],
    year: int | None = None,
    status: RequestStatus | None = None,
    offset: int = 0,
    limit: int | None = None,
) -> RequestListResponse:
    """List the requests of every employee in ``employee_ids``, newest first."""
    if not employee_ids:
        return RequestListResponse(items=[], total=0)
    filters = [col(VacationRequest.owner_id).in_(list(employee_ids)), *_status_filters(year, status)]
    return await _list(session, filters, offset, limit)


async def list_all(
    session: AsyncSession,
    year: int | None = None,
    status: RequestStatus | None = None,
    offset: int = 0,
    limit: int | None = None,
) -> RequestListResponse:
    """List every request in the system, newest first. Admin views only."""
    return await _list(session, _status_filters(year, status), offset, limit)


async def list_periods_by_scope(
    session: AsyncSession,
    employee_ids: Collection[uuid.UUID] | None,
    year: int,
    statuses: Collection[RequestStatus] = (RequestStatus.APPROVED,),
    exclude_owner_id: uuid.UUID | None = None,
) -> list[OwnedPeriod]:
    """Fetch the periods of requests in the given statuses for owners in scope.

    ``employee_ids=None`` covers every owner.
    """
    if not statuses:
        return []
    filters = [
        col(VacationRequest.year) == year,
        col(VacationRequest.status).in_([s.value for s in statuses]),
    ]
    if employee_ids is not None:
        owners = {owner_id for owner_id in employee_ids if owner_id != exclude_owner_id}
        if not owners:
            return []
        filters.append(col(VacationRequest.owner_id).in_(list(owners)))
    elif exclude_owner_id is not None:
        filters.append(col(VacationRequest.owner_id) != exclude_owner_id)

    result = await session.execute(
        select(
            col(VacationPeriod.request_id),
            col(VacationRequest.owner_id),
            col(VacationPeriod.start_date),
            col(VacationPeriod.end_date),
        )
        .join(VacationRequest, col(VacationRequest.id) == col(VacationPeriod.request_id))
        .where(*filters)
        .order_by(col(VacationPeriod.start_date))
    )
    return [
        OwnedPeriod(request_id=request_id, owner_id=owner_id, period=Period(start, end))
        for request_id, owner_id, start, end in result.all()
    ]


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


async def create(
    session: AsyncSession,
    owner_id: uuid.UUID,
    year: int,
    periods: Sequence[Period],
    comment: str = "",
) -> VacationRequest:
    """Insert a new Draft request with its periods (flushed, not committed)."""
    request = VacationRequest(
        owner_id=owner_id,
        year=year,
        status=RequestStatus.DRAFT.value,
        comment=comment,
        days_requested=total_days(periods),
    )
    session.add(request)
    await session.flush()
    _add_periods(session, request.id, periods)
    await session.flush()
    return request


async def update(
    session: AsyncSession,
    request: VacationRequest,
    *,
    year: int | None = None,
    periods: Sequence[Period] | None = None,
    comment: str | None = None,
) -> VacationRequest:
    """Replace the mutable content of a request."""
    if year is not None:
        request.year = year
    if comment is not None:
        request.comment = comment
    if periods is not None:
        await session.execute(delete(VacationPeriod).where(col(VacationPeriod.request_id) == request.id))
        _add_periods(session, request.id, periods)
        request.days_requested = total_days(periods)
    request.updated_at = datetime.now(UTC)
    await session.flush()
    return request


async def set_status(
    session: AsyncSession,
    request: VacationRequest,
    status: RequestStatus,
    *,
    decided_by: uuid.UUID | None = None,
    decision_note: str | None = None,
) -> VacationRequest:
    """Move a request to ``status`` and stamp the matching timestamps."""
    now = datetime.now(UTC)
    request.status = status.value
    request.updated_at = now
    if status == RequestStatus.PENDING:
        request.submitted_at = now
    elif decided_by is not None:
        request.decided_at = now
        request.decided_by = decided_by
        request.decision_note = decision_note
    await session.flush()
    return request


async def remove(session: AsyncSession, request: VacationRequest) -> None:
    """Delete a request and its periods."""
    await session.execute(delete(VacationPeriod).where(col(VacationPeriod.request_id) == request.id))
    await session.delete(request)
    await session.flush()
