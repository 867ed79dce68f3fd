"""Overlap detection between vacation periods of different employees.

Intervals are closed calendar ranges: two periods sharing a single boundary
day overlap. Both detectors sweep intervals in start order and keep the open
ones in min-heaps keyed by end date, so the cost is O(N log N) plus the
number of reported pairs rather than quadratic in the number of periods.
"""

from __future__ import annotations

import heapq
import itertools
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from vacation_scheduler.models.enums import RequestStatus
from vacation_scheduler.schemas.conflict import (
    ConflictRecord,
    IntersectionListResponse,
    IntersectionRecord,
    PeriodRef,
)
from vacation_scheduler.services import store
from vacation_scheduler.services.periods import Period, overlap_of

if TYPE_CHECKING:
    import uuid
    from collections.abc import Collection, Iterable

    from sqlalchemy.ext.asyncio import AsyncSession

    from vacation_scheduler.schemas.request import RequestResponse
    from vacation_scheduler.services.store import OwnedPeriod

logger = logging.getLogger(__name__)

_CANDIDATE = 0
_EXISTING = 1


@dataclass(frozen=True, slots=True)
class _Interval:
    kind: int
    period: Period
    owned: OwnedPeriod | None = None


def _ref(period: Period) -> PeriodRef:
    return PeriodRef(start_date=period.start, end_date=period.end, day_count=period.day_count)


def _evict_closed(heap: list[tuple], before: object) -> None:
    """Drop heap entries whose end date is earlier than ``before``."""
    while heap and heap[0][0] < before:
        heapq.heappop(heap)


# ---------------------------------------------------------------------------
# Pure sweeps
# ---------------------------------------------------------------------------


def detect_conflicts(
    subject_request_id: uuid.UUID,
    candidate_periods: Iterable[Period],
    existing_periods: Iterable[OwnedPeriod],
) -> list[ConflictRecord]:
    """Report every overlap between a candidate period and an existing period.

    Each overlapping (candidate, existing) pair yields exactly one record with
    ``overlap_start = max(starts)`` and ``overlap_end = min(ends)``.
    """
    intervals = [_Interval(_CANDIDATE, p) for p in candidate_periods]
    intervals.extend(_Interval(_EXISTING, o.period, o) for o in existing_periods)
    # Candidates first on equal start so ordering is stable; either order finds the pair.
    intervals.sort(key=lambda i: (i.period.start, i.kind, i.period.end))

    counter = itertools.count()
    open_candidates: list[tuple] = []
    open_existing: list[tuple] = []
    conflicts: list[ConflictRecord] = []

    def _record(candidate: Period, existing: OwnedPeriod) -> None:
        overlap = overlap_of(candidate, existing.period)
        if overlap is None:
            return
        conflicts.append(
            ConflictRecord(
                subject_request_id=subject_request_id,
                subject_period=_ref(candidate),
                other_request_id=existing.request_id,
                other_owner_id=existing.owner_id,
                other_period=_ref(existing.period),
                overlap_start=overlap.start,
                overlap_end=overlap.end,
                overlap_days=overlap.day_count,
            )
        )

    for interval in intervals:
        if interval.owned is None:
            _evict_closed(open_existing, interval.period.start)
            for _, _, owned in open_existing:
                _record(interval.period, owned)
            heapq.heappush(open_candidates, (interval.period.end, next(counter), interval.period))
        else:
            _evict_closed(open_candidates, interval.period.start)
            for _, _, candidate in open_candidates:
                _record(candidate, interval.owned)
            heapq.heappush(open_existing, (interval.period.end, next(counter), interval.owned))

    conflicts.sort(
        key=lambda c: (c.overlap_start, c.overlap_end, str(c.other_owner_id), str(c.other_request_id))
    )
    return conflicts


def detect_intersections(periods: Iterable[OwnedPeriod]) -> list[IntersectionRecord]:
    """Report every overlap between periods of different owners."""
    ordered = sorted(periods, key=lambda o: (o.period.start, o.period.end, str(o.owner_id)))
    counter = itertools.count()
    open_heap: list[tuple] = []
    found: list[IntersectionRecord] = []

    for current in ordered:
        _evict_closed(open_heap, current.period.start)
        for _, _, earlier in open_heap:
            overlap = overlap_of(earlier.period, current.period)
            if earlier.owner_id == current.owner_id or overlap is None:
                continue
            found.append(
                IntersectionRecord(
                    first_owner_id=earlier.owner_id,
                    first_request_id=earlier.request_id,
                    first_period=_ref(earlier.period),
                    second_owner_id=current.owner_id,
                    second_request_id=current.request_id,
                    second_period=_ref(current.period),
                    overlap_start=overlap.start,
                    overlap_end=overlap.end,
                    overlap_days=overlap.day_count,
                )
            )
        heapq.heappush(open_heap, (current.period.end, next(counter), current))

    found.sort(key=lambda r: (r.overlap_start, r.overlap_end, str(r.first_owner_id), str(r.second_owner_id)))
    return found


# ---------------------------------------------------------------------------
# Storage-backed entry points
# ---------------------------------------------------------------------------


async def find_conflicts(
    session: AsyncSession,
    request: RequestResponse,
    scope: Collection[uuid.UUID],
) -> list[ConflictRecord]:
    """Conflicts between ``request`` and Approved periods of other owners in ``scope``."""
    existing = await store.list_periods_by_scope(
        session,
        scope,
        request.year,
        statuses=(RequestStatus.APPROVED,),
        exclude_owner_id=request.owner_id,
    )
    candidates = [Period(p.start_date, p.end_date) for p in request.periods]
    conflicts = detect_conflicts(request.id, candidates, existing)
    logger.debug(
        "Conflict check for request %s: %d candidate, %d existing, %d conflicts",
        request.id,
        len(candidates),
        len(existing),
        len(conflicts),
    )
    return conflicts


async def find_scope_intersections(
    session: AsyncSession,
    scope: Collection[uuid.UUID] | None,
    year: int,
    statuses: Collection[RequestStatus] = (RequestStatus.APPROVED,),
) -> IntersectionListResponse:
    """All overlaps between different employees' requests in ``scope`` for ``year``.

    ``scope=None`` reports across every employee.
    """
    periods = await store.list_periods_by_scope(session, scope, year, statuses=statuses)
    items = detect_intersections(periods)
    return IntersectionListResponse(items=items, total=len(items))
