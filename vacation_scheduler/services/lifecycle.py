"""Request state machine, structural validation and actor authorization."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from vacation_scheduler.exceptions import AuthorizationError, InvalidTransition, ValidationError
from vacation_scheduler.models.enums import RequestStatus, TransitionEvent
from vacation_scheduler.services.periods import Period, inclusive_day_count, sort_periods

if TYPE_CHECKING:
    import uuid
    from collections.abc import Sequence

    from vacation_scheduler.schemas.auth import Actor
    from vacation_scheduler.schemas.request import PeriodPayload

logger = logging.getLogger(__name__)

# (current status, event) -> next status. None means the request is removed.
_TRANSITIONS: dict[tuple[RequestStatus, TransitionEvent], RequestStatus | None] = {
    (RequestStatus.DRAFT, TransitionEvent.EDIT): RequestStatus.DRAFT,
    (RequestStatus.DRAFT, TransitionEvent.DELETE): None,
    (RequestStatus.DRAFT, TransitionEvent.SUBMIT): RequestStatus.PENDING,
    (RequestStatus.PENDING, TransitionEvent.APPROVE): RequestStatus.APPROVED,
    (RequestStatus.PENDING, TransitionEvent.REJECT): RequestStatus.REJECTED,
    (RequestStatus.PENDING, TransitionEvent.CANCEL): RequestStatus.CANCELLED,
    (RequestStatus.APPROVED, TransitionEvent.CANCEL): RequestStatus.CANCELLED,
}

# Statuses whose days are counted against the allowance.
COMMITTED_STATUSES = frozenset({RequestStatus.PENDING, RequestStatus.APPROVED})

_OWNER_EVENTS = frozenset({TransitionEvent.EDIT, TransitionEvent.DELETE, TransitionEvent.SUBMIT})
_APPROVER_EVENTS = frozenset({TransitionEvent.APPROVE, TransitionEvent.REJECT})


def next_status(current: RequestStatus | str, event: TransitionEvent) -> RequestStatus | None:
    """Return the status reached by applying ``event``.

    Raises InvalidTransition for any pair outside the transition table.
    """
    current = RequestStatus(current)
    key = (current, event)
    if key not in _TRANSITIONS:
        raise InvalidTransition(current.value, event.value)
    return _TRANSITIONS[key]


def authorize(actor: Actor, owner_id: uuid.UUID, event: TransitionEvent) -> None:
    """Check that ``actor`` may apply ``event`` to a request owned by ``owner_id``.

    Owner-only: EDIT, DELETE, SUBMIT. Approver with scope: APPROVE, REJECT.
    CANCEL: owner or approver with scope.
    """
    is_owner = actor.id == owner_id
    if event in _OWNER_EVENTS:
        allowed = is_owner
    elif event in _APPROVER_EVENTS:
        allowed = actor.has_authority_over(owner_id)
    else:
        allowed = is_owner or actor.has_authority_over(owner_id)

    if not allowed:
        logger.info("Actor %s denied %s on request of %s", actor.id, event.value, owner_id)
        raise AuthorizationError(f"Not authorized to {event.value.lower()} this request")


def validate_periods(year: int, periods: Sequence[PeriodPayload]) -> list[Period]:
    """Validate the structure of a request's periods and return them sorted.

    Checks date order, that every period lies inside ``year``, that a supplied
    day_count matches the inclusive day count, and that no two periods overlap.
    """
    if not periods:
        raise ValidationError("At least one vacation period is required")

    result: list[Period] = []
    for index, payload in enumerate(periods, start=1):
        if payload.end_date < payload.start_date:
            raise ValidationError(
                f"Period {index}: end date {payload.end_date} is before start date {payload.start_date}",
                context={"period": index},
            )
        if payload.start_date.year != year or payload.end_date.year != year:
            raise ValidationError(
                f"Period {index} ({payload.start_date} - {payload.end_date}) is outside year {year}",
                context={"period": index, "year": year},
            )
        expected = inclusive_day_count(payload.start_date, payload.end_date)
        if payload.day_count is not None and payload.day_count != expected:
            raise ValidationError(
                f"Period {index}: day_count {payload.day_count} does not match {expected} calendar days",
                context={"period": index, "expected_day_count": expected},
            )
        result.append(Period(payload.start_date, payload.end_date))

    ordered = sort_periods(result)
    for previous, current in zip(ordered, ordered[1:], strict=False):
        if current.start <= previous.end:
            raise ValidationError(
                f"Periods {previous.start} - {previous.end} and {current.start} - {current.end} overlap",
                context={
                    "first": [previous.start.isoformat(), previous.end.isoformat()],
                    "second": [current.start.isoformat(), current.end.isoformat()],
                },
            )
    return ordered


def validate_for_submit(periods: Sequence[Period], long_block_days: int) -> None:
    """Enforce the long-block rule: one period must span at least ``long_block_days``."""
    if not periods:
        raise ValidationError("At least one vacation period is required")
    if not any(p.day_count >= long_block_days for p in periods):
        raise ValidationError(
            f"One part of the vacation must be a minimum {long_block_days}-day block",
            context={"long_block_days": long_block_days},
        )
