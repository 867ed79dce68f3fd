"""Tests for the request state machine, structural validation and authorization."""

from __future__ import annotations

import uuid
from datetime import date

import pytest

from vacation_scheduler.exceptions import AuthorizationError, InvalidTransition, ValidationError
from vacation_scheduler.models.enums import RequestStatus, TransitionEvent
from vacation_scheduler.schemas.auth import Actor
from vacation_scheduler.schemas.request import PeriodPayload
from vacation_scheduler.services.lifecycle import (
    COMMITTED_STATUSES,
    authorize,
    next_status,
    validate_for_submit,
    validate_periods,
)
from vacation_scheduler.services.periods import Period

OWNER = uuid.uuid4()
APPROVER = uuid.uuid4()
STRANGER = uuid.uuid4()

LEGAL = {
    (RequestStatus.DRAFT, TransitionEvent.EDIT): RequestStatus.DRAFT,
    (RequestStatus.DRAFT, TransitionEvent.DELETE): None,
    (RequestStatus.DRAFT, TransitionEvent.SUBMIT): RequestStatus.PENDING,
    (RequestStatus.PENDING, TransitionEvent.APPROVE): RequestStatus.APPROVED,
    (RequestStatus.PENDING, TransitionEvent.REJECT): RequestStatus.REJECTED,
    (RequestStatus.PENDING, TransitionEvent.CANCEL): RequestStatus.CANCELLED,
    (RequestStatus.APPROVED, TransitionEvent.CANCEL): RequestStatus.CANCELLED,
}


def _period(start: date, end: date) -> PeriodPayload:
    return PeriodPayload(start_date=start, end_date=end)


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------


def test_every_legal_transition() -> None:
    for (status, event), expected in LEGAL.items():
        assert next_status(status, event) == expected


def test_every_other_pair_is_invalid() -> None:
    for status in RequestStatus:
        for event in TransitionEvent:
            if (status, event) in LEGAL:
                continue
            with pytest.raises(InvalidTransition) as exc_info:
                next_status(status, event)
            assert exc_info.value.context == {"current_status": status.value, "event": event.value}


def test_next_status_accepts_stored_string() -> None:
    assert next_status("PENDING", TransitionEvent.APPROVE) == RequestStatus.APPROVED


def test_cancel_cancelled_is_invalid() -> None:
    with pytest.raises(InvalidTransition, match="Cannot cancel a request in status CANCELLED"):
        next_status(RequestStatus.CANCELLED, TransitionEvent.CANCEL)


def test_committed_statuses() -> None:
    assert frozenset({RequestStatus.PENDING, RequestStatus.APPROVED}) == COMMITTED_STATUSES


# ---------------------------------------------------------------------------
# Authorization
# ---------------------------------------------------------------------------


def test_owner_only_events() -> None:
    owner = Actor(id=OWNER)
    approver = Actor(id=APPROVER, scope=frozenset({OWNER}))
    for event in (TransitionEvent.EDIT, TransitionEvent.DELETE, TransitionEvent.SUBMIT):
        authorize(owner, OWNER, event)
        with pytest.raises(AuthorizationError):
            authorize(approver, OWNER, event)


def test_approver_events_require_scope() -> None:
    approver = Actor(id=APPROVER, scope=frozenset({OWNER}))
    outsider = Actor(id=STRANGER, scope=frozenset({uuid.uuid4()}))
    for event in (TransitionEvent.APPROVE, TransitionEvent.REJECT):
        authorize(approver, OWNER, event)
        with pytest.raises(AuthorizationError):
            authorize(outsider, OWNER, event)


def test_owner_cannot_approve_own_request() -> None:
    with pytest.raises(AuthorizationError):
        authorize(Actor(id=OWNER), OWNER, TransitionEvent.APPROVE)


def test_admin_flag_does_not_grant_approval() -> None:
    with pytest.raises(AuthorizationError):
        authorize(Actor(id=STRANGER, is_admin=True), OWNER, TransitionEvent.APPROVE)


def test_cancel_by_owner_or_approver() -> None:
    authorize(Actor(id=OWNER), OWNER, TransitionEvent.CANCEL)
    authorize(Actor(id=APPROVER, scope=frozenset({OWNER})), OWNER, TransitionEvent.CANCEL)
    with pytest.raises(AuthorizationError):
        authorize(Actor(id=STRANGER), OWNER, TransitionEvent.CANCEL)


# ---------------------------------------------------------------------------
# Structural validation
# ---------------------------------------------------------------------------


def test_validate_periods_sorts() -> None:
    result = validate_periods(
        2025,
        [_period(date(2025, 8, 1), date(2025, 8, 14)), _period(date(2025, 3, 1), date(2025, 3, 5))],
    )
    assert result == [Period(date(2025, 3, 1), date(2025, 3, 5)), Period(date(2025, 8, 1), date(2025, 8, 14))]


def test_validate_periods_outside_year() -> None:
    with pytest.raises(ValidationError, match="outside year 2025"):
        validate_periods(2025, [_period(date(2024, 12, 30), date(2025, 1, 5))])


def test_validate_periods_day_count_mismatch() -> None:
    payload = PeriodPayload(start_date=date(2025, 6, 1), end_date=date(2025, 6, 14), day_count=10)
    with pytest.raises(ValidationError, match="does not match 14 calendar days"):
        validate_periods(2025, [payload])


def test_validate_periods_matching_day_count() -> None:
    payload = PeriodPayload(start_date=date(2025, 6, 1), end_date=date(2025, 6, 14), day_count=14)
    assert validate_periods(2025, [payload])[0].day_count == 14


def test_validate_periods_overlap_within_request() -> None:
    with pytest.raises(ValidationError, match="overlap"):
        validate_periods(
            2025,
            [_period(date(2025, 6, 1), date(2025, 6, 10)), _period(date(2025, 6, 10), date(2025, 6, 20))],
        )


def test_validate_periods_adjacent_allowed() -> None:
    result = validate_periods(
        2025,
        [_period(date(2025, 6, 1), date(2025, 6, 10)), _period(date(2025, 6, 11), date(2025, 6, 20))],
    )
    assert len(result) == 2


def test_validate_periods_empty() -> None:
    with pytest.raises(ValidationError):
        validate_periods(2025, [])


# ---------------------------------------------------------------------------
# Long-block rule
# ---------------------------------------------------------------------------


def test_long_block_missing() -> None:
    with pytest.raises(ValidationError, match="minimum 14-day block"):
        validate_for_submit([Period(date(2025, 6, 1), date(2025, 6, 5))], 14)


def test_long_block_exactly_fourteen_days() -> None:
    validate_for_submit(
        [Period(date(2025, 3, 1), date(2025, 3, 5)), Period(date(2025, 6, 1), date(2025, 6, 14))],
        14,
    )


def test_long_block_thirteen_days_is_not_enough() -> None:
    with pytest.raises(ValidationError):
        validate_for_submit([Period(date(2025, 6, 1), date(2025, 6, 13))], 14)


def test_long_block_threshold_configurable() -> None:
    validate_for_submit([Period(date(2025, 6, 1), date(2025, 6, 5))], 5)
