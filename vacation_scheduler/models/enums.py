from __future__ import annotations

import enum


class RequestStatus(enum.StrEnum):
    """State machine for vacation requests."""

    DRAFT = "DRAFT"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class TransitionEvent(enum.StrEnum):
    """Events that move a request through its lifecycle."""

    EDIT = "EDIT"
    DELETE = "DELETE"
    SUBMIT = "SUBMIT"
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    CANCEL = "CANCEL"


class LimitEntryType(enum.StrEnum):
    """Type of ledger entry affecting a yearly allowance."""

    RESERVE = "RESERVE"
    RELEASE = "RELEASE"
    ALLOWANCE = "ALLOWANCE"


class LimitSourceType(enum.StrEnum):
    """Origin of a ledger entry."""

    REQUEST = "REQUEST"
    ADMIN = "ADMIN"


class AuditEntityType(enum.StrEnum):
    """Entity type recorded in the audit log."""

    REQUEST = "REQUEST"
    LIMIT = "LIMIT"


class AuditAction(enum.StrEnum):
    """Action recorded in the audit log."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    SUBMIT = "SUBMIT"
    APPROVE = "APPROVE"
    FORCE_APPROVE = "FORCE_APPROVE"
    REJECT = "REJECT"
    CANCEL = "CANCEL"
    SET_ALLOWANCE = "SET_ALLOWANCE"
