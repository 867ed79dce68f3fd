from sqlmodel import SQLModel

from vacation_scheduler.models.audit import AuditLog
from vacation_scheduler.models.base import TimestampMixin, UUIDBase
from vacation_scheduler.models.enums import (
    AuditAction,
    AuditEntityType,
    LimitEntryType,
    LimitSourceType,
    RequestStatus,
    TransitionEvent,
)
from vacation_scheduler.models.limit import VacationLimit, VacationLimitEntry
from vacation_scheduler.models.request import VacationPeriod, VacationRequest

__all__ = [
    "AuditAction",
    "AuditEntityType",
    "AuditLog",
    "LimitEntryType",
    "LimitSourceType",
    "RequestStatus",
    "SQLModel",
    "TimestampMixin",
    "TransitionEvent",
    "UUIDBase",
    "VacationLimit",
    "VacationLimitEntry",
    "VacationPeriod",
    "VacationRequest",
]
