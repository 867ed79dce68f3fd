# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

import sqlalchemy as sa
from sqlmodel import Field

from vacation_scheduler.models.base import UUIDBase, timestamp_field


class AuditLog(UUIDBase, table=True):
    """Append-only trail of request transitions and allowance changes.

    ``entity_id`` is a request id, or ``"<owner_id>:<year>"`` for a limit.
    ``after_json`` of a force-approval lists the conflicts that were overridden.
    """

    __tablename__ = "audit_log"
    __table_args__ = (
        sa.Index("ix_audit_entity", "entity_type", "entity_id"),
        sa.Index("ix_audit_actor_created", "actor_id", "created_at"),
    )

    actor_id: uuid.UUID
    entity_type: str = Field(max_length=50)
    entity_id: str = Field(max_length=255)
    action: str = Field(max_length=50)
    before_json: dict[str, Any] | None = Field(default=None, sa_type=sa.JSON)
    after_json: dict[str, Any] | None = Field(default=None, sa_type=sa.JSON)
    created_at: datetime = timestamp_field(index=True)
