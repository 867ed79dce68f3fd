# ruff: noqa: TC003
from __future__ import annotations

import uuid

from pydantic import BaseModel, ConfigDict, Field


class Actor(BaseModel):
    """The caller of a lifecycle operation.

    ``scope`` is the set of employee ids the actor may see and act upon, as
    resolved by the organizational-unit service. It is passed explicitly to
    every coordinator call.
    """

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID
    scope: frozenset[uuid.UUID] = Field(default_factory=frozenset)
    is_admin: bool = False

    def has_authority_over(self, employee_id: uuid.UUID) -> bool:
        """Whether the actor may act as an approver for ``employee_id``."""
        return employee_id in self.scope

    def can_view(self, employee_id: uuid.UUID) -> bool:
        """Whether the actor may read ``employee_id``'s requests and limits."""
        return self.is_admin or employee_id == self.id or employee_id in self.scope
