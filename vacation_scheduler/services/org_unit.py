# ruff: noqa: TC003
from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from pydantic import BaseModel, Field

from vacation_scheduler.exceptions import AuthorizationError, NotFoundError

if TYPE_CHECKING:
    from vacation_scheduler.schemas.auth import Actor


class OrgUnitInfo(BaseModel):
    """Organizational unit metadata from the Org-Unit Service."""

    id: uuid.UUID
    name: str
    parent_id: uuid.UUID | None = None
    manager_id: uuid.UUID | None = None
    member_ids: set[uuid.UUID] = Field(default_factory=set)


@runtime_checkable
class OrgUnitService(Protocol):
    """Interface for the Org-Unit Service."""

    async def resolve_visibility_scope(self, approver_id: uuid.UUID) -> set[uuid.UUID]:
        """Employee ids the approver may see and act upon. Empty for non-managers."""
        ...

    async def members_of(self, unit_id: uuid.UUID) -> set[uuid.UUID] | None:
        """Members of a unit and all its descendant units. None for an unknown unit."""
        ...


class InMemoryOrgUnitService:
    """In-memory stub implementation for development.

    A manager's scope is every member of the units they manage, including all
    descendant units.
    """

    def __init__(self) -> None:
        self._units: dict[uuid.UUID, OrgUnitInfo] = {}

    def seed(self, unit: OrgUnitInfo) -> None:
        """Seed a unit for testing."""
        self._units[unit.id] = unit

    def _descendants(self, unit_id: uuid.UUID) -> list[OrgUnitInfo]:
        found: list[OrgUnitInfo] = []
        stack = [unit_id]
        seen: set[uuid.UUID] = set()
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            unit = self._units.get(current)
            if unit is None:
                continue
            found.append(unit)
            stack.extend(u.id for u in self._units.values() if u.parent_id == current)
        return found

    async def resolve_visibility_scope(self, approver_id: uuid.UUID) -> set[uuid.UUID]:
        """Employee ids the approver may see and act upon. Empty for non-managers."""
        scope: set[uuid.UUID] = set()
        for unit in self._units.values():
            if unit.manager_id == approver_id:
                scope |= await self.members_of(unit.id) or set()
        scope.discard(approver_id)
        return scope

    async def members_of(self, unit_id: uuid.UUID) -> set[uuid.UUID] | None:
        if unit_id not in self._units:
            return None
        members: set[uuid.UUID] = set()
        for unit in self._descendants(unit_id):
            members |= unit.member_ids
        return members


_org_unit_service: OrgUnitService = InMemoryOrgUnitService()


def get_org_unit_service() -> OrgUnitService:
    """FastAPI dependency for the Org-Unit Service."""
    return _org_unit_service


def set_org_unit_service(service: OrgUnitService) -> None:
    """Override the service (for testing or production wiring)."""
    global _org_unit_service
    _org_unit_service = service


# ---------------------------------------------------------------------------
# Visibility helpers for listings and reports
# ---------------------------------------------------------------------------


async def unit_members_visible_to(actor: Actor, unit_id: uuid.UUID) -> set[uuid.UUID]:
    """Members of ``unit_id`` (subtree included) for a unit filter.

    Admins may filter by any unit. Anyone else may only name a unit whose
    members they can all view.
    """
    members = await get_org_unit_service().members_of(unit_id)
    if members is None:
        raise NotFoundError(f"Org unit {unit_id} not found")
    if not actor.is_admin and not all(actor.can_view(member) for member in members):
        raise AuthorizationError("Not authorized to view this org unit")
    return members


async def report_scope(actor: Actor, unit_id: uuid.UUID | None = None) -> set[uuid.UUID] | None:
    """Employees covered by a team report (limits, intersections).

    Returns None when the report covers every employee (admin without a unit
    filter). Employees who manage nobody get AuthorizationError.
    """
    if unit_id is not None:
        return await unit_members_visible_to(actor, unit_id)
    if actor.is_admin:
        return None
    if not actor.scope:
        raise AuthorizationError("Only managers and admins can view team reports")
    return set(actor.scope)
