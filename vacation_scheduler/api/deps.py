# ruff: noqa: B008, TC003
from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import Depends, Header

from vacation_scheduler.exceptions import AuthorizationError
from vacation_scheduler.schemas.auth import Actor
from vacation_scheduler.services.org_unit import OrgUnitService, get_org_unit_service


async def get_actor(
    x_user_id: uuid.UUID = Header(),
    x_role: str = Header(default="employee"),
    org_units: OrgUnitService = Depends(get_org_unit_service),
) -> Actor:
    """Build the acting user from dev auth headers and the org-unit visibility scope."""
    scope = await org_units.resolve_visibility_scope(x_user_id)
    return Actor(id=x_user_id, scope=frozenset(scope), is_admin=x_role == "admin")


ActorDep = Annotated[Actor, Depends(get_actor)]


async def require_admin(
    actor: ActorDep,
) -> Actor:
    """Require admin role for the request."""
    if not actor.is_admin:
        raise AuthorizationError("Admin access required")
    return actor


AdminDep = Annotated[Actor, Depends(require_admin)]
