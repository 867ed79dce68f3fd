# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query, Response, status

from vacation_scheduler.api.deps import ActorDep
from vacation_scheduler.db import SessionDep
from vacation_scheduler.models.enums import RequestStatus
from vacation_scheduler.schemas.request import (
    ApprovalResponse,
    CreateRequestPayload,
    RejectPayload,
    RequestListResponse,
    RequestResponse,
    UpdateRequestPayload,
)
from vacation_scheduler.services import approval as approval_service
from vacation_scheduler.services import request as request_service

requests_router = APIRouter(prefix="/requests", tags=["requests"])


@requests_router.post("", response_model=RequestResponse, status_code=status.HTTP_201_CREATED)
async def create_request(
    payload: CreateRequestPayload,
    session: SessionDep,
    actor: ActorDep,
) -> RequestResponse:
    """Create a draft vacation request for the calling employee."""
    return await request_service.create_request(session, actor, payload)


@requests_router.get("", response_model=RequestListResponse)
async def list_requests(
    session: SessionDep,
    actor: ActorDep,
    year: int | None = Query(default=None),
    status_filter: RequestStatus | None = Query(default=None, alias="status"),
    owner_id: uuid.UUID | None = Query(default=None),
    unit_id: uuid.UUID | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> RequestListResponse:
    """List requests of one owner, one org unit, or everyone the caller can see."""
    return await request_service.list_requests(
        session,
        actor,
        year=year,
        status=status_filter,
        owner_id=owner_id,
        unit_id=unit_id,
        offset=offset,
        limit=limit,
    )


@requests_router.get("/{request_id}", response_model=RequestResponse)
async def get_request(
    request_id: uuid.UUID,
    session: SessionDep,
    actor: ActorDep,
) -> RequestResponse:
    """Get a single vacation request."""
    return await request_service.get_request(session, actor, request_id)


@requests_router.put("/{request_id}", response_model=RequestResponse)
async def update_request(
    request_id: uuid.UUID,
    payload: UpdateRequestPayload,
    session: SessionDep,
    actor: ActorDep,
) -> RequestResponse:
    """Edit a draft request (owner only)."""
    return await request_service.update_request(session, actor, request_id, payload)


@requests_router.delete("/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_request(
    request_id: uuid.UUID,
    session: SessionDep,
    actor: ActorDep,
) -> Response:
    """Delete a draft request (owner only)."""
    await request_service.delete_request(session, actor, request_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@requests_router.post("/{request_id}/submit", response_model=RequestResponse)
async def submit_request(
    request_id: uuid.UUID,
    session: SessionDep,
    actor: ActorDep,
) -> RequestResponse:
    """Submit a draft for approval."""
    return await request_service.submit_request(session, actor, request_id)


@requests_router.post("/{request_id}/approve", response_model=ApprovalResponse)
async def approve_request(
    request_id: uuid.UUID,
    session: SessionDep,
    actor: ActorDep,
    force: bool = Query(default=False),
) -> ApprovalResponse:
    """Approve a pending request. Conflicts block unless ``force`` is set."""
    return await approval_service.approve_request(session, actor, request_id, force)


@requests_router.post("/{request_id}/reject", response_model=RequestResponse)
async def reject_request(
    request_id: uuid.UUID,
    session: SessionDep,
    actor: ActorDep,
    payload: RejectPayload | None = None,
) -> RequestResponse:
    """Reject a pending request."""
    return await approval_service.reject_request(session, actor, request_id, payload.reason if payload else "")


@requests_router.post("/{request_id}/cancel", response_model=RequestResponse)
async def cancel_request(
    request_id: uuid.UUID,
    session: SessionDep,
    actor: ActorDep,
) -> RequestResponse:
    """Cancel a pending or approved request."""
    return await approval_service.cancel_request(session, actor, request_id)
