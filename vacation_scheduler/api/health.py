import logging
from typing import Literal

from fastapi import APIRouter
from pydantic import BaseModel
from sqlalchemy import text

from vacation_scheduler.config import get_settings
from vacation_scheduler.db import SessionDep

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Service liveness plus database reachability."""

    status: Literal["ok", "degraded"]
    version: str
    environment: str
    database: Literal["ok", "unreachable"]
    dialect: str | None = None


@router.get("/health", response_model=HealthResponse)
async def health(session: SessionDep) -> HealthResponse:
    """Report whether the API can reach its database. Needs no auth headers."""
    settings = get_settings()

    try:
        await session.execute(text("SELECT 1"))
        dialect = session.get_bind().dialect.name
        database: Literal["ok", "unreachable"] = "ok"
    except Exception:
        logger.exception("Health check: database connectivity failed")
        dialect = None
        database = "unreachable"

    return HealthResponse(
        status="ok" if database == "ok" else "degraded",
        version=settings.app_version,
        environment=settings.environment,
        database=database,
        dialect=dialect,
    )
