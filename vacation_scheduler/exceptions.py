from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

if TYPE_CHECKING:
    from vacation_scheduler.schemas.conflict import ConflictRecord

logger = logging.getLogger(__name__)


class ErrorResponse(BaseModel):
    """Body of every error the API returns."""

    error: str
    detail: str | None = None
    status_code: int
    context: dict[str, Any] | None = None


class AppError(Exception):
    """Base application exception."""

    default_status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.status_code = status_code if status_code is not None else self.default_status_code
        self.context = context
        super().__init__(self.message)


class ValidationError(AppError):
    """Malformed input: bad date order, overlapping periods, missing long block, year mismatch."""

    default_status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class InvalidTransition(AppError):
    """The requested event is not legal from the request's current status."""

    default_status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, current_status: str, event: str) -> None:
        self.current_status = current_status
        self.event = event
        super().__init__(
            f"Cannot {event.lower()} a request in status {current_status}",
            context={"current_status": current_status, "event": event},
        )


class InsufficientAllowance(AppError):
    """Reserving the requested days would exceed the yearly allowance."""

    default_status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, requested_days: int, available_days: int) -> None:
        self.requested_days = requested_days
        self.available_days = available_days
        super().__init__(
            f"Insufficient allowance: requested {requested_days} days, available {available_days}",
            context={"requested_days": requested_days, "available_days": available_days},
        )


class ConflictError(AppError):
    """Approval blocked by overlapping approved leave of other employees."""

    default_status_code = status.HTTP_409_CONFLICT

    def __init__(self, conflicts: list[ConflictRecord]) -> None:
        self.conflicts = conflicts
        super().__init__(
            f"Request overlaps {len(conflicts)} approved period(s) of other employees",
            context={"conflicts": [c.model_dump(mode="json") for c in conflicts]},
        )


class AuthorizationError(AppError):
    """The actor has no authority over the request's owner."""

    default_status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(AppError):
    """Unknown request or employee."""

    default_status_code = status.HTTP_404_NOT_FOUND


def _error_response(error: str, message: str, status_code: int, context: dict[str, Any] | None = None) -> JSONResponse:
    body = ErrorResponse(error=error, detail=message, status_code=status_code, context=context)
    return JSONResponse(status_code=status_code, content=body.model_dump())


async def _app_exception_handler(request: Request, exc: AppError) -> JSONResponse:
    logger.info("%s %s rejected: %s (%s)", request.method, request.url.path, type(exc).__name__, exc.message)
    return _error_response(type(exc).__name__, exc.message, exc.status_code, exc.context)


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Input errors from FastAPI itself share the ValidationError shape of service-side checks.
    errors = jsonable_encoder(exc.errors(), exclude={"ctx", "url"})
    fields = ", ".join(".".join(str(part) for part in error["loc"]) for error in errors)
    return _error_response(
        "ValidationError",
        f"Invalid request input: {fields}",
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        {"errors": errors},
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Render every ``AppError`` and request validation failure as an ``ErrorResponse``."""
    app.add_exception_handler(AppError, _app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)  # type: ignore[arg-type]
