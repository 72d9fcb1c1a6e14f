from __future__ import annotations

import traceback
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.config import get_settings
from app.core.logging import get_logger

logger = get_logger()


class AppError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body


class BadRequestError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "BAD_REQUEST"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"


class InvalidStateTransitionError(AppError):
    """Raised when a workflow step is attempted from a state that does not allow it."""

    status_code = status.HTTP_409_CONFLICT
    code = "INVALID_STATE_TRANSITION"

    def __init__(
        self,
        shipment_id: str,
        expected: list[str],
        actual: str | None,
        action: str,
        allowed_actions: list[str] | None = None,
    ) -> None:
        message = f"Cannot {action.replace('_', ' ')}: shipment {shipment_id} is '{actual}'"
        super().__init__(
            message,
            details={
                "expected": expected,
                "actual": actual,
                "action": action,
                "allowed_actions": allowed_actions or [],
            },
        )
        self.shipment_id = shipment_id
        self.expected = expected
        self.actual = actual
        self.action = action


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    logger.info(
        "app_error",
        path=str(request.url.path),
        code=exc.code,
        status_code=exc.status_code,
        error=exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {"field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"), "message": err.get("msg")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Validation failed", "code": "VALIDATION_ERROR", "details": details},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled_error", path=str(request.url.path), error=str(exc), exc_type=type(exc).__name__)
    body: dict[str, Any] = {"error": "Internal server error", "code": "INTERNAL_ERROR"}
    if not get_settings().is_production:
        body["stack"] = traceback.format_exception(type(exc), exc, exc.__traceback__)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
