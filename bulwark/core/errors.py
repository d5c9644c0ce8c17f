"""API error taxonomy and the JSON handlers that render it.

Every expected failure is an ``ApiError`` subclass carrying its HTTP status.
Messages are shown to clients verbatim, so they must never contain token
values, file paths or exception text.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal server error"


class ApiError(Exception):
    """Base class for errors rendered as ``{"error": message}``."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Bad request"

    def __init__(self, message: str | None = None, headers: dict[str, str] | None = None) -> None:
        self.message = message or self.default_message
        self.headers = headers or {}
        super().__init__(self.message)

    def to_content(self) -> dict[str, Any]:
        return {"error": self.message}


class ValidationError(ApiError):
    """Malformed or missing input fields."""

    default_message = "Validation failed"

    def __init__(self, errors: list[dict[str, Any]] | None = None, message: str | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []

    def to_content(self) -> dict[str, Any]:
        return {"error": self.message, "errors": self.errors}


class ConflictError(ApiError):
    """Resource already exists (duplicate email)."""

    default_message = "Resource already exists"


class AuthenticationError(ApiError):
    """Missing, invalid or expired bearer token."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class AuthorizationError(ApiError):
    """Valid token but insufficient role."""

    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden - Admin access required"


class CsrfError(ApiError):
    """Missing, unknown, expired or mismatched CSRF token."""

    status_code = status.HTTP_403_FORBIDDEN
    default_message = "CSRF token validation failed"


class RateLimitError(ApiError):
    """Too many requests in the current window."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Too many requests, please try again later"


class NotFoundError(ApiError):
    """Requested resource does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


def error_response(exc: ApiError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_content(),
        headers=exc.headers or None,
    )


def internal_error_response() -> JSONResponse:
    """Generic 500 body; never includes exception details."""
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": INTERNAL_ERROR_MESSAGE},
    )


async def api_error_handler(_: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, ApiError)
    return error_response(exc)


async def request_validation_handler(_: Request, exc: Exception) -> JSONResponse:
    """Render body/query validation failures as 400 with a structured list."""
    assert isinstance(exc, RequestValidationError)
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]
    return error_response(ValidationError(errors))


async def http_exception_handler(_: Request, exc: Exception) -> JSONResponse:
    """Unknown routes and disallowed methods keep their status, in JSON."""
    assert isinstance(exc, StarletteHTTPException)
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": message},
        headers=getattr(exc, "headers", None),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
