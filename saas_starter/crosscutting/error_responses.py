"""
Name: Problem Details Catalog

Responsibilities:
  - Error codes shared by every HTTP error response
  - RFC 7807 body model, including the per-field list for validation
  - Factories used by api/exception_handlers.py

Notes:
  - Field entries are {"name": "user.email", "message": "..."}; names use
    dotted paths into the request body
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel


class ErrorCode(str, Enum):
    """Application error codes for client-side handling."""

    # 4xx Client Errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_ID = "INVALID_ID"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"

    # 5xx Server Errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class FieldErrorDetail(BaseModel):
    """One offending request field."""

    name: str
    message: str


class ErrorDetail(BaseModel):
    """RFC 7807 Problem Details response."""

    type: str = "about:blank"
    title: str
    status: int
    detail: str
    code: ErrorCode
    instance: str | None = None
    errors: list[FieldErrorDetail] | list[dict[str, Any]] | None = None


PROBLEM_JSON_MEDIA_TYPE = "application/problem+json"

_OPENAPI_ERROR_CONTENT = {
    PROBLEM_JSON_MEDIA_TYPE: {
        "schema": {"$ref": "#/components/schemas/ErrorDetail"},
    }
}

OPENAPI_ERROR_RESPONSES = {
    str(status): {
        "description": f"{title} (RFC 7807 Problem Details)",
        "model": ErrorDetail,
        "content": _OPENAPI_ERROR_CONTENT,
    }
    for status, title in (
        (400, "Bad Request"),
        (401, "Unauthorized"),
        (403, "Forbidden"),
        (404, "Not Found"),
        (409, "Conflict"),
    )
}


class AppHTTPException(HTTPException):
    """Application-specific HTTP exception with error code."""

    def __init__(
        self,
        status_code: int,
        code: ErrorCode,
        detail: str,
        errors: list[dict[str, Any]] | None = None,
    ):
        super().__init__(status_code=status_code, detail=detail)
        self.code = code
        self.errors = errors


# Pre-defined error factories
def validation_error(
    detail: str, errors: list[dict[str, Any]] | None = None
) -> AppHTTPException:
    return AppHTTPException(400, ErrorCode.VALIDATION_ERROR, detail, errors)


def invalid_id(detail: str) -> AppHTTPException:
    return AppHTTPException(400, ErrorCode.INVALID_ID, detail)


def not_found(detail: str = "Entity not found") -> AppHTTPException:
    return AppHTTPException(404, ErrorCode.NOT_FOUND, detail)


def conflict(detail: str) -> AppHTTPException:
    return AppHTTPException(409, ErrorCode.CONFLICT, detail)


def unauthorized(detail: str = "Authentication required") -> AppHTTPException:
    exc = AppHTTPException(401, ErrorCode.UNAUTHORIZED, detail)
    exc.headers = {"WWW-Authenticate": "Bearer"}
    return exc


def forbidden(detail: str = "Attempted action is not allowed") -> AppHTTPException:
    return AppHTTPException(403, ErrorCode.FORBIDDEN, detail)


def internal_error(detail: str = "An unexpected error occurred") -> AppHTTPException:
    return AppHTTPException(500, ErrorCode.INTERNAL_ERROR, detail)


async def app_exception_handler(
    request: Request, exc: AppHTTPException
) -> JSONResponse:
    """Handler for AppHTTPException."""
    error = ErrorDetail(
        type=f"https://api.saas-starter.local/errors/{exc.code.value.lower()}",
        title=exc.code.value.replace("_", " ").title(),
        status=exc.status_code,
        detail=exc.detail,
        code=exc.code,
        instance=str(request.url),
        errors=exc.errors,
    )
    headers = getattr(exc, "headers", None)
    return JSONResponse(
        status_code=exc.status_code,
        content=error.model_dump(mode="json", exclude_none=True),
        headers=headers,
        media_type=PROBLEM_JSON_MEDIA_TYPE,
    )
