"""
Name: FastAPI Exception Handlers

Responsibilities:
  - Map the core error taxonomy onto HTTP status codes
  - Structured error responses (RFC 7807 style) with per-field errors for
    validation failures
  - Centralized logging of errors with correlation IDs

Collaborators:
  - main.py: Registers these handlers
  - crosscutting.exceptions: CoreError hierarchy
  - crosscutting.error_responses: AppHTTPException, app_exception_handler

Constraints:
  - 400 validation / invalid id, 401 authentication, 403 forbidden,
    404 not found, 409 conflict, 500 internal
  - Internal errors never echo their message to the client
"""

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..crosscutting.error_responses import (
    AppHTTPException,
    ErrorCode,
    app_exception_handler,
    conflict,
    forbidden,
    internal_error,
    invalid_id,
    not_found,
    unauthorized,
    validation_error,
)
from ..crosscutting.exceptions import (
    AuthenticationFailure,
    ConflictError,
    CoreError,
    ForbiddenError,
    InvalidIDError,
    NotFoundError,
    ValidationError,
)
from ..crosscutting.logger import logger


def to_http_exception(exc: CoreError) -> AppHTTPException:
    """R: Core error -> AppHTTPException (status + code)."""
    if isinstance(exc, ValidationError):
        return validation_error(exc.message, [f.to_dict() for f in exc.fields])
    if isinstance(exc, InvalidIDError):
        return invalid_id(exc.message)
    if isinstance(exc, AuthenticationFailure):
        return unauthorized("Authentication failed")
    if isinstance(exc, ForbiddenError):
        return forbidden(exc.message)
    if isinstance(exc, NotFoundError):
        return not_found(exc.message)
    if isinstance(exc, ConflictError):
        return conflict(exc.message)

    http_exc = internal_error()
    http_exc.errors = [{"error_id": exc.error_id}]
    return http_exc


async def core_error_handler(request: Request, exc: CoreError) -> JSONResponse:
    """Handle every core error with a structured response."""
    http_exc = to_http_exception(exc)
    if http_exc.code == ErrorCode.INTERNAL_ERROR:
        logger.error(
            "Internal error",
            extra={"error_id": exc.error_id, "error_message": exc.message},
        )
    else:
        logger.info(
            "Request rejected",
            extra={"error_code": http_exc.code.value, "status_code": http_exc.status_code},
        )
    return await app_exception_handler(request, http_exc)


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """R: FastAPI body/query validation -> 400 with the offending fields."""
    fields = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        message = str(err.get("msg", "invalid value"))
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        fields.append({"name": ".".join(loc) or "request", "message": message})
    return await app_exception_handler(
        request, validation_error("Request validation failed", fields)
    )


def register_exception_handlers(app) -> None:
    """
    Register all exception handlers on the FastAPI app.

    Usage:
        from .exception_handlers import register_exception_handlers
        register_exception_handlers(app)
    """
    app.add_exception_handler(CoreError, core_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(AppHTTPException, app_exception_handler)
