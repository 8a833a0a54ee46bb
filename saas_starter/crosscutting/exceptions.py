"""
Name: Error Taxonomy

Responsibilities:
  - Define the only error types that leave the core's public surface
  - Provide error_code + error_id for log correlation
  - Carry per-field details for validation failures

Collaborators:
  - application/services/*: raise NotFound/Forbidden/Validation
  - infrastructure/repositories/*: raise DatabaseError / classified store errors
  - api/exception_handlers.py: maps each kind to an HTTP status

Constraints:
  - Error messages must never contain secrets (passwords, tokens, keys)

Notes:
  - NotFoundError is also used when a row exists but is hidden by the ACL
    predicate, so foreign ids cannot be discovered
  - AuthenticationFailure is deliberately coarse
"""

from dataclasses import dataclass
from uuid import uuid4


@dataclass(frozen=True)
class ErrorResponse:
    """Structured error payload (non-HTTP callers)."""

    error_code: str
    message: str
    error_id: str

    def to_dict(self) -> dict:
        return {
            "error_code": self.error_code,
            "message": self.message,
            "error_id": self.error_id,
        }


@dataclass(frozen=True)
class FieldError:
    """A single offending field."""

    name: str
    message: str

    def to_dict(self) -> dict:
        return {"name": self.name, "message": self.message}


class CoreError(Exception):
    """Base exception for the core."""

    error_code: str = "CORE_ERROR"

    def __init__(
        self,
        message: str,
        error_id: str | None = None,
        original_error: Exception | None = None,
    ):
        self.message = message
        self.error_id = error_id or str(uuid4())
        self.original_error = original_error
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(
            error_code=self.error_code, message=self.message, error_id=self.error_id
        )


class NotFoundError(CoreError):
    """Target row missing or hidden by the ACL predicate."""

    error_code: str = "NOT_FOUND"


class InvalidIDError(CoreError):
    """Identifier not well-formed."""

    error_code: str = "INVALID_ID"


class ForbiddenError(CoreError):
    """Claims failed the role gate."""

    error_code: str = "FORBIDDEN"


class AuthenticationFailure(CoreError):
    """Password check, token verification or account switch failed."""

    error_code: str = "AUTHENTICATION_FAILURE"

    def __init__(self, message: str = "Authentication failed", **kwargs):
        super().__init__(message, **kwargs)


class InvalidToken(AuthenticationFailure):
    """Bearer token could not be verified."""

    error_code: str = "INVALID_TOKEN"


class ValidationError(CoreError):
    """Structural or uniqueness validation failed."""

    error_code: str = "VALIDATION_ERROR"

    def __init__(self, fields: list[FieldError], message: str | None = None, **kwargs):
        self.fields = list(fields)
        names = ", ".join(f.name for f in self.fields) or "request"
        super().__init__(message or f"Validation failed: {names}", **kwargs)

    @classmethod
    def single(cls, name: str, message: str) -> "ValidationError":
        return cls([FieldError(name=name, message=message)])

    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]


class ConflictError(CoreError):
    """Constraint violation the caller can resolve (foreign key, state)."""

    error_code: str = "CONFLICT"


class InternalError(CoreError):
    """Store/transport error the caller cannot remedy."""

    error_code: str = "INTERNAL_ERROR"


class DatabaseError(InternalError):
    """Database connection or query error."""

    error_code: str = "DATABASE_ERROR"


class KeyStoreError(InternalError):
    """Signing key backend unreachable or key material unusable."""

    error_code: str = "KEY_STORE_ERROR"


class UnknownKid(CoreError):
    """No signing key loaded for the requested kid."""

    error_code: str = "UNKNOWN_KID"
