"""
===============================================================================
CRC CARD — infrastructure/db/errors.py
===============================================================================

Component:
  Pool errors + store error classification

Responsibilities:
  - Typed pool lifecycle errors (no generic RuntimeError)
  - Map psycopg failures onto the core error taxonomy:
      unique violation  -> ValidationError on the constraint's field
      foreign key       -> ConflictError
      query canceled    -> propagated unchanged
      anything else     -> DatabaseError
===============================================================================
"""

from __future__ import annotations

from psycopg import errors as pg_errors

from ...crosscutting.exceptions import (
    ConflictError,
    CoreError,
    DatabaseError,
    FieldError,
    ValidationError,
)
from ...crosscutting.logger import logger


class DatabasePoolError(Exception):
    """Base pool error."""


class PoolAlreadyInitializedError(DatabasePoolError):
    """init_pool() called twice."""


class PoolNotInitializedError(DatabasePoolError):
    """Pool used before init_pool()."""


# R: unique index / constraint name -> offending request field
UNIQUE_CONSTRAINT_FIELDS = {
    "uq_users_email": "email",
    "uq_accounts_name": "name",
    "uq_users_accounts_user_account": "user_id",
}


def _constraint_name(exc: Exception) -> str:
    diag = getattr(exc, "diag", None)
    return getattr(diag, "constraint_name", None) or ""


def classify_store_error(exc: Exception, context_msg: str, extra: dict) -> Exception:
    """
    R: Return the exception to raise for a failed store call.

    Every wrapped error is logged with the query identity (context_msg).
    """
    if isinstance(exc, (pg_errors.QueryCanceled, CoreError)):
        return exc

    constraint = _constraint_name(exc)
    log_extra = {**extra, "constraint": constraint, "error": str(exc)}

    if isinstance(exc, pg_errors.UniqueViolation):
        logger.warning(context_msg, extra=log_extra)
        field_name = UNIQUE_CONSTRAINT_FIELDS.get(constraint, "id")
        return ValidationError([FieldError(name=field_name, message="must be unique")])

    if isinstance(exc, pg_errors.ForeignKeyViolation):
        logger.warning(context_msg, extra=log_extra)
        return ConflictError(f"Referenced row missing or still referenced ({constraint})")

    logger.exception(context_msg, extra=log_extra)
    return DatabaseError(f"{context_msg}: {exc}", original_error=exc)
