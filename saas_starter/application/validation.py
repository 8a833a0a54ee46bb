"""
Name: Request Validation (structural phase)

Responsibilities:
  - Define the request shapes for users, accounts, memberships, projects
    and signup as pydantic models
  - Check required fields, email shape, uuid shape, password equality and
    enum membership before any store work
  - Convert pydantic failures into ValidationError(fields=[...])

Collaborators:
  - application/services/*: call validate() first, then run uniqueness
    checks against the stores (second phase, with exclude_id)
  - api/routers/*: reuse the same models as request bodies

Constraints:
  - No I/O here; uniqueness lives in the services
  - Emails are normalized (trim + lower-case) on the way in
"""

from __future__ import annotations

import re
from typing import Any, Mapping, Optional, Type, TypeVar, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic import ValidationError as PydanticValidationError

from ..crosscutting.exceptions import FieldError, InvalidIDError, ValidationError
from ..domain.entities import (
    AccountStatus,
    MembershipRole,
    MembershipStatus,
    ProjectStatus,
)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

M = TypeVar("M", bound=BaseModel)


def normalize_email(value: str) -> str:
    return (value or "").strip().lower()


def _check_email(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = normalize_email(value)
    if not EMAIL_RE.match(value):
        raise ValueError("must be a valid email address")
    return value


def parse_id(value: Any, name: str = "id") -> UUID:
    """R: Parse an identifier or raise InvalidIDError."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError) as exc:
        raise InvalidIDError(f"Invalid {name}: {value!r}") from exc


def _field_errors(exc: PydanticValidationError) -> list[FieldError]:
    fields: list[FieldError] = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p != "__root__"]
        name = ".".join(loc) or "request"
        message = str(err.get("msg", "invalid value"))
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        fields.append(FieldError(name=name, message=message))
    return fields


def validate(model: Type[M], data: Union[M, Mapping[str, Any]]) -> M:
    """R: Structural validation; pydantic errors -> ValidationError(fields)."""
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(_field_errors(exc)) from exc


def validation_error_from_pydantic(exc: PydanticValidationError) -> ValidationError:
    return ValidationError(_field_errors(exc))


class _Request(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")


class _PasswordPair(_Request):
    password: str = Field(min_length=1)
    password_confirm: str = Field(min_length=1)

    @field_validator("password_confirm")
    @classmethod
    def passwords_match(cls, v: str, info: ValidationInfo) -> str:
        if info.data.get("password") is not None and v != info.data["password"]:
            raise ValueError("must match password")
        return v


# =========================================================
# Users
# =========================================================
class UserCreateRequest(_PasswordPair):
    name: str = Field(min_length=1)
    email: str
    timezone: Optional[str] = None

    @field_validator("email")
    @classmethod
    def email_shape(cls, v: Optional[str]) -> Optional[str]:
        return _check_email(v)


class UserUpdateRequest(_Request):
    id: UUID
    name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[str] = None
    timezone: Optional[str] = Field(default=None, min_length=1)

    @field_validator("email")
    @classmethod
    def email_shape(cls, v: Optional[str]) -> Optional[str]:
        return _check_email(v)


class UserUpdatePasswordRequest(_PasswordPair):
    id: UUID


# =========================================================
# Accounts
# =========================================================
class _AccountFields(_Request):
    address1: str = ""
    address2: str = ""
    city: str = ""
    region: str = ""
    country: str = ""
    zipcode: str = ""
    status: Optional[AccountStatus] = None
    timezone: Optional[str] = None


class AccountCreateRequest(_AccountFields):
    name: str = Field(min_length=1)
    signup_user_id: Optional[UUID] = None
    billing_user_id: Optional[UUID] = None


class AccountUpdateRequest(_Request):
    id: UUID
    name: Optional[str] = Field(default=None, min_length=1)
    address1: Optional[str] = None
    address2: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    country: Optional[str] = None
    zipcode: Optional[str] = None
    status: Optional[AccountStatus] = None
    timezone: Optional[str] = Field(default=None, min_length=1)
    billing_user_id: Optional[UUID] = None


# =========================================================
# Memberships
# =========================================================
class MembershipCreateRequest(_Request):
    user_id: UUID
    account_id: UUID
    roles: list[MembershipRole] = Field(min_length=1)
    status: Optional[MembershipStatus] = None


class MembershipUpdateRequest(_Request):
    user_id: UUID
    account_id: UUID
    roles: Optional[list[MembershipRole]] = Field(default=None, min_length=1)
    status: Optional[MembershipStatus] = None
    unarchive: bool = False


class MembershipKeyRequest(_Request):
    user_id: UUID
    account_id: UUID


# =========================================================
# Projects
# =========================================================
class ProjectCreateRequest(_Request):
    account_id: UUID
    name: str = Field(min_length=1)
    status: Optional[ProjectStatus] = None


class ProjectUpdateRequest(_Request):
    id: UUID
    name: Optional[str] = Field(default=None, min_length=1)
    status: Optional[ProjectStatus] = None


# =========================================================
# Signup
# =========================================================
class SignupAccount(_AccountFields):
    name: str = Field(min_length=1)


class SignupUser(UserCreateRequest):
    pass


class SignupRequest(_Request):
    account: SignupAccount
    user: SignupUser


# =========================================================
# Password reset / invitations
# =========================================================
class PasswordResetRequest(_Request):
    email: str

    @field_validator("email")
    @classmethod
    def email_shape(cls, v: str) -> str:
        return _check_email(v)


class PasswordResetConfirmRequest(_PasswordPair):
    reset_hash: str = Field(min_length=1)


class ImpersonateRequest(_Request):
    user_id: UUID
    account_id: UUID


class InviteSendRequest(_Request):
    account_id: UUID
    emails: list[str] = Field(min_length=1)
    roles: list[MembershipRole] = Field(min_length=1)

    @field_validator("emails")
    @classmethod
    def emails_shape(cls, v: list[str]) -> list[str]:
        return list(dict.fromkeys(_check_email(e) for e in v))


class InviteAcceptRequest(_PasswordPair):
    invite_hash: str = Field(min_length=1)
    name: str = Field(min_length=1)
    timezone: Optional[str] = None
