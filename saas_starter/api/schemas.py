"""
Name: API Response Schemas

Responsibilities:
  - Shape entities for the wire (never expose password salt/hash/reset id)
  - Token and signup responses

Notes:
  - Request bodies reuse application.validation models, except where the
    path carries the identifier (see the *Body models below)
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..domain.entities import AccountStatus, MembershipRole, MembershipStatus, ProjectStatus


class _Out(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class UserOut(_Out):
    id: UUID
    name: str
    email: str
    timezone: str
    created_at: datetime
    updated_at: datetime
    archived_at: Optional[datetime] = None


class AccountOut(_Out):
    id: UUID
    name: str
    address1: str
    address2: str
    city: str
    region: str
    country: str
    zipcode: str
    status: AccountStatus
    timezone: str
    signup_user_id: Optional[UUID] = None
    billing_user_id: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime
    archived_at: Optional[datetime] = None


class MembershipOut(_Out):
    id: UUID
    user_id: UUID
    account_id: UUID
    roles: list[MembershipRole]
    status: MembershipStatus
    created_at: datetime
    updated_at: datetime
    archived_at: Optional[datetime] = None


class ProjectOut(_Out):
    id: UUID
    account_id: UUID
    name: str
    status: ProjectStatus
    created_at: datetime
    updated_at: datetime
    archived_at: Optional[datetime] = None


class SignupOut(BaseModel):
    account: AccountOut
    user: UserOut


class TokenOut(BaseModel):
    token: str
    token_type: str = "Bearer"
    expires_at: datetime


class IdBody(BaseModel):
    id: UUID


class PasswordResetOut(BaseModel):
    """R: Same body whether or not the email exists; the hash is only echoed
    outside production (there is no mail delivery here)."""

    status: str = "ok"
    reset_hash: Optional[str] = None


class InviteOut(BaseModel):
    email: str
    user_id: UUID
    invite_hash: Optional[str] = None


class InviteAcceptOut(BaseModel):
    user: UserOut
    membership: MembershipOut


class InviteAcceptBody(BaseModel):
    name: str = Field(min_length=1)
    password: str = Field(min_length=1)
    password_confirm: str = Field(min_length=1)
    timezone: Optional[str] = None


class PasswordResetConfirmBody(BaseModel):
    password: str = Field(min_length=1)
    password_confirm: str = Field(min_length=1)
