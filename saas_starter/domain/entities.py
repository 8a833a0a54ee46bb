"""
Name: Domain Entities (User, Account, Membership, Project)

Responsibilities:
  - Define the identity model and the representative account-scoped resource
  - Define the closed enums (statuses, roles)
  - Provide the timestamp discipline helper (UTC, millisecond precision)

Collaborators:
  - domain.repositories: stores persist/retrieve these entities
  - application/services: build and mutate them
  - api/schemas: serialize them

Constraints:
  - No dependencies on DB/FastAPI
  - Ids are UUIDs assigned on create
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import UUID

DEFAULT_TIMEZONE = "America/Anchorage"


def truncate_ms(now: datetime | None = None) -> datetime:
    """
    R: Normalize an instant the way Postgres stores it.

    - naive datetimes are treated as UTC
    - converted to UTC
    - truncated to millisecond so round-tripped values compare equal
    """
    if now is None:
        now = datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    now = now.astimezone(timezone.utc)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


class AccountStatus(str, Enum):
    ACTIVE = "active"
    PENDING = "pending"
    DISABLED = "disabled"


class MembershipStatus(str, Enum):
    ACTIVE = "active"
    INVITED = "invited"
    DISABLED = "disabled"


class MembershipRole(str, Enum):
    ADMIN = "admin"
    USER = "user"


class ProjectStatus(str, Enum):
    ACTIVE = "active"
    DISABLED = "disabled"


@dataclass
class User:
    id: UUID
    name: str
    email: str
    password_salt: str
    password_hash: str
    timezone: str = DEFAULT_TIMEZONE
    password_reset: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    archived_at: Optional[datetime] = None

    @property
    def is_archived(self) -> bool:
        return self.archived_at is not None

    @property
    def has_password(self) -> bool:
        """R: Invited users hold an empty hash until they accept."""
        return bool(self.password_hash)


@dataclass
class Account:
    id: UUID
    name: str
    address1: str = ""
    address2: str = ""
    city: str = ""
    region: str = ""
    country: str = ""
    zipcode: str = ""
    status: AccountStatus = AccountStatus.PENDING
    timezone: str = DEFAULT_TIMEZONE
    signup_user_id: Optional[UUID] = None
    billing_user_id: Optional[UUID] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    archived_at: Optional[datetime] = None

    @property
    def is_archived(self) -> bool:
        return self.archived_at is not None


@dataclass
class Membership:
    """A user's seat in an account (users_accounts row)."""

    id: UUID
    user_id: UUID
    account_id: UUID
    roles: list[MembershipRole] = field(default_factory=list)
    status: MembershipStatus = MembershipStatus.ACTIVE
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    archived_at: Optional[datetime] = None

    @property
    def is_archived(self) -> bool:
        return self.archived_at is not None

    def has_role(self, *roles: MembershipRole) -> bool:
        return any(r in self.roles for r in roles)


@dataclass
class Project:
    id: UUID
    account_id: UUID
    name: str
    status: ProjectStatus = ProjectStatus.ACTIVE
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    archived_at: Optional[datetime] = None

    @property
    def is_archived(self) -> bool:
        return self.archived_at is not None
