"""
CRC — domain/repositories.py

Name
- Store Interfaces (Protocols) for the identity model

Responsibilities
- Define persistence contracts for users, accounts, memberships and projects
- Carry Claims explicitly on every scoped read so the ACL predicate is
  visible at each call site
- Define the transaction boundary used by services and use cases

Collaborators
- domain.entities
- identity.claims.Claims
- infrastructure.repositories: postgres/*, in_memory/* implementations

Constraints
- Pure interfaces only: no SQL, no infrastructure imports
- Scoped lookups return None for rows hidden by the ACL predicate; services
  turn that into NotFoundError
- Unscoped helpers (get_by_email, get_by_pair, list_for_user, *_taken) are
  for flows that run before/around authorization (signup, login, gates)

Notes
- typing.Protocol for structural subtyping
- Outputs are concrete lists for predictable iteration/serialization
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional, Protocol
from uuid import UUID

from .entities import Account, Membership, Project, User

if TYPE_CHECKING:
    from ..identity.claims import Claims


@dataclass(frozen=True)
class FindRequest:
    """
    R: Generic listing request.

    filters:  column -> value equality conditions (portable across stores)
    where:    raw SQL fragment with %s placeholders. Postgres stores only:
              in-memory stores raise NotImplementedError when it is set,
              so portable callers stick to `filters`
    args:     parameters bound to `where`
    order:    ["created_at asc", "name desc"], columns checked per store
    """

    filters: dict[str, object] = field(default_factory=dict)
    where: Optional[str] = None
    args: tuple[object, ...] = ()
    order: tuple[str, ...] = ()
    limit: Optional[int] = None
    offset: Optional[int] = None
    include_archived: bool = False


class TransactionManager(Protocol):
    """R: Unit of work; every store call inside the block shares it."""

    def transaction(self) -> AbstractContextManager[None]: ...


class UserRepository(Protocol):
    def find(self, claims: "Claims", req: FindRequest) -> List[User]:
        """R: `req.where` is Postgres-only; see FindRequest."""

    def get(
        self, claims: "Claims", user_id: UUID, *, include_archived: bool = False
    ) -> Optional[User]: ...

    def list_by_account(
        self, claims: "Claims", account_id: UUID, *, include_archived: bool = False
    ) -> List[User]: ...

    def get_by_email(self, email: str) -> Optional[User]: ...

    def email_taken(self, email: str, *, exclude_id: Optional[UUID] = None) -> bool: ...

    def insert(self, user: User) -> User: ...

    def update(self, user: User) -> User: ...

    def archive(self, user_id: UUID, now: datetime) -> None: ...

    def delete(self, user_id: UUID) -> None: ...


class AccountRepository(Protocol):
    def find(self, claims: "Claims", req: FindRequest) -> List[Account]:
        """R: `req.where` is Postgres-only; see FindRequest."""

    def get(
        self, claims: "Claims", account_id: UUID, *, include_archived: bool = False
    ) -> Optional[Account]: ...

    def name_taken(self, name: str, *, exclude_id: Optional[UUID] = None) -> bool: ...

    def insert(self, account: Account) -> Account: ...

    def update(self, account: Account) -> Account: ...

    def archive(self, account_id: UUID, now: datetime) -> None: ...

    def delete(self, account_id: UUID) -> None: ...


class MembershipRepository(Protocol):
    def find(self, claims: "Claims", req: FindRequest) -> List[Membership]:
        """R: `req.where` is Postgres-only; see FindRequest."""

    def get(
        self, claims: "Claims", membership_id: UUID, *, include_archived: bool = False
    ) -> Optional[Membership]: ...

    def get_by_pair(self, user_id: UUID, account_id: UUID) -> Optional[Membership]:
        """R: Unscoped; returns the pair's row whether archived or not."""
        ...

    def list_for_user(self, user_id: UUID) -> List[Membership]:
        """R: Unscoped; non-archived memberships ordered by created_at ASC."""
        ...

    def insert(self, membership: Membership) -> Membership: ...

    def update(self, membership: Membership) -> Membership: ...

    def archive(self, membership_id: UUID, now: datetime) -> None: ...

    def archive_by_account(self, account_id: UUID, now: datetime) -> int: ...

    def archive_by_user(self, user_id: UUID, now: datetime) -> int: ...

    def delete(self, membership_id: UUID) -> None: ...

    def delete_by_account(self, account_id: UUID) -> int: ...

    def delete_by_user(self, user_id: UUID) -> int: ...


class ProjectRepository(Protocol):
    def find(self, claims: "Claims", req: FindRequest) -> List[Project]:
        """R: `req.where` is Postgres-only; see FindRequest."""

    def get(
        self, claims: "Claims", project_id: UUID, *, include_archived: bool = False
    ) -> Optional[Project]: ...

    def insert(self, project: Project) -> Project: ...

    def update(self, project: Project) -> Project: ...

    def archive(self, project_id: UUID, now: datetime) -> None: ...

    def delete(self, project_id: UUID) -> None: ...

    def delete_by_account(self, account_id: UUID) -> int: ...
