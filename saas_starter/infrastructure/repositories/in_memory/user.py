"""
============================================================
TARJETA CRC — infrastructure/repositories/in_memory/user.py
============================================================
Class: InMemoryUserRepository

Responsibilities:
  - In-memory `users` table honoring the same ACL scoping, ordering and
    unique-email rule as the Postgres store
============================================================
"""

from __future__ import annotations

import copy
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from ....crosscutting.exceptions import ConflictError, FieldError, NotFoundError, ValidationError
from ....domain.entities import User
from ....domain.repositories import FindRequest
from ....identity.acl import Target
from ....identity.claims import Claims
from .database import InMemoryDatabase, apply_find

_COLUMNS = (
    "id",
    "name",
    "email",
    "timezone",
    "created_at",
    "updated_at",
    "archived_at",
)


class InMemoryUserRepository:
    def __init__(self, db: InMemoryDatabase) -> None:
        self._db = db

    def find(self, claims: Claims, req: FindRequest) -> List[User]:
        with self._db.lock:
            return apply_find(
                self._db.users.values(),
                claims,
                Target.USER,
                self._db.memberships.values(),
                req,
                _COLUMNS,
            )

    def get(
        self, claims: Claims, user_id: UUID, *, include_archived: bool = False
    ) -> Optional[User]:
        rows = self.find(
            claims, FindRequest(filters={"id": user_id}, include_archived=include_archived)
        )
        return rows[0] if rows else None

    def list_by_account(
        self, claims: Claims, account_id: UUID, *, include_archived: bool = False
    ) -> List[User]:
        with self._db.lock:
            member_ids = {
                m.user_id
                for m in self._db.memberships.values()
                if m.account_id == account_id and not m.is_archived
            }
            return apply_find(
                self._db.users.values(),
                claims,
                Target.USER,
                self._db.memberships.values(),
                FindRequest(include_archived=include_archived),
                _COLUMNS,
                extra=lambda u: u.id in member_ids,
            )

    def get_by_email(self, email: str) -> Optional[User]:
        with self._db.lock:
            for user in self._db.users.values():
                if user.email == email and not user.is_archived:
                    return copy.deepcopy(user)
        return None

    def email_taken(self, email: str, *, exclude_id: Optional[UUID] = None) -> bool:
        with self._db.lock:
            return any(
                u.email == email and not u.is_archived and u.id != exclude_id
                for u in self._db.users.values()
            )

    def _check_unique(self, user: User) -> None:
        if user.archived_at is None and self.email_taken(user.email, exclude_id=user.id):
            raise ValidationError([FieldError(name="email", message="must be unique")])

    def insert(self, user: User) -> User:
        with self._db.lock:
            if user.id in self._db.users:
                raise ValidationError([FieldError(name="id", message="must be unique")])
            self._check_unique(user)
            self._db.users[user.id] = copy.deepcopy(user)
            return copy.deepcopy(user)

    def update(self, user: User) -> User:
        with self._db.lock:
            if user.id not in self._db.users:
                raise NotFoundError(f"User {user.id} does not exist")
            self._check_unique(user)
            self._db.users[user.id] = copy.deepcopy(user)
            return copy.deepcopy(user)

    def archive(self, user_id: UUID, now: datetime) -> None:
        with self._db.lock:
            user = self._db.users.get(user_id)
            if user is not None:
                user.archived_at = now
                user.updated_at = now

    def delete(self, user_id: UUID) -> None:
        with self._db.lock:
            # R: mirrors the users_accounts.user_id foreign key
            if any(m.user_id == user_id for m in self._db.memberships.values()):
                raise ConflictError("User is still referenced by memberships")
            self._db.users.pop(user_id, None)
            # R: accounts.signup_user_id / billing_user_id are ON DELETE SET NULL
            for account in self._db.accounts.values():
                if account.signup_user_id == user_id:
                    account.signup_user_id = None
                if account.billing_user_id == user_id:
                    account.billing_user_id = None
