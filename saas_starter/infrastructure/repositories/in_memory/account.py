"""
R: In-memory `accounts` table (ACL scoping, ordering and unique-name rule
aligned with PostgresAccountRepository).
"""

from __future__ import annotations

import copy
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from ....crosscutting.exceptions import ConflictError, FieldError, NotFoundError, ValidationError
from ....domain.entities import Account
from ....domain.repositories import FindRequest
from ....identity.acl import Target
from ....identity.claims import Claims
from .database import InMemoryDatabase, apply_find

_COLUMNS = (
    "id",
    "name",
    "city",
    "region",
    "country",
    "zipcode",
    "status",
    "timezone",
    "signup_user_id",
    "billing_user_id",
    "created_at",
    "updated_at",
    "archived_at",
)


class InMemoryAccountRepository:
    def __init__(self, db: InMemoryDatabase) -> None:
        self._db = db

    def find(self, claims: Claims, req: FindRequest) -> List[Account]:
        with self._db.lock:
            return apply_find(
                self._db.accounts.values(),
                claims,
                Target.ACCOUNT,
                self._db.memberships.values(),
                req,
                _COLUMNS,
            )

    def get(
        self, claims: Claims, account_id: UUID, *, include_archived: bool = False
    ) -> Optional[Account]:
        rows = self.find(
            claims,
            FindRequest(filters={"id": account_id}, include_archived=include_archived),
        )
        return rows[0] if rows else None

    def name_taken(self, name: str, *, exclude_id: Optional[UUID] = None) -> bool:
        with self._db.lock:
            return any(
                a.name == name and not a.is_archived and a.id != exclude_id
                for a in self._db.accounts.values()
            )

    def _check_constraints(self, account: Account) -> None:
        if account.archived_at is None and self.name_taken(
            account.name, exclude_id=account.id
        ):
            raise ValidationError([FieldError(name="name", message="must be unique")])
        for ref in (account.signup_user_id, account.billing_user_id):
            if ref is not None and ref not in self._db.users:
                raise ConflictError(f"Referenced user {ref} does not exist")

    def insert(self, account: Account) -> Account:
        with self._db.lock:
            if account.id in self._db.accounts:
                raise ValidationError([FieldError(name="id", message="must be unique")])
            self._check_constraints(account)
            self._db.accounts[account.id] = copy.deepcopy(account)
            return copy.deepcopy(account)

    def update(self, account: Account) -> Account:
        with self._db.lock:
            if account.id not in self._db.accounts:
                raise NotFoundError(f"Account {account.id} does not exist")
            self._check_constraints(account)
            self._db.accounts[account.id] = copy.deepcopy(account)
            return copy.deepcopy(account)

    def archive(self, account_id: UUID, now: datetime) -> None:
        with self._db.lock:
            account = self._db.accounts.get(account_id)
            if account is not None:
                account.archived_at = now
                account.updated_at = now

    def delete(self, account_id: UUID) -> None:
        with self._db.lock:
            # R: mirrors users_accounts.account_id / projects.account_id foreign keys
            if any(m.account_id == account_id for m in self._db.memberships.values()):
                raise ConflictError("Account is still referenced by memberships")
            if any(p.account_id == account_id for p in self._db.projects.values()):
                raise ConflictError("Account is still referenced by projects")
            self._db.accounts.pop(account_id, None)
