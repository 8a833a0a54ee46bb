"""
R: In-memory `users_accounts` table.

Mirrors the Postgres store: ACL scoping on user_id, one live row per
(user_id, account_id), foreign keys to users/accounts.
"""

from __future__ import annotations

import copy
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from ....crosscutting.exceptions import ConflictError, FieldError, NotFoundError, ValidationError
from ....domain.entities import Membership
from ....domain.repositories import FindRequest
from ....identity.acl import Target
from ....identity.claims import Claims
from .database import InMemoryDatabase, apply_find

_COLUMNS = (
    "id",
    "user_id",
    "account_id",
    "status",
    "created_at",
    "updated_at",
    "archived_at",
)


class InMemoryMembershipRepository:
    def __init__(self, db: InMemoryDatabase) -> None:
        self._db = db

    def find(self, claims: Claims, req: FindRequest) -> List[Membership]:
        with self._db.lock:
            return apply_find(
                self._db.memberships.values(),
                claims,
                Target.MEMBERSHIP,
                self._db.memberships.values(),
                req,
                _COLUMNS,
            )

    def get(
        self, claims: Claims, membership_id: UUID, *, include_archived: bool = False
    ) -> Optional[Membership]:
        rows = self.find(
            claims,
            FindRequest(filters={"id": membership_id}, include_archived=include_archived),
        )
        return rows[0] if rows else None

    def get_by_pair(self, user_id: UUID, account_id: UUID) -> Optional[Membership]:
        with self._db.lock:
            rows = [
                m
                for m in self._db.memberships.values()
                if m.user_id == user_id and m.account_id == account_id
            ]
        if not rows:
            return None
        live = [m for m in rows if not m.is_archived]
        if live:
            return copy.deepcopy(live[0])
        return copy.deepcopy(max(rows, key=lambda m: m.archived_at))

    def list_for_user(self, user_id: UUID) -> List[Membership]:
        with self._db.lock:
            rows = [
                m
                for m in self._db.memberships.values()
                if m.user_id == user_id and not m.is_archived
            ]
            rows.sort(key=lambda m: (m.created_at.timestamp() if m.created_at else 0, str(m.id)))
            return [copy.deepcopy(m) for m in rows]

    def _check_constraints(self, membership: Membership) -> None:
        if membership.user_id not in self._db.users:
            raise ConflictError(f"Referenced user {membership.user_id} does not exist")
        if membership.account_id not in self._db.accounts:
            raise ConflictError(f"Referenced account {membership.account_id} does not exist")
        if membership.archived_at is None and any(
            m.user_id == membership.user_id
            and m.account_id == membership.account_id
            and not m.is_archived
            and m.id != membership.id
            for m in self._db.memberships.values()
        ):
            raise ValidationError([FieldError(name="user_id", message="must be unique")])

    def insert(self, membership: Membership) -> Membership:
        with self._db.lock:
            if membership.id in self._db.memberships:
                raise ValidationError([FieldError(name="id", message="must be unique")])
            self._check_constraints(membership)
            self._db.memberships[membership.id] = copy.deepcopy(membership)
            return copy.deepcopy(membership)

    def update(self, membership: Membership) -> Membership:
        with self._db.lock:
            if membership.id not in self._db.memberships:
                raise NotFoundError(f"Membership {membership.id} does not exist")
            self._check_constraints(membership)
            self._db.memberships[membership.id] = copy.deepcopy(membership)
            return copy.deepcopy(membership)

    def _archive_matching(self, predicate, now: datetime) -> int:
        count = 0
        with self._db.lock:
            for m in self._db.memberships.values():
                if not m.is_archived and predicate(m):
                    m.archived_at = now
                    m.updated_at = now
                    count += 1
        return count

    def archive(self, membership_id: UUID, now: datetime) -> None:
        self._archive_matching(lambda m: m.id == membership_id, now)

    def archive_by_account(self, account_id: UUID, now: datetime) -> int:
        return self._archive_matching(lambda m: m.account_id == account_id, now)

    def archive_by_user(self, user_id: UUID, now: datetime) -> int:
        return self._archive_matching(lambda m: m.user_id == user_id, now)

    def _delete_matching(self, predicate) -> int:
        with self._db.lock:
            doomed = [mid for mid, m in self._db.memberships.items() if predicate(m)]
            for mid in doomed:
                del self._db.memberships[mid]
        return len(doomed)

    def delete(self, membership_id: UUID) -> None:
        self._delete_matching(lambda m: m.id == membership_id)

    def delete_by_account(self, account_id: UUID) -> int:
        return self._delete_matching(lambda m: m.account_id == account_id)

    def delete_by_user(self, user_id: UUID) -> int:
        return self._delete_matching(lambda m: m.user_id == user_id)
