"""
============================================================
TARJETA CRC — infrastructure/repositories/postgres/user.py
============================================================
Class: PostgresUserRepository

Responsibilities:
  - Parameterized SQL against `users`, always scoped by the ACL predicate
    for caller-facing reads
  - Unscoped helpers for login/signup (get_by_email, email_taken)
  - Map rows -> domain `User`

Collaborators:
  - PostgresStore (execution helpers + query composition)
  - identity.acl (Target.USER)

Constraints:
  - Pure store: role gates, validation and timestamps live in the services
  - Emails are stored normalized (lower/trim) by the service layer
============================================================
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from ....domain.entities import User
from ....domain.repositories import FindRequest
from ....identity.acl import Target
from ....identity.claims import Claims
from .base import PostgresStore


class PostgresUserRepository(PostgresStore):
    _TABLE = "users"
    _COLUMNS = (
        "id",
        "name",
        "email",
        "password_salt",
        "password_hash",
        "timezone",
        "password_reset",
        "created_at",
        "updated_at",
        "archived_at",
    )
    _SELECT = ", ".join(_COLUMNS)
    _SECRET_COLUMNS = frozenset({"password_salt", "password_hash", "password_reset"})
    _TARGET = Target.USER

    @staticmethod
    def _row_to_user(row: tuple) -> User:
        (
            user_id,
            name,
            email,
            password_salt,
            password_hash,
            tz,
            password_reset,
            created_at,
            updated_at,
            archived_at,
        ) = row
        return User(
            id=user_id,
            name=name,
            email=email,
            password_salt=password_salt,
            password_hash=password_hash,
            timezone=tz,
            password_reset=password_reset,
            created_at=created_at,
            updated_at=updated_at,
            archived_at=archived_at,
        )

    # =========================================================
    # Scoped reads
    # =========================================================
    def find(self, claims: Claims, req: FindRequest) -> List[User]:
        rows = self._select(
            claims,
            conditions=[],
            params=[],
            req=req,
            context_msg="PostgresUserRepository: find failed",
        )
        return [self._row_to_user(r) for r in rows]

    def get(
        self, claims: Claims, user_id: UUID, *, include_archived: bool = False
    ) -> Optional[User]:
        rows = self._select(
            claims,
            conditions=["id = %s"],
            params=[user_id],
            req=FindRequest(include_archived=include_archived, limit=1),
            context_msg="PostgresUserRepository: get failed",
        )
        return self._row_to_user(rows[0]) if rows else None

    def list_by_account(
        self, claims: Claims, account_id: UUID, *, include_archived: bool = False
    ) -> List[User]:
        rows = self._select(
            claims,
            conditions=[
                "id IN (SELECT user_id FROM users_accounts "
                "WHERE account_id = %s AND archived_at IS NULL)"
            ],
            params=[account_id],
            req=FindRequest(include_archived=include_archived),
            context_msg="PostgresUserRepository: list_by_account failed",
        )
        return [self._row_to_user(r) for r in rows]

    # =========================================================
    # Unscoped helpers
    # =========================================================
    def get_by_email(self, email: str) -> Optional[User]:
        row = self._fetchone(
            query=f"""
                SELECT {self._SELECT}
                FROM users
                WHERE email = %s AND archived_at IS NULL
            """,
            params=(email,),
            context_msg="PostgresUserRepository: get_by_email failed",
            extra={},
        )
        return self._row_to_user(row) if row else None

    def email_taken(self, email: str, *, exclude_id: Optional[UUID] = None) -> bool:
        query = "SELECT 1 FROM users WHERE email = %s AND archived_at IS NULL"
        params: list[object] = [email]
        if exclude_id is not None:
            query += " AND id <> %s"
            params.append(exclude_id)
        row = self._fetchone(
            query=query + " LIMIT 1",
            params=params,
            context_msg="PostgresUserRepository: email_taken failed",
            extra={},
        )
        return row is not None

    # =========================================================
    # Writes
    # =========================================================
    def insert(self, user: User) -> User:
        row = self._fetchone(
            query=f"""
                INSERT INTO users (
                    id, name, email, password_salt, password_hash, timezone,
                    password_reset, created_at, updated_at, archived_at
                )
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING {self._SELECT}
            """,
            params=(
                user.id,
                user.name,
                user.email,
                user.password_salt,
                user.password_hash,
                user.timezone,
                user.password_reset,
                user.created_at,
                user.updated_at,
                user.archived_at,
            ),
            context_msg="PostgresUserRepository: insert failed",
            extra={"user_id": str(user.id)},
        )
        return self._row_to_user(row)

    def update(self, user: User) -> User:
        row = self._fetchone_required(
            query=f"""
                UPDATE users
                SET name = %s, email = %s, password_salt = %s, password_hash = %s,
                    timezone = %s, password_reset = %s, updated_at = %s,
                    archived_at = %s
                WHERE id = %s
                RETURNING {self._SELECT}
            """,
            params=(
                user.name,
                user.email,
                user.password_salt,
                user.password_hash,
                user.timezone,
                user.password_reset,
                user.updated_at,
                user.archived_at,
                user.id,
            ),
            context_msg="PostgresUserRepository: update failed",
            extra={"user_id": str(user.id)},
        )
        return self._row_to_user(row)

    def archive(self, user_id: UUID, now: datetime) -> None:
        self._execute(
            query="UPDATE users SET archived_at = %s, updated_at = %s WHERE id = %s",
            params=(now, now, user_id),
            context_msg="PostgresUserRepository: archive failed",
            extra={"user_id": str(user_id)},
        )

    def delete(self, user_id: UUID) -> None:
        self._execute(
            query="DELETE FROM users WHERE id = %s",
            params=(user_id,),
            context_msg="PostgresUserRepository: delete failed",
            extra={"user_id": str(user_id)},
        )

