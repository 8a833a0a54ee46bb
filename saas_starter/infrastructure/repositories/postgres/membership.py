"""
============================================================
TARJETA CRC — infrastructure/repositories/postgres/membership.py
============================================================
Class: PostgresMembershipRepository

Responsibilities:
  - Parameterized SQL against `users_accounts`, scoped on user_id by the
    ACL predicate for caller-facing reads
  - Unscoped pair lookup and per-user listing for login, switch and gates
  - Bulk archive/delete by account or user (cascades run in the caller's
    transaction)

Notes:
  - roles is an array of user_account_role_t; read back as text[]
============================================================
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from ....domain.entities import Membership, MembershipRole, MembershipStatus
from ....domain.repositories import FindRequest
from ....identity.acl import Target
from ....identity.claims import Claims
from .base import PostgresStore


class PostgresMembershipRepository(PostgresStore):
    _TABLE = "users_accounts"
    _COLUMNS = (
        "id",
        "user_id",
        "account_id",
        "roles",
        "status",
        "created_at",
        "updated_at",
        "archived_at",
    )
    _SELECT = (
        "id, user_id, account_id, roles::text[], status::text, "
        "created_at, updated_at, archived_at"
    )
    _TARGET = Target.MEMBERSHIP

    @staticmethod
    def _row_to_membership(row: tuple) -> Membership:
        (
            membership_id,
            user_id,
            account_id,
            roles,
            status,
            created_at,
            updated_at,
            archived_at,
        ) = row
        return Membership(
            id=membership_id,
            user_id=user_id,
            account_id=account_id,
            roles=[MembershipRole(r) for r in (roles or [])],
            status=MembershipStatus(status),
            created_at=created_at,
            updated_at=updated_at,
            archived_at=archived_at,
        )

    # =========================================================
    # Scoped reads
    # =========================================================
    def find(self, claims: Claims, req: FindRequest) -> List[Membership]:
        rows = self._select(
            claims,
            conditions=[],
            params=[],
            req=req,
            context_msg="PostgresMembershipRepository: find failed",
        )
        return [self._row_to_membership(r) for r in rows]

    def get(
        self, claims: Claims, membership_id: UUID, *, include_archived: bool = False
    ) -> Optional[Membership]:
        rows = self._select(
            claims,
            conditions=["id = %s"],
            params=[membership_id],
            req=FindRequest(include_archived=include_archived, limit=1),
            context_msg="PostgresMembershipRepository: get failed",
        )
        return self._row_to_membership(rows[0]) if rows else None

    # =========================================================
    # Unscoped helpers
    # =========================================================
    def get_by_pair(self, user_id: UUID, account_id: UUID) -> Optional[Membership]:
        # R: prefer the live row; fall back to the most recently archived one
        row = self._fetchone(
            query=f"""
                SELECT {self._SELECT}
                FROM users_accounts
                WHERE user_id = %s AND account_id = %s
                ORDER BY archived_at IS NOT NULL, archived_at DESC
                LIMIT 1
            """,
            params=(user_id, account_id),
            context_msg="PostgresMembershipRepository: get_by_pair failed",
            extra={"user_id": str(user_id), "account_id": str(account_id)},
        )
        return self._row_to_membership(row) if row else None

    def list_for_user(self, user_id: UUID) -> List[Membership]:
        rows = self._fetchall(
            query=f"""
                SELECT {self._SELECT}
                FROM users_accounts
                WHERE user_id = %s AND archived_at IS NULL
                ORDER BY created_at ASC, id ASC
            """,
            params=(user_id,),
            context_msg="PostgresMembershipRepository: list_for_user failed",
            extra={"user_id": str(user_id)},
        )
        return [self._row_to_membership(r) for r in rows]

    # =========================================================
    # Writes
    # =========================================================
    def insert(self, membership: Membership) -> Membership:
        row = self._fetchone(
            query=f"""
                INSERT INTO users_accounts (
                    id, user_id, account_id, roles, status,
                    created_at, updated_at, archived_at
                )
                VALUES (
                    %s, %s, %s, %s::user_account_role_t[], %s::user_account_status_t,
                    %s, %s, %s
                )
                RETURNING {self._SELECT}
            """,
            params=(
                membership.id,
                membership.user_id,
                membership.account_id,
                [r.value for r in membership.roles],
                membership.status.value,
                membership.created_at,
                membership.updated_at,
                membership.archived_at,
            ),
            context_msg="PostgresMembershipRepository: insert failed",
            extra={
                "user_id": str(membership.user_id),
                "account_id": str(membership.account_id),
            },
        )
        return self._row_to_membership(row)

    def update(self, membership: Membership) -> Membership:
        row = self._fetchone_required(
            query=f"""
                UPDATE users_accounts
                SET roles = %s::user_account_role_t[],
                    status = %s::user_account_status_t,
                    updated_at = %s, archived_at = %s
                WHERE id = %s
                RETURNING {self._SELECT}
            """,
            params=(
                [r.value for r in membership.roles],
                membership.status.value,
                membership.updated_at,
                membership.archived_at,
                membership.id,
            ),
            context_msg="PostgresMembershipRepository: update failed",
            extra={"membership_id": str(membership.id)},
        )
        return self._row_to_membership(row)

    def _archive_where(self, where_sql: str, value: UUID, now: datetime, what: str) -> int:
        return self._execute(
            query=f"""
                UPDATE users_accounts
                SET archived_at = %s, updated_at = %s
                WHERE {where_sql} AND archived_at IS NULL
            """,
            params=(now, now, value),
            context_msg=f"PostgresMembershipRepository: {what} failed",
            extra={"key": str(value)},
        )

    def archive(self, membership_id: UUID, now: datetime) -> None:
        self._archive_where("id = %s", membership_id, now, "archive")

    def archive_by_account(self, account_id: UUID, now: datetime) -> int:
        return self._archive_where("account_id = %s", account_id, now, "archive_by_account")

    def archive_by_user(self, user_id: UUID, now: datetime) -> int:
        return self._archive_where("user_id = %s", user_id, now, "archive_by_user")

    def _delete_where(self, where_sql: str, value: UUID, what: str) -> int:
        return self._execute(
            query=f"DELETE FROM users_accounts WHERE {where_sql}",
            params=(value,),
            context_msg=f"PostgresMembershipRepository: {what} failed",
            extra={"key": str(value)},
        )

    def delete(self, membership_id: UUID) -> None:
        self._delete_where("id = %s", membership_id, "delete")

    def delete_by_account(self, account_id: UUID) -> int:
        return self._delete_where("account_id = %s", account_id, "delete_by_account")

    def delete_by_user(self, user_id: UUID) -> int:
        return self._delete_where("user_id = %s", user_id, "delete_by_user")
