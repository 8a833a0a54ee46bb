"""
============================================================
TARJETA CRC — infrastructure/repositories/postgres/account.py
============================================================
Class: PostgresAccountRepository

Responsibilities:
  - Parameterized SQL against `accounts`, scoped by the ACL predicate
  - Uniqueness check for account names (non-archived rows only)
  - Map rows -> domain `Account` (status enum read back as text)

Constraints:
  - Cascades (memberships/projects) are orchestrated by AccountService
    inside one transaction, never here
============================================================
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from ....domain.entities import Account, AccountStatus
from ....domain.repositories import FindRequest
from ....identity.acl import Target
from ....identity.claims import Claims
from .base import PostgresStore


class PostgresAccountRepository(PostgresStore):
    _TABLE = "accounts"
    _COLUMNS = (
        "id",
        "name",
        "address1",
        "address2",
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
    _SELECT = ", ".join("status::text" if c == "status" else c for c in _COLUMNS)
    _TARGET = Target.ACCOUNT

    @staticmethod
    def _row_to_account(row: tuple) -> Account:
        (
            account_id,
            name,
            address1,
            address2,
            city,
            region,
            country,
            zipcode,
            status,
            tz,
            signup_user_id,
            billing_user_id,
            created_at,
            updated_at,
            archived_at,
        ) = row
        return Account(
            id=account_id,
            name=name,
            address1=address1 or "",
            address2=address2 or "",
            city=city or "",
            region=region or "",
            country=country or "",
            zipcode=zipcode or "",
            status=AccountStatus(status),
            timezone=tz,
            signup_user_id=signup_user_id,
            billing_user_id=billing_user_id,
            created_at=created_at,
            updated_at=updated_at,
            archived_at=archived_at,
        )

    def find(self, claims: Claims, req: FindRequest) -> List[Account]:
        rows = self._select(
            claims,
            conditions=[],
            params=[],
            req=req,
            context_msg="PostgresAccountRepository: find failed",
        )
        return [self._row_to_account(r) for r in rows]

    def get(
        self, claims: Claims, account_id: UUID, *, include_archived: bool = False
    ) -> Optional[Account]:
        rows = self._select(
            claims,
            conditions=["id = %s"],
            params=[account_id],
            req=FindRequest(include_archived=include_archived, limit=1),
            context_msg="PostgresAccountRepository: get failed",
        )
        return self._row_to_account(rows[0]) if rows else None

    def name_taken(self, name: str, *, exclude_id: Optional[UUID] = None) -> bool:
        query = "SELECT 1 FROM accounts WHERE name = %s AND archived_at IS NULL"
        params: list[object] = [name]
        if exclude_id is not None:
            query += " AND id <> %s"
            params.append(exclude_id)
        row = self._fetchone(
            query=query + " LIMIT 1",
            params=params,
            context_msg="PostgresAccountRepository: name_taken failed",
            extra={},
        )
        return row is not None

    def insert(self, account: Account) -> Account:
        row = self._fetchone(
            query=f"""
                INSERT INTO accounts (
                    id, name, address1, address2, city, region, country, zipcode,
                    status, timezone, signup_user_id, billing_user_id,
                    created_at, updated_at, archived_at
                )
                VALUES (
                    %s, %s, %s, %s, %s, %s, %s, %s,
                    %s::account_status_t, %s, %s, %s,
                    %s, %s, %s
                )
                RETURNING {self._SELECT}
            """,
            params=(
                account.id,
                account.name,
                account.address1,
                account.address2,
                account.city,
                account.region,
                account.country,
                account.zipcode,
                account.status.value,
                account.timezone,
                account.signup_user_id,
                account.billing_user_id,
                account.created_at,
                account.updated_at,
                account.archived_at,
            ),
            context_msg="PostgresAccountRepository: insert failed",
            extra={"account_id": str(account.id)},
        )
        return self._row_to_account(row)

    def update(self, account: Account) -> Account:
        row = self._fetchone_required(
            query=f"""
                UPDATE accounts
                SET name = %s, address1 = %s, address2 = %s, city = %s,
                    region = %s, country = %s, zipcode = %s,
                    status = %s::account_status_t, timezone = %s,
                    signup_user_id = %s, billing_user_id = %s,
                    updated_at = %s, archived_at = %s
                WHERE id = %s
                RETURNING {self._SELECT}
            """,
            params=(
                account.name,
                account.address1,
                account.address2,
                account.city,
                account.region,
                account.country,
                account.zipcode,
                account.status.value,
                account.timezone,
                account.signup_user_id,
                account.billing_user_id,
                account.updated_at,
                account.archived_at,
                account.id,
            ),
            context_msg="PostgresAccountRepository: update failed",
            extra={"account_id": str(account.id)},
        )
        return self._row_to_account(row)

    def archive(self, account_id: UUID, now: datetime) -> None:
        self._execute(
            query="UPDATE accounts SET archived_at = %s, updated_at = %s WHERE id = %s",
            params=(now, now, account_id),
            context_msg="PostgresAccountRepository: archive failed",
            extra={"account_id": str(account_id)},
        )

    def delete(self, account_id: UUID) -> None:
        self._execute(
            query="DELETE FROM accounts WHERE id = %s",
            params=(account_id,),
            context_msg="PostgresAccountRepository: delete failed",
            extra={"account_id": str(account_id)},
        )
