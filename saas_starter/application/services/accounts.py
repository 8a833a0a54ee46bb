"""
===============================================================================
SERVICE: Accounts
===============================================================================

Class:
    AccountService

Responsibilities:
    - find / read scoped by the caller's Claims
    - create: defaults (status pending, timezone), unique name
    - update: visible-then-admin gate, partial update, unique name
    - archive: account + all its memberships in one transaction
    - delete: memberships and projects first, then the account, in one
      transaction (rolled back on any error)

Collaborators:
    - AccountRepository, MembershipRepository, ProjectRepository,
      TransactionManager (ports)
    - identity.acl gates
===============================================================================
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Any, List, Mapping, Optional, Union
from uuid import UUID, uuid4

from ...crosscutting.exceptions import FieldError, NotFoundError, ValidationError
from ...crosscutting.logger import logger
from ...domain.entities import DEFAULT_TIMEZONE, Account, AccountStatus, truncate_ms
from ...domain.repositories import (
    AccountRepository,
    FindRequest,
    MembershipRepository,
    ProjectRepository,
    TransactionManager,
)
from ...identity import acl
from ...identity.claims import Claims
from ..validation import AccountCreateRequest, AccountUpdateRequest, parse_id, validate

Payload = Union[Mapping[str, Any], Any]


class AccountService:
    def __init__(
        self,
        accounts: AccountRepository,
        memberships: MembershipRepository,
        projects: ProjectRepository,
        tx: TransactionManager,
    ) -> None:
        self._accounts = accounts
        self._memberships = memberships
        self._projects = projects
        self._tx = tx

    def _admin_lookup(self, user_id: UUID, account_id: UUID):
        return self._memberships.get_by_pair(user_id, account_id)

    # =========================================================
    # Reads
    # =========================================================
    def find(self, claims: Claims, req: Optional[FindRequest] = None) -> List[Account]:
        return self._accounts.find(claims, req or FindRequest())

    def read(
        self, claims: Claims, account_id: Any, *, include_archived: bool = False
    ) -> Account:
        aid = parse_id(account_id, "account_id")
        account = self._accounts.get(claims, aid, include_archived=include_archived)
        if account is None:
            raise NotFoundError(f"Account {aid} not found")
        return account

    # =========================================================
    # Writes
    # =========================================================
    def ensure_unique_name(self, name: str, *, exclude_id: Optional[UUID] = None) -> None:
        if self._accounts.name_taken(name, exclude_id=exclude_id):
            raise ValidationError([FieldError(name="name", message="must be unique")])

    def create(
        self, claims: Claims, req: Payload, now: Optional[datetime] = None
    ) -> Account:
        data = validate(AccountCreateRequest, req)
        acl.ensure_can_create_account(claims)
        self.ensure_unique_name(data.name)

        now = truncate_ms(now)
        account = Account(
            id=uuid4(),
            name=data.name,
            address1=data.address1,
            address2=data.address2,
            city=data.city,
            region=data.region,
            country=data.country,
            zipcode=data.zipcode,
            status=data.status or AccountStatus.PENDING,
            timezone=data.timezone or DEFAULT_TIMEZONE,
            signup_user_id=data.signup_user_id,
            billing_user_id=data.billing_user_id,
            created_at=now,
            updated_at=now,
        )
        created = self._accounts.insert(account)
        logger.info("Account created", extra={"account_id": str(created.id)})
        return created

    def update(
        self, claims: Claims, req: Payload, now: Optional[datetime] = None
    ) -> Account:
        data = validate(AccountUpdateRequest, req)
        current = self.read(claims, data.id)
        acl.ensure_can_modify_account(claims, current.id, self._admin_lookup)

        if data.name is not None and data.name != current.name:
            self.ensure_unique_name(data.name, exclude_id=current.id)

        changes = data.model_dump(exclude={"id"}, exclude_none=True)
        if not changes:
            return current

        updated = replace(current, **changes, updated_at=truncate_ms(now))
        return self._accounts.update(updated)

    def archive(
        self, claims: Claims, account_id: Any, now: Optional[datetime] = None
    ) -> None:
        current = self.read(claims, account_id)
        acl.ensure_can_modify_account(claims, current.id, self._admin_lookup)

        now = truncate_ms(now)
        with self._tx.transaction():
            self._accounts.archive(current.id, now)
            archived = self._memberships.archive_by_account(current.id, now)
        logger.info(
            "Account archived",
            extra={"account_id": str(current.id), "memberships_archived": archived},
        )

    def delete(self, claims: Claims, account_id: Any) -> None:
        current = self.read(claims, account_id, include_archived=True)
        acl.ensure_can_modify_account(claims, current.id, self._admin_lookup)

        with self._tx.transaction():
            self._memberships.delete_by_account(current.id)
            self._projects.delete_by_account(current.id)
            self._accounts.delete(current.id)
        logger.info("Account deleted", extra={"account_id": str(current.id)})
