"""
===============================================================================
SERVICE: Memberships (users_accounts)
===============================================================================

Class:
    MembershipService

Responsibilities:
    - find / read scoped by the caller's Claims
    - add: un-archive an existing row for the pair, or insert a new one
      (status defaults to active)
    - update: partial update keyed by (user_id, account_id); `unarchive`
      clears archived_at, only while the user and the account are live
    - archive / delete by (user_id, account_id)

Policy:
    - The account must be visible to the caller and the user must exist
      (NotFound otherwise); mutations then require admin in that account
===============================================================================
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Any, List, Mapping, Optional, Union
from uuid import UUID, uuid4

from ...crosscutting.exceptions import NotFoundError
from ...crosscutting.logger import logger
from ...domain.entities import Membership, MembershipStatus, truncate_ms
from ...domain.repositories import (
    AccountRepository,
    FindRequest,
    MembershipRepository,
    UserRepository,
)
from ...identity import acl
from ...identity.claims import INTERNAL_CLAIMS, Claims
from ..validation import (
    MembershipCreateRequest,
    MembershipKeyRequest,
    MembershipUpdateRequest,
    parse_id,
    validate,
)

Payload = Union[Mapping[str, Any], Any]


class MembershipService:
    def __init__(
        self,
        memberships: MembershipRepository,
        users: UserRepository,
        accounts: AccountRepository,
    ) -> None:
        self._memberships = memberships
        self._users = users
        self._accounts = accounts

    def _admin_lookup(self, user_id: UUID, account_id: UUID):
        return self._memberships.get_by_pair(user_id, account_id)

    # =========================================================
    # Reads
    # =========================================================
    def find(self, claims: Claims, req: Optional[FindRequest] = None) -> List[Membership]:
        return self._memberships.find(claims, req or FindRequest())

    def read(
        self, claims: Claims, membership_id: Any, *, include_archived: bool = False
    ) -> Membership:
        mid = parse_id(membership_id, "id")
        membership = self._memberships.get(claims, mid, include_archived=include_archived)
        if membership is None:
            raise NotFoundError(f"Membership {mid} not found")
        return membership

    def read_pair(
        self,
        claims: Claims,
        user_id: UUID,
        account_id: UUID,
        *,
        include_archived: bool = False,
    ) -> Membership:
        rows = self._memberships.find(
            claims,
            FindRequest(
                filters={"user_id": user_id, "account_id": account_id},
                order=("archived_at desc",),
                include_archived=include_archived,
            ),
        )
        if not rows:
            raise NotFoundError(f"Membership for user {user_id} in account {account_id} not found")
        # R: a live row sorts before archived ones (NULLS FIRST on DESC)
        return rows[0]

    def _ensure_parties_visible(self, claims: Claims, user_id: UUID, account_id: UUID) -> None:
        # R: a user without memberships is visible to nobody yet; existence is enough
        if self._users.get(INTERNAL_CLAIMS, user_id) is None:
            raise NotFoundError(f"User {user_id} not found")
        if self._accounts.get(claims, account_id) is None:
            raise NotFoundError(f"Account {account_id} not found")

    def _ensure_parties_live(self, user_id: UUID, account_id: UUID) -> None:
        # R: a live membership never points at an archived user or account
        if self._users.get(INTERNAL_CLAIMS, user_id) is None:
            raise NotFoundError(f"User {user_id} not found")
        if self._accounts.get(INTERNAL_CLAIMS, account_id) is None:
            raise NotFoundError(f"Account {account_id} not found")

    # =========================================================
    # Writes
    # =========================================================
    def add(self, claims: Claims, req: Payload, now: Optional[datetime] = None) -> Membership:
        data = validate(MembershipCreateRequest, req)
        self._ensure_parties_visible(claims, data.user_id, data.account_id)
        acl.ensure_can_modify_membership(claims, data.account_id, self._admin_lookup)

        now = truncate_ms(now)
        status = data.status or MembershipStatus.ACTIVE
        roles = list(dict.fromkeys(data.roles))

        existing = self._memberships.get_by_pair(data.user_id, data.account_id)
        if existing is not None:
            saved = self._memberships.update(
                replace(existing, roles=roles, status=status, archived_at=None, updated_at=now)
            )
        else:
            saved = self._memberships.insert(
                Membership(
                    id=uuid4(),
                    user_id=data.user_id,
                    account_id=data.account_id,
                    roles=roles,
                    status=status,
                    created_at=now,
                    updated_at=now,
                )
            )

        logger.info(
            "Membership saved",
            extra={
                "user_id": str(saved.user_id),
                "account_id": str(saved.account_id),
                "roles": [r.value for r in saved.roles],
            },
        )
        return saved

    create = add

    def update(
        self, claims: Claims, req: Payload, now: Optional[datetime] = None
    ) -> Membership:
        data = validate(MembershipUpdateRequest, req)
        current = self.read_pair(
            claims, data.user_id, data.account_id, include_archived=data.unarchive
        )
        acl.ensure_can_modify_membership(claims, current.account_id, self._admin_lookup)
        if data.unarchive and current.is_archived:
            self._ensure_parties_live(current.user_id, current.account_id)

        changes: dict[str, Any] = {}
        if data.roles is not None:
            changes["roles"] = list(dict.fromkeys(data.roles))
        if data.status is not None:
            changes["status"] = data.status
        if data.unarchive:
            changes["archived_at"] = None
        if not changes:
            return current

        return self._memberships.update(
            replace(current, **changes, updated_at=truncate_ms(now))
        )

    def archive(self, claims: Claims, req: Payload, now: Optional[datetime] = None) -> None:
        data = validate(MembershipKeyRequest, req)
        current = self.read_pair(claims, data.user_id, data.account_id)
        acl.ensure_can_modify_membership(claims, current.account_id, self._admin_lookup)
        self._memberships.archive(current.id, truncate_ms(now))

    def delete(self, claims: Claims, req: Payload) -> None:
        data = validate(MembershipKeyRequest, req)
        current = self.read_pair(claims, data.user_id, data.account_id, include_archived=True)
        acl.ensure_can_modify_membership(claims, current.account_id, self._admin_lookup)
        self._memberships.delete(current.id)
