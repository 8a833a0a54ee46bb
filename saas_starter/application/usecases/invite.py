"""
Name: Invite Use Case

Responsibilities:
  - send: an account admin invites a list of emails with the given roles;
    missing users are created without a password and get an `invited`
    membership plus a sealed invite hash
  - accept: open the hash and activate the membership, in one transaction.
    A user without a password gets name + password from the request; a user
    who already has one must present it and keeps their credentials

Collaborators:
  - UserService / AccountService / MembershipService
  - identity.one_time.OneTimeHashCodec

Constraints:
  - Emails that already hold an active, live membership are skipped
  - A bad, expired or already-used hash -> ValidationError on `invite_hash`
  - An invite never replaces an existing password (no cross-tenant takeover)
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Any, List, Mapping, Optional, Union
from uuid import UUID

from ...crosscutting.exceptions import ValidationError
from ...crosscutting.logger import logger
from ...domain.entities import Membership, MembershipStatus, User, truncate_ms
from ...domain.repositories import MembershipRepository, TransactionManager, UserRepository
from ...identity import acl
from ...identity.claims import INTERNAL_CLAIMS, Claims
from ...identity.one_time import OneTimeHashCodec, OneTimeHashError
from ...identity.passwords import verify_password
from ..services.accounts import AccountService
from ..services.memberships import MembershipService
from ..services.users import UserService
from ..validation import (
    InviteAcceptRequest,
    InviteSendRequest,
    MembershipCreateRequest,
    validate,
)


@dataclass(frozen=True)
class InviteResult:
    email: str
    user_id: UUID
    invite_hash: str


@dataclass(frozen=True)
class InviteAcceptResult:
    user: User
    membership: Membership


class InviteUseCase:
    def __init__(
        self,
        users: UserRepository,
        memberships: MembershipRepository,
        user_service: UserService,
        account_service: AccountService,
        membership_service: MembershipService,
        tx: TransactionManager,
        codec: OneTimeHashCodec,
        ttl: timedelta,
    ) -> None:
        self.users = users
        self.memberships = memberships
        self.user_service = user_service
        self.account_service = account_service
        self.membership_service = membership_service
        self.tx = tx
        self.codec = codec
        self.ttl = ttl

    def _user_for(self, email: str, now: datetime) -> User:
        user = self.users.get_by_email(email)
        if user is not None:
            return user
        return self.user_service.create_invited(email, now)

    def send(
        self,
        claims: Claims,
        req: Union[InviteSendRequest, Mapping[str, Any]],
        ttl: Optional[timedelta] = None,
        now: Optional[datetime] = None,
    ) -> List[InviteResult]:
        data = validate(InviteSendRequest, req)
        # R: NotFound for hidden accounts before the admin gate
        account = self.account_service.read(claims, data.account_id)
        acl.ensure_can_modify_membership(claims, account.id, self.memberships.get_by_pair)
        now = truncate_ms(now)
        expires_at = now + (ttl or self.ttl)

        results: List[InviteResult] = []
        with self.tx.transaction():
            for email in data.emails:
                user = self._user_for(email, now)
                existing = self.memberships.get_by_pair(user.id, account.id)
                if (
                    existing is not None
                    and not existing.is_archived
                    and existing.status == MembershipStatus.ACTIVE
                ):
                    continue
                self.membership_service.add(
                    claims,
                    MembershipCreateRequest(
                        user_id=user.id,
                        account_id=account.id,
                        roles=data.roles,
                        status=MembershipStatus.INVITED,
                    ),
                    now,
                )
                invite_hash = self.codec.seal(
                    {"user_id": str(user.id), "account_id": str(account.id)}, expires_at
                )
                results.append(InviteResult(email=email, user_id=user.id, invite_hash=invite_hash))

        logger.info(
            "Invitations sent",
            extra={"account_id": str(account.id), "invited": len(results)},
        )
        return results

    def accept(
        self,
        req: Union[InviteAcceptRequest, Mapping[str, Any]],
        now: Optional[datetime] = None,
    ) -> InviteAcceptResult:
        data = validate(InviteAcceptRequest, req)
        invalid = ValidationError.single("invite_hash", "is invalid or expired")

        try:
            body = self.codec.open(data.invite_hash, now)
            user_id = UUID(str(body["user_id"]))
            account_id = UUID(str(body["account_id"]))
        except (OneTimeHashError, KeyError, ValueError) as exc:
            raise invalid from exc

        membership = self.memberships.get_by_pair(user_id, account_id)
        user = self.users.get(INTERNAL_CLAIMS, user_id)
        if (
            user is None
            or membership is None
            or membership.is_archived
            or membership.status != MembershipStatus.INVITED
        ):
            raise invalid

        if user.has_password and not verify_password(
            data.password, user.password_salt, user.password_hash
        ):
            logger.warning(
                "Invite rejected: user already has a password",
                extra={"user_id": str(user_id), "account_id": str(account_id)},
            )
            raise ValidationError.single("invite_hash", "user already has a password set")

        now = truncate_ms(now)
        with self.tx.transaction():
            if not user.has_password:
                renamed = replace(
                    user, name=data.name, timezone=data.timezone or user.timezone, updated_at=now
                )
                user = self.user_service.set_password(renamed, data.password, now)
            membership = self.memberships.update(
                replace(membership, status=MembershipStatus.ACTIVE, updated_at=now)
            )

        logger.info(
            "Invitation accepted",
            extra={"user_id": str(user_id), "account_id": str(account_id)},
        )
        return InviteAcceptResult(user=user, membership=membership)
