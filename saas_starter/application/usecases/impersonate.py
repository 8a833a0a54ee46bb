"""
Name: Impersonate Use Case (virtual login / logout)

Responsibilities:
  - login: an account admin gets a session as another member of that
    account; the admin's own user/account travel along as root ids
  - logout: return from an impersonated session to the root user and
    account

Collaborators:
  - domain.repositories.UserRepository / MembershipRepository / AccountRepository
  - identity.acl.require_admin_membership (role gate)
  - identity.authenticator.Authenticator

Constraints:
  - Hidden account or user -> NotFound; visible but not admin -> Forbidden
  - The impersonated session is pinned to the target account
    (account_ids == (account_id,)), so it cannot switch to the target
    user's other tenants
  - Nested impersonation keeps the first root
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Iterable, Mapping, Optional, Union
from uuid import UUID

from ...crosscutting.exceptions import AuthenticationFailure, ForbiddenError, NotFoundError
from ...crosscutting.logger import logger
from ...domain.entities import AccountStatus, Membership, MembershipStatus, truncate_ms
from ...domain.repositories import AccountRepository, MembershipRepository, UserRepository
from ...identity import acl
from ...identity.authenticator import Authenticator
from ...identity.claims import INTERNAL_CLAIMS, Claims, new_claims
from ..validation import ImpersonateRequest, validate
from .authenticate import AuthResult, narrow_roles


class ImpersonateUseCase:
    def __init__(
        self,
        users: UserRepository,
        memberships: MembershipRepository,
        accounts: AccountRepository,
        authenticator: Authenticator,
    ) -> None:
        self.users = users
        self.memberships = memberships
        self.accounts = accounts
        self.authenticator = authenticator

    def _usable(self, membership: Optional[Membership]) -> bool:
        if (
            membership is None
            or membership.is_archived
            or membership.status != MembershipStatus.ACTIVE
        ):
            return False
        account = self.accounts.get(INTERNAL_CLAIMS, membership.account_id)
        return account is not None and account.status == AccountStatus.ACTIVE

    def login(
        self,
        claims: Claims,
        req: Union[ImpersonateRequest, Mapping[str, Any]],
        session_ttl: timedelta,
        now: Optional[datetime] = None,
        *,
        scopes: Iterable[str] = (),
    ) -> AuthResult:
        data = validate(ImpersonateRequest, req)
        if not claims.has_auth:
            raise AuthenticationFailure()

        if self.accounts.get(claims, data.account_id) is None:
            raise NotFoundError(f"Account {data.account_id} not found")
        acl.require_admin_membership(claims, data.account_id, self.memberships.get_by_pair)

        user = self.users.get(INTERNAL_CLAIMS, data.user_id)
        membership = self.memberships.get_by_pair(data.user_id, data.account_id)
        if user is None or not self._usable(membership):
            raise NotFoundError(
                f"User {data.user_id} is not an active member of account {data.account_id}"
            )

        impersonated = new_claims(
            subject=user.id,
            audience=data.account_id,
            account_ids=(data.account_id,),
            roles=narrow_roles(membership.roles, scopes),
            now=truncate_ms(now),
            ttl=session_ttl,
            timezone=user.timezone,
            root_subject=claims.root_subject or claims.subject,
            root_audience=claims.root_audience or claims.audience,
        )
        token = self.authenticator.issue(impersonated)
        logger.info(
            "Impersonation started",
            extra={
                "root_user_id": str(impersonated.root_subject),
                "user_id": str(user.id),
                "account_id": str(data.account_id),
            },
        )
        return AuthResult(token=token, claims=impersonated)

    def logout(
        self,
        claims: Claims,
        session_ttl: timedelta,
        now: Optional[datetime] = None,
    ) -> AuthResult:
        if not claims.has_auth:
            raise AuthenticationFailure()
        if not claims.is_impersonating:
            raise ForbiddenError("Session is not impersonating another user")

        root_user = self.users.get(INTERNAL_CLAIMS, claims.root_subject)
        root_membership = self.memberships.get_by_pair(claims.root_subject, claims.root_audience)
        if root_user is None or not self._usable(root_membership):
            logger.warning(
                "Impersonation logout denied",
                extra={"root_user_id": str(claims.root_subject)},
            )
            raise AuthenticationFailure()

        restored = new_claims(
            subject=root_user.id,
            audience=root_membership.account_id,
            account_ids=[m.account_id for m in self.memberships.list_for_user(root_user.id)],
            roles=root_membership.roles,
            now=truncate_ms(now),
            ttl=session_ttl,
            timezone=root_user.timezone,
        )
        token = self.authenticator.issue(restored)
        logger.info(
            "Impersonation ended",
            extra={"user_id": str(root_user.id), "impersonated_user_id": str(claims.subject)},
        )
        return AuthResult(token=token, claims=restored)
