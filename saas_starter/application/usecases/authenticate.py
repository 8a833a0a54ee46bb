"""
Name: Authenticate Use Case (password grant)

Responsibilities:
  - Check email + password against the stored argon2 hash
  - Pick the audience: the requested account, or the oldest active
    membership in an active account
  - Optionally narrow the token roles to the requested scopes
  - Issue a signed session token

Collaborators:
  - domain.repositories.UserRepository / MembershipRepository / AccountRepository
  - identity.passwords, identity.claims, identity.authenticator

Constraints:
  - Every failure before the token is issued is the same coarse
    AuthenticationFailure; the reason is only logged
  - Lookups bypass the ACL (there is no caller context yet)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional, Sequence
from uuid import UUID

from ...crosscutting.exceptions import AuthenticationFailure, ForbiddenError
from ...crosscutting.logger import logger
from ...domain.entities import AccountStatus, Membership, MembershipRole, MembershipStatus, truncate_ms
from ...domain.repositories import AccountRepository, MembershipRepository, UserRepository
from ...identity.authenticator import Authenticator
from ...identity.claims import INTERNAL_CLAIMS, Claims, new_claims
from ...identity.passwords import verify_password
from ..validation import normalize_email


@dataclass(frozen=True)
class AuthResult:
    token: str
    claims: Claims


def narrow_roles(
    granted: Sequence[MembershipRole], scopes: Iterable[str]
) -> list[MembershipRole]:
    """
    R: Requested scopes must be a subset of the granted roles; an admin may
    ask for the weaker `user` scope. Unknown or ungranted scope -> Forbidden.
    """
    requested = [s.strip() for s in scopes if s and s.strip()]
    if not requested:
        return list(granted)

    narrowed: list[MembershipRole] = []
    for scope in requested:
        try:
            role = MembershipRole(scope)
        except ValueError:
            raise ForbiddenError(f"Invalid scope: {scope}") from None
        allowed = role in granted or (
            role == MembershipRole.USER and MembershipRole.ADMIN in granted
        )
        if not allowed:
            raise ForbiddenError(f"Scope not granted: {scope}")
        if role not in narrowed:
            narrowed.append(role)
    return narrowed


class AuthenticateUseCase:
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

    def _fail(self, reason: str, email: str) -> AuthenticationFailure:
        logger.warning("Authentication failed", extra={"reason": reason, "email": email})
        return AuthenticationFailure()

    def _usable(self, membership: Membership) -> bool:
        if membership.is_archived or membership.status != MembershipStatus.ACTIVE:
            return False
        account = self.accounts.get(INTERNAL_CLAIMS, membership.account_id)
        return account is not None and account.status == AccountStatus.ACTIVE

    def execute(
        self,
        email: str,
        password: str,
        session_ttl: timedelta,
        now: Optional[datetime] = None,
        *,
        account_id: Optional[UUID] = None,
        scopes: Iterable[str] = (),
    ) -> AuthResult:
        email = normalize_email(email)
        user = self.users.get_by_email(email)
        if user is None:
            raise self._fail("unknown email", email)
        if not verify_password(password or "", user.password_salt, user.password_hash):
            raise self._fail("password mismatch", email)

        memberships = self.memberships.list_for_user(user.id)
        if account_id is not None:
            selected = next((m for m in memberships if m.account_id == account_id), None)
            if selected is None or not self._usable(selected):
                raise self._fail("requested account unavailable", email)
        else:
            selected = next((m for m in memberships if self._usable(m)), None)
            if selected is None:
                raise self._fail("no active membership", email)

        roles = narrow_roles(selected.roles, scopes)
        claims = new_claims(
            subject=user.id,
            audience=selected.account_id,
            account_ids=[m.account_id for m in memberships],
            roles=roles,
            now=truncate_ms(now),
            ttl=session_ttl,
            timezone=user.timezone,
        )
        token = self.authenticator.issue(claims)
        logger.info(
            "User authenticated",
            extra={"user_id": str(user.id), "account_id": str(selected.account_id)},
        )
        return AuthResult(token=token, claims=claims)
