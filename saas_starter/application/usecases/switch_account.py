"""
Name: Switch Account Use Case

Responsibilities:
  - Re-issue a session token for another account the caller belongs to
  - Keep subject and account_ids; take audience and roles from the target
    membership
  - An impersonated session stays impersonated (root ids carried over)

Constraints:
  - Target not listed in the caller's account_ids, or membership missing,
    archived or not active -> AuthenticationFailure
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Optional

from ...crosscutting.exceptions import AuthenticationFailure
from ...crosscutting.logger import logger
from ...domain.entities import MembershipStatus, truncate_ms
from ...domain.repositories import MembershipRepository
from ...identity.authenticator import Authenticator
from ...identity.claims import Claims, new_claims
from ..validation import parse_id
from .authenticate import AuthResult


class SwitchAccountUseCase:
    def __init__(self, memberships: MembershipRepository, authenticator: Authenticator) -> None:
        self.memberships = memberships
        self.authenticator = authenticator

    def execute(
        self,
        claims: Claims,
        target_account_id: Any,
        session_ttl: timedelta,
        now: Optional[datetime] = None,
    ) -> AuthResult:
        target = parse_id(target_account_id, "account_id")
        if not claims.has_auth or not claims.can_switch_to(target):
            logger.warning("Account switch denied", extra={"account_id": str(target)})
            raise AuthenticationFailure()

        membership = self.memberships.get_by_pair(claims.subject, target)
        if (
            membership is None
            or membership.is_archived
            or membership.status != MembershipStatus.ACTIVE
        ):
            logger.warning("Account switch denied", extra={"account_id": str(target)})
            raise AuthenticationFailure()

        switched = new_claims(
            subject=claims.subject,
            audience=target,
            account_ids=claims.account_ids,
            roles=membership.roles,
            now=truncate_ms(now),
            ttl=session_ttl,
            timezone=claims.timezone,
            root_subject=claims.root_subject,
            root_audience=claims.root_audience,
        )
        token = self.authenticator.issue(switched)
        logger.info(
            "Account switched",
            extra={"user_id": str(claims.subject), "account_id": str(target)},
        )
        return AuthResult(token=token, claims=switched)
