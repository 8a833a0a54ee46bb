"""
Name: Claims (verified caller identity)

Responsibilities:
  - Represent who the caller is, the account they act within, the accounts
    they may switch to and the roles held in the current account
  - Expose the "internal" claims value used by server-initiated flows
  - Carry the root user/account of an impersonated session so the admin
    can return to it

Collaborators:
  - identity.authenticator: builds Claims from a verified token
  - identity.acl: derives the read predicate and write gates from Claims
  - application/*: receives Claims as an explicit parameter

Constraints:
  - Immutable value object
  - Internal claims = empty subject AND empty audience
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from ..domain.entities import MembershipRole, truncate_ms


@dataclass(frozen=True)
class Claims:
    subject: Optional[UUID] = None
    audience: Optional[UUID] = None
    account_ids: tuple[UUID, ...] = field(default_factory=tuple)
    roles: tuple[MembershipRole, ...] = field(default_factory=tuple)
    issued_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    timezone: Optional[str] = None
    root_subject: Optional[UUID] = None
    root_audience: Optional[UUID] = None

    @property
    def is_internal(self) -> bool:
        """R: Server-initiated caller; ACL scoping is bypassed."""
        return self.subject is None and self.audience is None

    @property
    def has_auth(self) -> bool:
        return self.subject is not None and self.audience is not None

    def has_role(self, *roles: MembershipRole) -> bool:
        return any(r in self.roles for r in roles)

    def can_switch_to(self, account_id: UUID) -> bool:
        return account_id in self.account_ids

    @property
    def is_impersonating(self) -> bool:
        """R: Root ids are only set by an impersonation login."""
        return self.root_subject is not None


INTERNAL_CLAIMS = Claims()


def new_claims(
    *,
    subject: UUID,
    audience: UUID,
    account_ids: list[UUID] | tuple[UUID, ...],
    roles: list[MembershipRole] | tuple[MembershipRole, ...],
    now: datetime,
    ttl: timedelta,
    timezone: Optional[str] = None,
    root_subject: Optional[UUID] = None,
    root_audience: Optional[UUID] = None,
) -> Claims:
    """R: Claims for a freshly authenticated session (expires_at = now + ttl)."""
    issued_at = truncate_ms(now)
    return Claims(
        subject=subject,
        audience=audience,
        account_ids=tuple(account_ids),
        roles=tuple(roles),
        issued_at=issued_at,
        expires_at=issued_at + ttl,
        timezone=timezone,
        root_subject=root_subject,
        root_audience=root_audience,
    )
