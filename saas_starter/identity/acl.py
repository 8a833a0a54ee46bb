"""
Name: ACL Predicate Builder (tenant isolation)

Responsibilities:
  - Translate Claims into the sub-query that scopes every read/write against
    users, accounts, memberships and account-scoped resources
  - Evaluate the same rule in Python for the in-memory stores
  - Provide the role gates used before any mutation

Collaborators:
  - identity.claims.Claims
  - infrastructure/repositories/postgres/*: AND the SqlPredicate into queries
  - infrastructure/repositories/in_memory/*: filter with visible_ids()
  - application/services/*: call the ensure_can_modify_* gates

Constraints:
  - Internal claims bypass scoping (no predicate)
  - Always `col IN (SELECT ...)`, never a JOIN, so pagination and ORDER BY
    never see multiplied rows
  - A row hidden by the predicate is NotFound, never Forbidden
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Optional
from uuid import UUID

from ..crosscutting.exceptions import ForbiddenError
from ..domain.entities import Membership, MembershipRole
from .claims import Claims

MEMBERSHIP_TABLE = "users_accounts"


@dataclass(frozen=True)
class AclTarget:
    """
    How an entity is scoped.

    column:          outer column compared against the sub-query
    scoping_column:  users_accounts column projected by the sub-query
    include_self:    also admit the caller's own row (users only)
    """

    name: str
    column: str
    scoping_column: str
    include_self: bool = False


class Target(Enum):
    USER = AclTarget("user", "id", "user_id", include_self=True)
    ACCOUNT = AclTarget("account", "id", "account_id")
    MEMBERSHIP = AclTarget("membership", "user_id", "user_id")
    PROJECT = AclTarget("project", "account_id", "account_id")


@dataclass(frozen=True)
class SqlPredicate:
    """A parameterized SQL fragment (psycopg %s placeholders)."""

    sql: str
    params: tuple[object, ...]


def read_predicate(
    claims: Claims, target: Target, *, alias: str = ""
) -> Optional[SqlPredicate]:
    """
    R: Build the read predicate for `target`.

    Returns None for internal claims. Otherwise:

        <col> IN (SELECT <scoping_col> FROM users_accounts
                  WHERE archived_at IS NULL
                    AND (account_id = %s OR user_id = %s))

    Missing subject/audience bind as NULL, so `= NULL` never matches.
    """
    if claims.is_internal:
        return None

    scoping = target.value
    prefix = f"{alias}." if alias else ""
    column = f"{prefix}{scoping.column}"

    sql = (
        f"{column} IN (SELECT {scoping.scoping_column} FROM {MEMBERSHIP_TABLE} "
        f"WHERE archived_at IS NULL AND (account_id = %s OR user_id = %s))"
    )
    params: tuple[object, ...] = (claims.audience, claims.subject)

    if scoping.include_self:
        sql = f"({sql} OR {prefix}id = %s)"
        params = params + (claims.subject,)

    return SqlPredicate(sql=sql, params=params)


def visible_ids(
    claims: Claims, target: Target, memberships: Iterable[Membership]
) -> Optional[set[UUID]]:
    """
    R: Python evaluation of the sub-query: the set of values the outer
    column may take. None means "no restriction" (internal claims).
    """
    if claims.is_internal:
        return None

    scoping = target.value
    ids: set[UUID] = set()
    for m in memberships:
        if m.is_archived:
            continue
        if (claims.audience is not None and m.account_id == claims.audience) or (
            claims.subject is not None and m.user_id == claims.subject
        ):
            ids.add(getattr(m, scoping.scoping_column))

    if scoping.include_self and claims.subject is not None:
        ids.add(claims.subject)
    return ids


def is_visible(
    claims: Claims,
    target: Target,
    row: object,
    memberships: Iterable[Membership],
) -> bool:
    allowed = visible_ids(claims, target, memberships)
    if allowed is None:
        return True
    return getattr(row, target.value.column) in allowed


# =========================================================
# Write gates
# =========================================================
MembershipLookup = Callable[[UUID, UUID], Optional[Membership]]


def require_admin_membership(
    claims: Claims, account_id: UUID, lookup: MembershipLookup
) -> None:
    """
    R: Role gate for an account-scoped mutation.

    - internal claims: allowed
    - account is the audience: the token roles decide
    - any other account: the caller's own active membership there decides
    """
    if claims.is_internal:
        return

    if claims.audience == account_id:
        if claims.has_role(MembershipRole.ADMIN):
            return
        raise ForbiddenError("Admin role required for this account")

    if claims.subject is not None:
        membership = lookup(claims.subject, account_id)
        if (
            membership is not None
            and not membership.is_archived
            and membership.has_role(MembershipRole.ADMIN)
        ):
            return
    raise ForbiddenError("Admin role required for this account")


def ensure_can_modify_account(
    claims: Claims, account_id: UUID, lookup: MembershipLookup
) -> None:
    require_admin_membership(claims, account_id, lookup)


def ensure_can_modify_project(
    claims: Claims, account_id: UUID, lookup: MembershipLookup
) -> None:
    require_admin_membership(claims, account_id, lookup)


def ensure_can_modify_membership(
    claims: Claims, account_id: UUID, lookup: MembershipLookup
) -> None:
    """R: Memberships carry roles; only admins of that account may change them."""
    require_admin_membership(claims, account_id, lookup)


def ensure_can_modify_user(claims: Claims, user_id: UUID) -> None:
    """
    R: A user may always modify their own row; anyone else needs admin in
    the current account (the target must already be visible to them).
    """
    if claims.is_internal or claims.subject == user_id:
        return
    if not claims.has_role(MembershipRole.ADMIN):
        raise ForbiddenError("Admin role required to modify another user")


def _require_admin_role(claims: Claims, what: str) -> None:
    if claims.is_internal or claims.has_role(MembershipRole.ADMIN):
        return
    raise ForbiddenError(f"Admin role required to create {what}")


def ensure_can_create_user(claims: Claims) -> None:
    _require_admin_role(claims, "users")


def ensure_can_create_account(claims: Claims) -> None:
    _require_admin_role(claims, "accounts")
