"""
Name: Signup Use Case

Responsibilities:
  - Create the first user, their account and the admin membership linking
    them, all or nothing
  - Default the account status to active
  - Report email/name collisions as `user.email` / `account.name`

Collaborators:
  - UserService, AccountService, MembershipService (internal claims)
  - domain.repositories.TransactionManager

Constraints:
  - There is no caller yet, so every step runs with INTERNAL_CLAIMS
  - A store-level unique violation raised inside the transaction (concurrent
    signup) still surfaces as ValidationError and rolls everything back
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterator, Mapping, Optional, Union

from ...crosscutting.exceptions import FieldError, ValidationError
from ...crosscutting.logger import logger
from ...domain.entities import (
    Account,
    AccountStatus,
    Membership,
    MembershipRole,
    User,
    truncate_ms,
)
from ...domain.repositories import TransactionManager
from ...identity.claims import INTERNAL_CLAIMS
from ..services.accounts import AccountService
from ..services.memberships import MembershipService
from ..services.users import UserService
from ..validation import AccountCreateRequest, MembershipCreateRequest, SignupRequest, validate


@contextmanager
def _fields_under(prefix: str) -> Iterator[None]:
    """R: Re-raise field errors under the nested signup payload names."""
    try:
        yield
    except ValidationError as exc:
        raise ValidationError(
            [FieldError(name=f"{prefix}.{f.name}", message=f.message) for f in exc.fields],
            original_error=exc,
        ) from exc


@dataclass(frozen=True)
class SignupResult:
    account: Account
    user: User
    membership: Membership


class SignupUseCase:
    """R: Signup = user + account + admin membership in one transaction."""

    def __init__(
        self,
        users: UserService,
        accounts: AccountService,
        memberships: MembershipService,
        tx: TransactionManager,
    ) -> None:
        self.users = users
        self.accounts = accounts
        self.memberships = memberships
        self.tx = tx

    def _ensure_unique(self, data: SignupRequest) -> None:
        errors: list[FieldError] = []
        try:
            self.users.ensure_unique_email(data.user.email)
        except ValidationError:
            errors.append(FieldError(name="user.email", message="must be unique"))
        try:
            self.accounts.ensure_unique_name(data.account.name)
        except ValidationError:
            errors.append(FieldError(name="account.name", message="must be unique"))
        if errors:
            raise ValidationError(errors)

    def execute(
        self,
        req: Union[SignupRequest, Mapping[str, Any]],
        now: Optional[datetime] = None,
    ) -> SignupResult:
        data = validate(SignupRequest, req)
        self._ensure_unique(data)

        now = truncate_ms(now)
        account_fields = data.account.model_dump()
        account_fields["status"] = data.account.status or AccountStatus.ACTIVE

        with self.tx.transaction():
            with _fields_under("user"):
                user = self.users.create(INTERNAL_CLAIMS, data.user, now)
            with _fields_under("account"):
                account = self.accounts.create(
                    INTERNAL_CLAIMS,
                    AccountCreateRequest(
                        **account_fields,
                        signup_user_id=user.id,
                        billing_user_id=user.id,
                    ),
                    now,
                )
            membership = self.memberships.add(
                INTERNAL_CLAIMS,
                MembershipCreateRequest(
                    user_id=user.id,
                    account_id=account.id,
                    roles=[MembershipRole.ADMIN],
                ),
                now,
            )

        logger.info(
            "Signup completed",
            extra={"user_id": str(user.id), "account_id": str(account.id)},
        )
        return SignupResult(account=account, user=user, membership=membership)
