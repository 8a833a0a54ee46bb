"""
===============================================================================
SERVICE: Users
===============================================================================

Class:
    UserService

Responsibilities:
    - find / read / find_by_account scoped by the caller's Claims
    - create: structural validation, role gate, unique email, salted hash
    - update: partial update (only provided fields), self-or-admin gate
    - update_password: re-salt + re-hash, clears password_reset
    - archive / delete: cascade to memberships inside one transaction

Collaborators:
    - UserRepository, MembershipRepository, TransactionManager (ports)
    - identity.acl gates, identity.passwords
    - application.validation request models

Policy:
    - A user hidden by the ACL predicate is NotFound (never Forbidden)
    - Timestamps are UTC truncated to milliseconds
===============================================================================
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Any, List, Mapping, Optional, Union
from uuid import UUID, uuid4

from ...crosscutting.exceptions import FieldError, NotFoundError, ValidationError
from ...crosscutting.logger import logger
from ...domain.entities import DEFAULT_TIMEZONE, User, truncate_ms
from ...domain.repositories import (
    FindRequest,
    MembershipRepository,
    TransactionManager,
    UserRepository,
)
from ...identity import acl
from ...identity.claims import Claims
from ...identity.passwords import hash_password, new_salt
from ..validation import (
    UserCreateRequest,
    UserUpdatePasswordRequest,
    UserUpdateRequest,
    parse_id,
    validate,
)

Payload = Union[Mapping[str, Any], Any]


class UserService:
    def __init__(
        self,
        users: UserRepository,
        memberships: MembershipRepository,
        tx: TransactionManager,
    ) -> None:
        self._users = users
        self._memberships = memberships
        self._tx = tx

    # =========================================================
    # Reads
    # =========================================================
    def find(self, claims: Claims, req: Optional[FindRequest] = None) -> List[User]:
        return self._users.find(claims, req or FindRequest())

    def read(
        self, claims: Claims, user_id: Any, *, include_archived: bool = False
    ) -> User:
        uid = parse_id(user_id, "user_id")
        user = self._users.get(claims, uid, include_archived=include_archived)
        if user is None:
            raise NotFoundError(f"User {uid} not found")
        return user

    def find_by_account(
        self, claims: Claims, account_id: Any, *, include_archived: bool = False
    ) -> List[User]:
        aid = parse_id(account_id, "account_id")
        return self._users.list_by_account(claims, aid, include_archived=include_archived)

    # =========================================================
    # Writes
    # =========================================================
    def ensure_unique_email(self, email: str, *, exclude_id: Optional[UUID] = None) -> None:
        if self._users.email_taken(email, exclude_id=exclude_id):
            raise ValidationError([FieldError(name="email", message="must be unique")])

    def create(self, claims: Claims, req: Payload, now: Optional[datetime] = None) -> User:
        data = validate(UserCreateRequest, req)
        acl.ensure_can_create_user(claims)
        self.ensure_unique_email(data.email)

        now = truncate_ms(now)
        salt = new_salt()
        user = User(
            id=uuid4(),
            name=data.name,
            email=data.email,
            password_salt=salt,
            password_hash=hash_password(data.password, salt),
            timezone=data.timezone or DEFAULT_TIMEZONE,
            created_at=now,
            updated_at=now,
        )
        created = self._users.insert(user)
        logger.info("User created", extra={"user_id": str(created.id)})
        return created

    def create_invited(self, email: str, now: Optional[datetime] = None) -> User:
        """
        R: Placeholder user for an invitation: no usable password until the
        invite is accepted. `email` was validated by the invite request.
        """
        self.ensure_unique_email(email)
        now = truncate_ms(now)
        user = User(
            id=uuid4(),
            name=email.split("@", 1)[0],
            email=email,
            password_salt="",
            password_hash="",
            created_at=now,
            updated_at=now,
        )
        created = self._users.insert(user)
        logger.info("Invited user created", extra={"user_id": str(created.id)})
        return created

    def update(self, claims: Claims, req: Payload, now: Optional[datetime] = None) -> User:
        data = validate(UserUpdateRequest, req)
        current = self.read(claims, data.id)
        acl.ensure_can_modify_user(claims, current.id)

        if data.email is not None and data.email != current.email:
            self.ensure_unique_email(data.email, exclude_id=current.id)

        changes = data.model_dump(exclude={"id"}, exclude_none=True)
        if not changes:
            return current

        updated = replace(current, **changes, updated_at=truncate_ms(now))
        return self._users.update(updated)

    def update_password(
        self, claims: Claims, req: Payload, now: Optional[datetime] = None
    ) -> User:
        data = validate(UserUpdatePasswordRequest, req)
        current = self.read(claims, data.id)
        acl.ensure_can_modify_user(claims, current.id)
        return self.set_password(current, data.password, now)

    def set_password(self, user: User, password: str, now: Optional[datetime] = None) -> User:
        """R: Re-salt and re-hash; used after the caller has been authorized."""
        salt = new_salt()
        updated = replace(
            user,
            password_salt=salt,
            password_hash=hash_password(password, salt),
            password_reset=None,
            updated_at=truncate_ms(now),
        )
        saved = self._users.update(updated)
        logger.info("User password updated", extra={"user_id": str(user.id)})
        return saved

    def archive(self, claims: Claims, user_id: Any, now: Optional[datetime] = None) -> None:
        current = self.read(claims, user_id)
        acl.ensure_can_modify_user(claims, current.id)

        now = truncate_ms(now)
        with self._tx.transaction():
            self._users.archive(current.id, now)
            self._memberships.archive_by_user(current.id, now)
        logger.info("User archived", extra={"user_id": str(current.id)})

    def delete(self, claims: Claims, user_id: Any) -> None:
        current = self.read(claims, user_id, include_archived=True)
        acl.ensure_can_modify_user(claims, current.id)

        with self._tx.transaction():
            self._memberships.delete_by_user(current.id)
            self._users.delete(current.id)
        logger.info("User deleted", extra={"user_id": str(current.id)})
