"""
Name: Password Reset Use Case

Responsibilities:
  - request: stamp a fresh reset id on the user and hand back a sealed,
    expiring reset hash (delivery is the caller's concern)
  - confirm: open the hash, check it is still the user's current reset id,
    then re-salt and re-hash the password (clears password_reset)

Constraints:
  - Unknown emails return None without any error so callers cannot enumerate
    which addresses exist
  - A bad, expired or superseded hash -> ValidationError on `reset_hash`
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, Mapping, Optional, Union
from uuid import UUID, uuid4

from ...crosscutting.exceptions import ValidationError
from ...crosscutting.logger import logger
from ...domain.entities import User, truncate_ms
from ...domain.repositories import UserRepository
from ...identity.claims import INTERNAL_CLAIMS
from ...identity.one_time import OneTimeHashCodec, OneTimeHashError
from ..services.users import UserService
from ..validation import PasswordResetConfirmRequest, PasswordResetRequest, validate


class PasswordResetUseCase:
    def __init__(
        self,
        users: UserRepository,
        user_service: UserService,
        codec: OneTimeHashCodec,
        ttl: timedelta,
    ) -> None:
        self.users = users
        self.user_service = user_service
        self.codec = codec
        self.ttl = ttl

    def request(
        self,
        email: Union[str, Mapping[str, Any]],
        ttl: Optional[timedelta] = None,
        now: Optional[datetime] = None,
    ) -> Optional[str]:
        payload = email if isinstance(email, Mapping) else {"email": email}
        data = validate(PasswordResetRequest, payload)

        user = self.users.get_by_email(data.email)
        if user is None:
            logger.info("Password reset requested for unknown email")
            return None

        now = truncate_ms(now)
        reset_id = uuid4().hex
        self.users.update(replace(user, password_reset=reset_id, updated_at=now))

        reset_hash = self.codec.seal(
            {"user_id": str(user.id), "reset_id": reset_id},
            now + (ttl or self.ttl),
        )
        logger.info("Password reset requested", extra={"user_id": str(user.id)})
        return reset_hash

    def confirm(
        self,
        req: Union[PasswordResetConfirmRequest, Mapping[str, Any]],
        now: Optional[datetime] = None,
    ) -> User:
        data = validate(PasswordResetConfirmRequest, req)
        invalid = ValidationError.single("reset_hash", "is invalid or expired")

        try:
            body = self.codec.open(data.reset_hash, now)
            user_id = UUID(str(body["user_id"]))
            reset_id = body["reset_id"]
        except (OneTimeHashError, KeyError, ValueError) as exc:
            raise invalid from exc

        user = self.users.get(INTERNAL_CLAIMS, user_id)
        if user is None or not user.password_reset or user.password_reset != reset_id:
            raise invalid

        return self.user_service.set_password(user, data.password, now)
