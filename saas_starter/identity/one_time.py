"""
Name: One-time hashes (password reset, invitations)

Responsibilities:
  - Seal a small JSON payload with Fernet (authenticated encryption)
  - Embed an expiry instant and enforce it against a caller-supplied `now`

Notes:
  - The secret is a Fernet key (32 url-safe base64 bytes)
  - Failures collapse into OneTimeHashError; callers map it to a field error
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

from cryptography.fernet import Fernet, InvalidToken

from ..domain.entities import truncate_ms

EXPIRES_KEY = "exp"


class OneTimeHashError(Exception):
    """Hash is malformed, tampered with or expired."""


class OneTimeHashCodec:
    def __init__(self, secret: str | bytes) -> None:
        try:
            self._fernet = Fernet(secret)
        except (ValueError, TypeError) as exc:
            raise ValueError("one_time_secret must be a valid Fernet key") from exc

    def seal(self, payload: dict[str, Any], expires_at: datetime) -> str:
        body = {**payload, EXPIRES_KEY: int(truncate_ms(expires_at).timestamp())}
        return self._fernet.encrypt(json.dumps(body).encode("utf-8")).decode("ascii")

    def open(self, token: str, now: datetime | None = None) -> dict[str, Any]:
        try:
            raw = self._fernet.decrypt(token.encode("ascii"))
            body = json.loads(raw)
        except (InvalidToken, UnicodeError, ValueError) as exc:
            raise OneTimeHashError("invalid hash") from exc

        if not isinstance(body, dict) or not isinstance(body.get(EXPIRES_KEY), int):
            raise OneTimeHashError("invalid hash")

        expires_at = datetime.fromtimestamp(body.pop(EXPIRES_KEY), tz=timezone.utc)
        if expires_at <= truncate_ms(now):
            raise OneTimeHashError("expired hash")
        return body
