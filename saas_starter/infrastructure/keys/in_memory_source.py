"""
R: In-memory KeySource (tests / local dev).

Versions are kept in insertion order; created_at is whatever `store` (or
`seed`) received, so tests can fabricate old keys.
"""

from __future__ import annotations

from datetime import datetime
from threading import Lock
from uuid import uuid4

from ...crosscutting.exceptions import KeyStoreError
from ...domain.entities import truncate_ms
from ...identity.keystore import KeyVersion


class InMemoryKeySource:
    rotates = True

    def __init__(self) -> None:
        self._lock = Lock()
        self._versions: dict[str, tuple[bytes, datetime]] = {}

    def list_versions(self) -> list[KeyVersion]:
        with self._lock:
            return [
                KeyVersion(kid=kid, created_at=created_at)
                for kid, (_, created_at) in self._versions.items()
            ]

    def load(self, kid: str) -> bytes:
        with self._lock:
            entry = self._versions.get(kid)
        if entry is None:
            raise KeyStoreError(f"Unknown key version: {kid}")
        return entry[0]

    def store(self, pem: bytes, now: datetime) -> KeyVersion:
        return self.seed(pem, now)

    def seed(self, pem: bytes, created_at: datetime) -> KeyVersion:
        kid = uuid4().hex
        created_at = truncate_ms(created_at)
        with self._lock:
            self._versions[kid] = (pem, created_at)
        return KeyVersion(kid=kid, created_at=created_at)
