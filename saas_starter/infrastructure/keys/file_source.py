"""
===============================================================================
CRC CARD — infrastructure/keys/file_source.py
===============================================================================

Component:
  FileKeySource (single PEM on disk)

Responsibilities:
  - Read one RSA private key from a PEM file at construction (fail-fast)
  - Derive a stable kid from the file contents (SHA-256 prefix)

Notes:
  - Never rotated: the KeyStore does not age out or replace this key
===============================================================================
"""

from __future__ import annotations

import hashlib
import os
from datetime import datetime, timezone

from ...crosscutting.exceptions import KeyStoreError
from ...identity.keystore import KeyVersion

KID_LENGTH = 16


class FileKeySource:
    rotates = False

    def __init__(self, path: str) -> None:
        if not (path or "").strip():
            raise KeyStoreError("Key file path is required")
        try:
            with open(path, "rb") as fh:
                self._pem = fh.read()
            mtime = os.path.getmtime(path)
        except OSError as exc:
            raise KeyStoreError(f"Key file unreadable: {path}") from exc

        self._kid = hashlib.sha256(self._pem).hexdigest()[:KID_LENGTH]
        self._created_at = datetime.fromtimestamp(mtime, tz=timezone.utc)

    @property
    def kid(self) -> str:
        return self._kid

    def list_versions(self) -> list[KeyVersion]:
        return [KeyVersion(kid=self._kid, created_at=self._created_at)]

    def load(self, kid: str) -> bytes:
        if kid != self._kid:
            raise KeyStoreError(f"Unknown key version: {kid}")
        return self._pem

    def store(self, pem: bytes, now: datetime) -> KeyVersion:
        raise KeyStoreError("File key source is read-only")
