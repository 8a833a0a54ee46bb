"""
===============================================================================
CRC CARD — infrastructure/keys/secrets_manager_source.py
===============================================================================

Class:
  SecretsManagerKeySource (Adapter)

Responsibilities:
  - Keep signing keys as versioned binary secret material in AWS Secrets
    Manager; the VersionId is the kid
  - Create the secret on the first mint, update it afterwards
  - Hide boto3/botocore: SDK errors never leak (-> KeyStoreError)
  - Retry transient SDK failures (throttling, 5xx) before giving up

Collaborators:
  - identity.keystore.KeyStore (consumer)
  - boto3 / botocore (SDK, lazy import, client injectable for tests)
  - infrastructure/retry.py (tenacity backoff, injectable for tests)
===============================================================================
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Optional

from ...crosscutting.exceptions import KeyStoreError
from ...crosscutting.logger import logger
from ...domain.entities import truncate_ms
from ...identity.keystore import KeyVersion
from ..retry import create_retry_decorator

_NOT_FOUND = "ResourceNotFoundException"


def _error_code(exc: Exception) -> str:
    response = getattr(exc, "response", None) or {}
    return str(response.get("Error", {}).get("Code", ""))


def _as_utc(value: Optional[datetime]) -> datetime:
    if value is None:
        return datetime.fromtimestamp(0, tz=timezone.utc)
    return truncate_ms(value)


class SecretsManagerKeySource:
    rotates = True

    def __init__(
        self,
        secret_id: str,
        *,
        region: str = "",
        client=None,
        retrying: Optional[Callable] = None,
    ) -> None:
        self._secret_id = (secret_id or "").strip()
        if not self._secret_id:
            raise KeyStoreError("Secrets Manager secret id is required")

        # R: creation vs update decided by the last listing
        self._secret_exists = True
        self._retrying = retrying or create_retry_decorator()

        if client is not None:
            self._client = client
            return

        try:
            import boto3
        except Exception as exc:
            raise KeyStoreError("boto3 is not installed") from exc

        self._client = boto3.client("secretsmanager", region_name=region or None)

    def list_versions(self) -> list[KeyVersion]:
        from botocore.exceptions import BotoCoreError, ClientError

        def list_secret_version_ids() -> list[KeyVersion]:
            found: list[KeyVersion] = []
            paginator = self._client.get_paginator("list_secret_version_ids")
            for page in paginator.paginate(SecretId=self._secret_id):
                for v in page.get("Versions", []):
                    if not v.get("VersionId"):
                        continue
                    found.append(
                        KeyVersion(
                            kid=v["VersionId"], created_at=_as_utc(v.get("CreatedDate"))
                        )
                    )
            return found

        try:
            versions = self._retrying(list_secret_version_ids)()
        except (BotoCoreError, ClientError) as exc:
            if _error_code(exc) == _NOT_FOUND:
                logger.info(
                    "SecretsManagerKeySource: secret not found, will be created",
                    extra={"secret_id": self._secret_id},
                )
                self._secret_exists = False
                return []
            raise KeyStoreError(
                f"Listing versions of secret {self._secret_id} failed"
            ) from exc

        self._secret_exists = True
        return versions

    def load(self, kid: str) -> bytes:
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            res = self._retrying(self._client.get_secret_value)(
                SecretId=self._secret_id, VersionId=kid
            )
        except (BotoCoreError, ClientError) as exc:
            raise KeyStoreError(
                f"Reading secret {self._secret_id} version {kid} failed"
            ) from exc

        material = res.get("SecretBinary") or res.get("SecretString") or b""
        if isinstance(material, str):
            material = material.encode("utf-8")
        if not material:
            raise KeyStoreError(f"Secret version {kid} holds no key material")
        return material

    def store(self, pem: bytes, now: datetime) -> KeyVersion:
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            if self._secret_exists:
                res = self._retrying(self._client.update_secret)(
                    SecretId=self._secret_id, SecretBinary=pem
                )
            else:
                res = self._retrying(self._client.create_secret)(
                    Name=self._secret_id, SecretBinary=pem
                )
        except (BotoCoreError, ClientError) as exc:
            raise KeyStoreError(
                f"Persisting new key to secret {self._secret_id} failed"
            ) from exc

        self._secret_exists = True
        return KeyVersion(kid=res["VersionId"], created_at=truncate_ms(now))
