"""
Name: Signing Key Store

Responsibilities:
  - Hold the current and recent RSA signing keys (kid -> private key)
  - Decide on construction (and on rotate) which versions survive, which one
    is current, and whether a fresh key must be minted
  - Publish key snapshots atomically so concurrent verifies never observe a
    half-built key set

Collaborators:
  - infrastructure/keys/*: KeySource backends (file, Secrets Manager, memory)
  - identity.authenticator: signs with current(), verifies with public(kid)

Constraints:
  - current() never fails on a constructed store
  - public(kid) is the only operation that raises UnknownKid
  - Keys older than disabled_after (2 x expiration) are never returned

Notes:
  - A snapshot is immutable; rotate() swaps a single reference. Readers that
    already hold the old snapshot keep verifying against it.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from types import MappingProxyType
from typing import Mapping, Optional, Protocol

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from ..crosscutting.exceptions import KeyStoreError, UnknownKid
from ..crosscutting.logger import logger
from ..domain.entities import truncate_ms

ALGORITHM = "RS256"
RSA_KEY_SIZE = 2048
RSA_PUBLIC_EXPONENT = 65537


@dataclass(frozen=True)
class KeyVersion:
    """A version listed by a KeySource (metadata only, no key material)."""

    kid: str
    created_at: datetime


@dataclass(frozen=True)
class SigningKey:
    kid: str
    private_key: rsa.RSAPrivateKey
    created_at: datetime

    @property
    def public_key(self) -> rsa.RSAPublicKey:
        return self.private_key.public_key()


class KeySource(Protocol):
    """
    Backend holding versioned PEM key material.

    rotates:
      False for sources that cannot persist new versions (a PEM on disk);
      their keys are never aged out and never replaced.
    """

    rotates: bool

    def list_versions(self) -> list[KeyVersion]: ...

    def load(self, kid: str) -> bytes: ...

    def store(self, pem: bytes, now: datetime) -> KeyVersion: ...


def generate_private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(
        public_exponent=RSA_PUBLIC_EXPONENT, key_size=RSA_KEY_SIZE
    )


def private_key_to_pem(key: rsa.RSAPrivateKey) -> bytes:
    """R: PKCS#1 ("BEGIN RSA PRIVATE KEY"), unencrypted."""
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    )


def load_private_key(pem: bytes, *, kid: str) -> rsa.RSAPrivateKey:
    try:
        key = serialization.load_pem_private_key(pem, password=None)
    except (ValueError, TypeError) as exc:
        raise KeyStoreError(f"Unreadable signing key material (kid={kid})") from exc
    if not isinstance(key, rsa.RSAPrivateKey):
        raise KeyStoreError(f"Signing key is not an RSA key (kid={kid})")
    return key


@dataclass(frozen=True)
class _KeySnapshot:
    current: SigningKey
    keys: Mapping[str, SigningKey]


class KeyStore:
    """
    R: Process-wide, read-mostly set of signing keys.

    Built from a KeySource with an `expiration`; `disabled_after` is always
    twice the expiration.
    """

    algorithm = ALGORITHM

    def __init__(
        self,
        source: KeySource,
        expiration: timedelta,
        *,
        now: Optional[datetime] = None,
    ) -> None:
        if expiration <= timedelta(0):
            raise KeyStoreError("Key expiration must be greater than 0")
        self._source = source
        self._expiration = expiration
        self._rotate_lock = threading.Lock()
        self._snapshot = self._build(truncate_ms(now))

    @property
    def expiration(self) -> timedelta:
        return self._expiration

    @property
    def disabled_after(self) -> timedelta:
        return self._expiration * 2

    # =========================================================
    # Read API
    # =========================================================
    def current(self) -> SigningKey:
        return self._snapshot.current

    def public(self, kid: str) -> rsa.RSAPublicKey:
        key = self._snapshot.keys.get(kid)
        if key is None:
            raise UnknownKid(f"Unknown signing key: {kid}")
        return key.public_key

    def keys(self) -> Mapping[str, SigningKey]:
        return self._snapshot.keys

    # =========================================================
    # Rotation
    # =========================================================
    def rotate(self, now: Optional[datetime] = None) -> SigningKey:
        """
        R: Re-run the construction algorithm against the source and publish
        the result as a new snapshot. Returns the (possibly new) current key.
        """
        with self._rotate_lock:
            snapshot = self._build(truncate_ms(now))
            self._snapshot = snapshot
        return snapshot.current

    def _build(self, now: datetime) -> _KeySnapshot:
        try:
            versions = self._source.list_versions()
        except KeyStoreError:
            raise
        except Exception as exc:
            logger.exception("KeyStore: listing key versions failed")
            raise KeyStoreError(f"Key source unreachable: {exc}") from exc

        if self._source.rotates:
            versions = [v for v in versions if now - v.created_at <= self.disabled_after]

        keys: dict[str, SigningKey] = {}
        for version in versions:
            pem = self._load(version.kid)
            keys[version.kid] = SigningKey(
                kid=version.kid,
                private_key=load_private_key(pem, kid=version.kid),
                created_at=version.created_at,
            )

        current = max(keys.values(), key=lambda k: k.created_at, default=None)

        if current is None and not self._source.rotates:
            raise KeyStoreError("Key source holds no signing key")

        if current is None or (
            self._source.rotates and now - current.created_at > self._expiration
        ):
            current = self._mint(now)
            keys[current.kid] = current

        logger.info(
            "KeyStore: snapshot published",
            extra={"current_kid": current.kid, "loaded_keys": len(keys)},
        )
        return _KeySnapshot(current=current, keys=MappingProxyType(keys))

    def _load(self, kid: str) -> bytes:
        try:
            return self._source.load(kid)
        except KeyStoreError:
            raise
        except Exception as exc:
            logger.exception("KeyStore: loading key failed", extra={"kid": kid})
            raise KeyStoreError(f"Key source unreachable: {exc}") from exc

    def _mint(self, now: datetime) -> SigningKey:
        private_key = generate_private_key()
        try:
            version = self._source.store(private_key_to_pem(private_key), now)
        except KeyStoreError:
            raise
        except Exception as exc:
            logger.exception("KeyStore: persisting new key failed")
            raise KeyStoreError(f"Key source unreachable: {exc}") from exc

        logger.info("KeyStore: minted signing key", extra={"kid": version.kid})
        return SigningKey(
            kid=version.kid, private_key=private_key, created_at=version.created_at
        )
