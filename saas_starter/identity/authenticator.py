"""
Name: Bearer Token Authenticator (RS256)

Responsibilities:
  - Sign Claims into a compact JWT whose header carries the signing kid
  - Verify tokens against the KeyStore snapshot and rebuild Claims
  - Reject every malformed/expired/foreign token with a single error kind

Collaborators:
  - identity.keystore.KeyStore: current() for signing, public(kid) for verify
  - identity.claims.Claims
  - PyJWT (jwt) + cryptography keys

Constraints:
  - Algorithm fixed at construction (RS256); any other alg is rejected
  - verify() never raises anything but InvalidToken
  - Tokens carry whole seconds; iat/exp are truncated on round-trip
  - root_sub / root_aud are present only on impersonated sessions
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID

import jwt

from ..crosscutting.exceptions import AuthenticationFailure, InvalidToken, UnknownKid
from ..domain.entities import MembershipRole, truncate_ms
from .claims import Claims
from .keystore import KeyStore

CLAIM_SUB = "sub"
CLAIM_AUD = "aud"
CLAIM_ACC = "acc"
CLAIM_ROLES = "roles"
CLAIM_IAT = "iat"
CLAIM_EXP = "exp"
CLAIM_TZ = "tz"
CLAIM_ROOT_SUB = "root_sub"
CLAIM_ROOT_AUD = "root_aud"

_REQUIRED_CLAIMS = [CLAIM_SUB, CLAIM_AUD, CLAIM_IAT, CLAIM_EXP]


def _epoch(value: datetime) -> int:
    return int(value.timestamp())


def _from_epoch(value: Any) -> datetime:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidToken("Invalid token timestamps")
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


def _parse_uuid(value: Any, name: str) -> UUID:
    try:
        return UUID(str(value))
    except (TypeError, ValueError) as exc:
        raise InvalidToken(f"Invalid token claim: {name}") from exc


class Authenticator:
    """R: Issues and verifies bearer tokens bound to a KeyStore."""

    def __init__(self, key_store: KeyStore, *, algorithm: Optional[str] = None) -> None:
        self._keys = key_store
        self._algorithm = algorithm or key_store.algorithm

    @property
    def algorithm(self) -> str:
        return self._algorithm

    def issue(self, claims: Claims) -> str:
        if not claims.has_auth:
            raise AuthenticationFailure("Token requires a subject and an audience")
        if claims.issued_at is None or claims.expires_at is None:
            raise AuthenticationFailure("Token requires issued_at and expires_at")

        key = self._keys.current()
        payload: dict[str, Any] = {
            CLAIM_SUB: str(claims.subject),
            CLAIM_AUD: str(claims.audience),
            CLAIM_ACC: [str(a) for a in claims.account_ids],
            CLAIM_ROLES: [r.value for r in claims.roles],
            CLAIM_IAT: _epoch(claims.issued_at),
            CLAIM_EXP: _epoch(claims.expires_at),
        }
        if claims.timezone:
            payload[CLAIM_TZ] = claims.timezone
        if claims.root_subject is not None:
            payload[CLAIM_ROOT_SUB] = str(claims.root_subject)
        if claims.root_audience is not None:
            payload[CLAIM_ROOT_AUD] = str(claims.root_audience)

        return jwt.encode(
            payload,
            key.private_key,
            algorithm=self._algorithm,
            headers={"kid": key.kid},
        )

    def verify(self, token: str, now: Optional[datetime] = None) -> Claims:
        """
        R: Verify a compact token and return its Claims.

        Expiry is checked against `now` (defaults to the wall clock) so
        callers and tests control time explicitly.
        """
        if not token or not isinstance(token, str):
            raise InvalidToken("Missing token")

        try:
            header = jwt.get_unverified_header(token)
        except jwt.InvalidTokenError as exc:
            raise InvalidToken("Malformed token") from exc

        if header.get("alg") != self._algorithm:
            raise InvalidToken("Unexpected signing algorithm")

        kid = header.get("kid")
        if not isinstance(kid, str) or not kid:
            raise InvalidToken("Missing or invalid kid")

        try:
            public_key = self._keys.public(kid)
        except UnknownKid as exc:
            raise InvalidToken("Unknown signing key") from exc

        try:
            payload = jwt.decode(
                token,
                public_key,
                algorithms=[self._algorithm],
                options={
                    "require": _REQUIRED_CLAIMS,
                    "verify_aud": False,
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                },
            )
        except jwt.InvalidTokenError as exc:
            raise InvalidToken("Token verification failed") from exc

        expires_at = _from_epoch(payload[CLAIM_EXP])
        if expires_at <= truncate_ms(now):
            raise InvalidToken("Token expired")

        return self._claims_from_payload(payload, expires_at)

    @staticmethod
    def _claims_from_payload(payload: dict[str, Any], expires_at: datetime) -> Claims:
        account_ids = payload.get(CLAIM_ACC) or []
        roles = payload.get(CLAIM_ROLES) or []
        if not isinstance(account_ids, list) or not isinstance(roles, list):
            raise InvalidToken("Invalid token claims")

        try:
            parsed_roles = tuple(MembershipRole(r) for r in roles)
        except ValueError as exc:
            raise InvalidToken("Invalid token claim: roles") from exc

        tz = payload.get(CLAIM_TZ)
        root_sub = payload.get(CLAIM_ROOT_SUB)
        root_aud = payload.get(CLAIM_ROOT_AUD)
        return Claims(
            subject=_parse_uuid(payload[CLAIM_SUB], CLAIM_SUB),
            audience=_parse_uuid(payload[CLAIM_AUD], CLAIM_AUD),
            account_ids=tuple(_parse_uuid(a, CLAIM_ACC) for a in account_ids),
            roles=parsed_roles,
            issued_at=_from_epoch(payload[CLAIM_IAT]),
            expires_at=expires_at,
            timezone=tz if isinstance(tz, str) and tz else None,
            root_subject=None if root_sub is None else _parse_uuid(root_sub, CLAIM_ROOT_SUB),
            root_audience=None if root_aud is None else _parse_uuid(root_aud, CLAIM_ROOT_AUD),
        )
