"""
Name: Bearer Token Authenticator Tests

Responsibilities:
  - Round-trip issue/verify (whole-second timestamps)
  - Reject foreign algorithms, unknown/missing kid, expiry and tampering
  - Keep verifying tokens signed by a rotated-out-but-not-disabled key
"""

from datetime import timedelta
from uuid import uuid4

import jwt
import pytest

from saas_starter.crosscutting.exceptions import AuthenticationFailure, InvalidToken
from saas_starter.domain.entities import MembershipRole
from saas_starter.identity.authenticator import Authenticator
from saas_starter.identity.claims import INTERNAL_CLAIMS, new_claims
from saas_starter.identity.keystore import KeyStore, generate_private_key

pytestmark = pytest.mark.unit

TTL = timedelta(hours=1)


def _claims(now, **overrides):
    account = uuid4()
    values = dict(
        subject=uuid4(),
        audience=account,
        account_ids=[account, uuid4()],
        roles=[MembershipRole.ADMIN, MembershipRole.USER],
        now=now,
        ttl=TTL,
        timezone="America/Anchorage",
    )
    values.update(overrides)
    return new_claims(**values)


def test_round_trip_preserves_claims(authenticator, now):
    claims = _claims(now)
    verified = authenticator.verify(authenticator.issue(claims), now)

    assert verified.subject == claims.subject
    assert verified.audience == claims.audience
    assert verified.account_ids == claims.account_ids
    assert verified.roles == claims.roles
    assert verified.timezone == "America/Anchorage"
    assert verified.issued_at == claims.issued_at.replace(microsecond=0)
    assert verified.expires_at == claims.expires_at.replace(microsecond=0)
    assert not verified.is_impersonating


def test_root_ids_survive_the_round_trip(authenticator, now):
    root_user, root_account = uuid4(), uuid4()
    claims = _claims(now, root_subject=root_user, root_audience=root_account)

    verified = authenticator.verify(authenticator.issue(claims), now)

    assert verified.root_subject == root_user
    assert verified.root_audience == root_account
    assert verified.is_impersonating


def test_header_carries_current_kid(authenticator, key_store, now):
    token = authenticator.issue(_claims(now))
    header = jwt.get_unverified_header(token)
    assert header["kid"] == key_store.current().kid
    assert header["alg"] == "RS256"


def test_expired_token_is_rejected(authenticator, now):
    token = authenticator.issue(_claims(now))
    with pytest.raises(InvalidToken):
        authenticator.verify(token, now + TTL + timedelta(seconds=1))


def test_tampered_payload_is_rejected(authenticator, now):
    header, payload, signature = authenticator.issue(_claims(now)).split(".")
    other = authenticator.issue(_claims(now)).split(".")[1]
    with pytest.raises(InvalidToken):
        authenticator.verify(".".join([header, other, signature]), now)


def test_foreign_algorithm_is_rejected(authenticator, key_store, now):
    token = jwt.encode(
        {"sub": str(uuid4()), "aud": str(uuid4()), "iat": 0, "exp": 9999999999},
        "secret",
        algorithm="HS256",
        headers={"kid": key_store.current().kid},
    )
    with pytest.raises(InvalidToken):
        authenticator.verify(token, now)


def test_unknown_kid_is_rejected(authenticator, now):
    token = jwt.encode(
        {"sub": str(uuid4()), "aud": str(uuid4()), "iat": 0, "exp": 9999999999},
        generate_private_key(),
        algorithm="RS256",
        headers={"kid": "nope"},
    )
    with pytest.raises(InvalidToken):
        authenticator.verify(token, now)


def test_missing_kid_is_rejected(authenticator, key_store, now):
    token = jwt.encode(
        {"sub": str(uuid4()), "aud": str(uuid4()), "iat": 0, "exp": 9999999999},
        key_store.current().private_key,
        algorithm="RS256",
    )
    with pytest.raises(InvalidToken):
        authenticator.verify(token, now)


@pytest.mark.parametrize("token", ["", "garbage", "a.b.c"])
def test_malformed_tokens_are_rejected(authenticator, now, token):
    with pytest.raises(InvalidToken):
        authenticator.verify(token, now)


def test_internal_claims_cannot_be_issued(authenticator):
    with pytest.raises(AuthenticationFailure):
        authenticator.issue(INTERNAL_CLAIMS)


def test_rotated_key_still_verifies_until_disabled(key_source, now):
    expiration = timedelta(days=1)
    store = KeyStore(key_source, expiration, now=now)
    authenticator = Authenticator(store)
    long_ttl = timedelta(days=5)
    old_token = authenticator.issue(_claims(now, ttl=long_ttl))

    store.rotate(now + expiration + timedelta(minutes=1))
    assert authenticator.verify(old_token, now + timedelta(days=1, minutes=2))

    store.rotate(now + 2 * expiration + timedelta(minutes=1))
    with pytest.raises(InvalidToken):
        authenticator.verify(old_token, now + timedelta(days=2, minutes=2))
