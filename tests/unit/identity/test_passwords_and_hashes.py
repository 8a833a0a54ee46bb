"""
Name: Password Hashing and One-Time Hash Tests
"""

from datetime import timedelta

import pytest
from cryptography.fernet import Fernet

from saas_starter.identity.one_time import OneTimeHashCodec, OneTimeHashError
from saas_starter.identity.passwords import hash_password, new_salt, verify_password

pytestmark = pytest.mark.unit


class TestPasswords:
    def test_verify_accepts_matching_password(self):
        salt = new_salt()
        hashed = hash_password("correct horse", salt)
        assert verify_password("correct horse", salt, hashed) is True

    def test_verify_rejects_wrong_password_or_salt(self):
        salt = new_salt()
        hashed = hash_password("correct horse", salt)
        assert verify_password("battery staple", salt, hashed) is False
        assert verify_password("correct horse", new_salt(), hashed) is False

    def test_garbage_hash_is_a_mismatch_not_an_error(self):
        assert verify_password("x", new_salt(), "not-an-argon2-hash") is False

    def test_same_password_hashes_differently_per_salt(self):
        assert hash_password("pw", new_salt()) != hash_password("pw", new_salt())


class TestOneTimeHashCodec:
    def test_seal_and_open(self, codec, now):
        token = codec.seal({"user_id": "u1"}, now + timedelta(hours=1))
        assert codec.open(token, now) == {"user_id": "u1"}

    def test_expired_hash_is_rejected(self, codec, now):
        token = codec.seal({"user_id": "u1"}, now + timedelta(minutes=5))
        with pytest.raises(OneTimeHashError):
            codec.open(token, now + timedelta(minutes=6))

    def test_hash_from_another_secret_is_rejected(self, codec, now):
        other = OneTimeHashCodec(Fernet.generate_key())
        token = other.seal({"user_id": "u1"}, now + timedelta(hours=1))
        with pytest.raises(OneTimeHashError):
            codec.open(token, now)

    def test_garbage_is_rejected(self, codec, now):
        with pytest.raises(OneTimeHashError):
            codec.open("definitely-not-fernet", now)

    def test_invalid_secret_is_a_value_error(self):
        with pytest.raises(ValueError):
            OneTimeHashCodec("short")
