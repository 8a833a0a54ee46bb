"""
Name: Password Hashing (Argon2)

Responsibilities:
  - Generate a fresh salt per password
  - Hash password || salt with an adaptive function
  - Verify with a constant-time compare

Notes:
  - argon2 embeds its own salt in the hash; the separate salt column is kept
    so stored rows stay compatible with the users table layout
"""

from __future__ import annotations

from uuid import uuid4

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

_password_hasher = PasswordHasher()


def new_salt() -> str:
    return str(uuid4())


def hash_password(password: str, salt: str) -> str:
    """Hashea password + salt usando Argon2."""
    return _password_hasher.hash(password + salt)


def verify_password(password: str, salt: str, password_hash: str) -> bool:
    """Verifica password + salt vs hash almacenado."""
    try:
        return _password_hasher.verify(password_hash, password + salt)
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False
