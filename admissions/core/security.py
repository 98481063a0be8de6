"""
Password and token hashing helpers.

Passwords are stored as bcrypt hashes; bearer and reset tokens are random
strings stored only as their SHA-256 digest.
"""

import hashlib
import secrets

import bcrypt

from admissions.config import settings

# bcrypt only reads the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    hashed = bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt(rounds=settings.bcrypt_rounds))
    return hashed.decode("ascii")


def verify_password(password: str, password_hash: str) -> bool:
    """False for a wrong password and for stored values that are not bcrypt hashes"""
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("ascii"))
    except (ValueError, UnicodeEncodeError):
        return False


def generate_token() -> str:
    return secrets.token_urlsafe(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()
