"""
Auth security helpers: password policy, bcrypt hashing, one-time token hashing.
"""

from __future__ import annotations

import hashlib
import secrets

import bcrypt

from core.errors import InvalidPassword

MIN_PASSWORD_BYTES = 8
# bcrypt only looks at the first 72 bytes and newer releases reject longer input.
MAX_PASSWORD_BYTES = 72

SECRET_MARKER = "<!SECRET_REDACTED!>"


class Password:
    """
    A plaintext password that passed the length policy.

    The plaintext never shows up in repr/str, so a Password can travel through
    logging and tracebacks safely.
    """

    __slots__ = ("_plain",)

    def __init__(self, plain: bytes) -> None:
        self._plain = plain

    @classmethod
    def parse(cls, raw: str) -> Password:
        plain = (raw or "").encode("utf-8")
        if len(plain) < MIN_PASSWORD_BYTES or len(plain) > MAX_PASSWORD_BYTES:
            raise InvalidPassword(
                f"password must be between {MIN_PASSWORD_BYTES} and {MAX_PASSWORD_BYTES} bytes"
            )
        return cls(plain)

    def hash(self) -> str:
        return bcrypt.hashpw(self._plain, bcrypt.gensalt()).decode("utf-8")

    def __repr__(self) -> str:
        return SECRET_MARKER

    __str__ = __repr__


def match_password(password_hash: str, plain_password: str) -> bool:
    password = (plain_password or "").encode("utf-8")
    hashed = (password_hash or "").encode("utf-8")
    if not password or not hashed:
        return False
    try:
        return bcrypt.checkpw(password, hashed)
    except ValueError:
        return False


def generate_email_token() -> str:
    # URL-safe random string for delivery by mail.
    return secrets.token_urlsafe(32)


def hash_email_token(raw_token: str) -> str:
    token = (raw_token or "").encode("utf-8")
    if not token:
        raise ValueError("Email token is empty.")
    return hashlib.sha256(token).hexdigest()


def email_token_matches(token_hash: str, raw_token: str) -> bool:
    if not raw_token:
        return False
    return secrets.compare_digest(token_hash, hash_email_token(raw_token))
