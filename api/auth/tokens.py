"""
Access token issuing and verification (JWT, HS256).
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol

import jwt

from core.errors import InvalidToken

# Fixed on both ends: tokens signed with anything else (including "none") are rejected.
ALGORITHM = "HS256"
REQUIRED_CLAIMS = ("id", "email", "role")


class Identity(Protocol):
    id: str
    email: str
    role: str


@dataclass(frozen=True, slots=True)
class Claims:
    id: str
    email: str
    role: str
    issued_at: datetime
    expires_at: datetime


class TokenManager:
    """
    Issues and verifies signed identity claims.

    Built once at startup from settings; holds no mutable state.
    """

    def __init__(
        self,
        secret_key: str,
        token_duration: timedelta,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not secret_key:
            raise ValueError("secret_key must not be empty")
        if token_duration <= timedelta(0):
            raise ValueError("token_duration must be positive")
        self._secret_key = secret_key
        self._token_duration = token_duration
        self._clock = clock

    @property
    def token_duration(self) -> timedelta:
        return self._token_duration

    def issue(self, identity: Identity) -> str:
        issued_at = int(self._clock())
        expires_at = issued_at + int(self._token_duration.total_seconds())

        payload: dict[str, Any] = {
            "id": identity.id,
            "email": identity.email,
            "role": identity.role,
            "iat": issued_at,
            "exp": expires_at,
        }
        return jwt.encode(payload, self._secret_key, algorithm=ALGORITHM)

    def verify(self, token: str) -> Claims:
        raw = (token or "").strip()
        if not raw:
            raise InvalidToken("Access token is empty.")

        try:
            payload = jwt.decode(
                raw,
                self._secret_key,
                algorithms=[ALGORITHM],
                options={"require": ["exp", "iat"]},
            )
        except jwt.InvalidTokenError as exc:
            raise InvalidToken(f"Invalid access token: {exc}") from exc

        for name in REQUIRED_CLAIMS:
            if not isinstance(payload.get(name), str):
                raise InvalidToken(f"Access token claim {name!r} is missing.")

        return Claims(
            id=payload["id"],
            email=payload["email"],
            role=payload["role"],
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )
