from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from core.fields import UNSET


@dataclass(slots=True)
class Account:
    """Stored account. `password_hash` is a bcrypt hash, never plaintext."""

    id: str
    email: str
    password_hash: str
    role: str
    is_active: bool
    created_at: datetime
    updated_at: datetime


@dataclass(slots=True)
class AccountFilter:
    """
    AND-combined account predicate.

    Empty `ids`/`emails` mean no constraint on that column; `is_active=None`
    matches active and inactive accounts alike.
    """

    ids: list[str] = field(default_factory=list)
    emails: list[str] = field(default_factory=list)
    is_active: bool | None = None


@dataclass(slots=True)
class AccountUpdate:
    """Partial update. Fields left as UNSET keep their stored value."""

    id: str
    updated_at: datetime
    email: Any = UNSET
    password_hash: Any = UNSET
    role: Any = UNSET
    is_active: Any = UNSET
