from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from core.fields import UNSET


class TokenPurpose(str, Enum):
    ACTIVATE = "activate"
    PASSWORD_RESET = "password_reset"


@dataclass(slots=True)
class EmailToken:
    """
    One-time token delivered by mail. Only the SHA-256 of the raw token is stored.
    """

    id: str
    token_hash: str
    account_id: str
    email: str
    purpose: TokenPurpose
    created_at: datetime
    consumed_at: datetime | None = None


@dataclass(slots=True)
class EmailTokenFilter:
    ids: list[str] = field(default_factory=list)


@dataclass(slots=True)
class EmailTokenUpdate:
    id: str
    consumed_at: Any = UNSET
