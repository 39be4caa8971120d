"""
Account API schemas (request/response models).
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from .models import Account


class AccountResponse(BaseModel):
    id: str
    email: str
    role: str
    is_active: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, account: Account) -> AccountResponse:
        return cls(
            id=account.id,
            email=account.email,
            role=account.role,
            is_active=account.is_active,
            created_at=account.created_at,
            updated_at=account.updated_at,
        )


class CreateAccountRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=1, max_length=512)
    role: str = Field(default="user", min_length=1, max_length=64)


class UpdateAccountRequest(BaseModel):
    """
    Only fields present in the request body are changed; `is_active: false` is applied.
    """

    email: str | None = Field(default=None, min_length=3, max_length=320)
    password: str | None = Field(default=None, min_length=1, max_length=512)
    role: str | None = Field(default=None, min_length=1, max_length=64)
    is_active: bool | None = None
