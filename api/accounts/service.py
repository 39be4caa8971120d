"""
Account business logic.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from auth.security import Password
from core.errors import NotFound
from core.ids import new_id
from store.unit_of_work import Store

from .models import Account, AccountFilter, AccountUpdate
from .repository import normalize_email


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AccountService:
    def __init__(self, store: Store, *, now: Callable[[], datetime] = _utc_now) -> None:
        self._store = store
        self._now = now

    async def list_accounts(self, account_filter: AccountFilter | None = None) -> list[Account]:
        return await self._store.find_accounts(account_filter or AccountFilter())

    async def get_account(self, account_id: str) -> Account:
        accounts = await self._store.find_accounts(AccountFilter(ids=[account_id]))
        if not accounts:
            raise NotFound(f"account not found: {account_id}")
        return accounts[0]

    async def create_account(self, *, email: str, password: str, role: str) -> Account:
        password_hash = Password.parse(password).hash()
        now = self._now()
        account = Account(
            id=new_id(),
            email=normalize_email(email),
            password_hash=password_hash,
            role=role,
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        async with self._store.unit_of_work() as tx:
            await tx.create_account(account)
        return account

    async def update_account(self, account_id: str, changes: dict[str, Any]) -> Account:
        """
        Apply `changes` (only the keys the caller sent) and return the stored account.
        """
        changes = dict(changes)
        if "password" in changes:
            changes["password_hash"] = Password.parse(changes.pop("password")).hash()
        if "email" in changes:
            changes["email"] = normalize_email(changes["email"])

        update = AccountUpdate(id=account_id, updated_at=self._now(), **changes)
        async with self._store.unit_of_work() as tx:
            await tx.update_account(update)
            accounts = await tx.find_accounts(AccountFilter(ids=[account_id]))
        return accounts[0]

    async def delete_account(self, account_id: str) -> None:
        async with self._store.unit_of_work() as tx:
            await tx.delete_account(account_id)
