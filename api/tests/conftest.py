"""
Shared fakes.

- `FakeExecutor` records every statement and returns canned results, so SQL
  construction can be checked without a database.
- `FakePool` / `FakeConnection` stand in for asyncpg when exercising `Store`.
- `MemoryStore` is an in-memory `Store` with the same error behavior, used by
  service and HTTP tests.
"""

from __future__ import annotations

import asyncio
import copy
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any

import pytest

from accounts.models import Account, AccountFilter, AccountUpdate
from auth.models import EmailToken, EmailTokenFilter, EmailTokenUpdate
from core.errors import AlreadyExists, NotFound
from core.fields import present_fields
from listings.models import Listing, ListingFilter, ListingUpdate

FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@dataclass
class Call:
    kind: str
    sql: str
    args: tuple[Any, ...]
    timeout: float | None


class FakeExecutor:
    def __init__(self, *, rows: list[dict[str, Any]] | None = None, affected: int = 1, error: Exception | None = None):
        self.rows = rows or []
        self.affected = affected
        self.error = error
        self.calls: list[Call] = []

    @property
    def last(self) -> Call:
        return self.calls[-1]

    async def execute(self, sql: str, *args: Any, timeout: float | None = None) -> int:
        self.calls.append(Call("execute", sql, args, timeout))
        if self.error is not None:
            raise self.error
        return self.affected

    async def query(self, sql: str, *args: Any, timeout: float | None = None) -> list[dict[str, Any]]:
        self.calls.append(Call("query", sql, args, timeout))
        if self.error is not None:
            raise self.error
        return list(self.rows)


class FakeTransaction:
    def __init__(self, conn: FakeConnection) -> None:
        self._conn = conn

    async def start(self) -> None:
        self._conn.events.append("begin")
        if self._conn.fail_begin:
            raise ConnectionError("begin failed")

    async def commit(self) -> None:
        self._conn.events.append("commit")

    async def rollback(self) -> None:
        self._conn.events.append("rollback")


class FakeConnection:
    def __init__(self, *, status: str = "UPDATE 1", rows: list[dict[str, Any]] | None = None) -> None:
        self.status = status
        self.rows = rows or []
        self.fail_begin = False
        self.events: list[str] = []
        self.statements: list[tuple[str, tuple[Any, ...], float | None]] = []

    def transaction(self) -> FakeTransaction:
        return FakeTransaction(self)

    async def execute(self, sql: str, *args: Any, timeout: float | None = None) -> str:
        self.statements.append((sql, args, timeout))
        return self.status

    async def fetch(self, sql: str, *args: Any, timeout: float | None = None) -> list[dict[str, Any]]:
        self.statements.append((sql, args, timeout))
        return list(self.rows)


class FakePool(FakeConnection):
    """
    Pool that hands out a single connection. Also answers pool-level queries.
    """

    def __init__(self, conn: FakeConnection | None = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.conn = conn or FakeConnection()
        self.acquired = 0
        self.released = 0

    async def acquire(self, *, timeout: float | None = None) -> FakeConnection:
        self.acquired += 1
        return self.conn

    async def release(self, conn: FakeConnection) -> None:
        assert conn is self.conn
        self.released += 1


@dataclass
class _Tables:
    accounts: dict[str, Account] = field(default_factory=dict)
    listings: dict[str, Listing] = field(default_factory=dict)
    email_tokens: dict[str, EmailToken] = field(default_factory=dict)


class MemoryTransaction:
    def __init__(self, tables: _Tables, store: MemoryStore | None = None) -> None:
        self._t = tables
        self._store = store

    async def create_account(self, account: Account) -> None:
        if not account.id or account.id in self._t.accounts:
            raise AlreadyExists()
        if any(a.email == account.email for a in self._t.accounts.values()):
            raise AlreadyExists("already exists (constraint: accounts_email_key)")
        self._t.accounts[account.id] = copy.copy(account)

    async def update_account(self, update: AccountUpdate) -> None:
        current = self._t.accounts.get(update.id)
        if current is None:
            raise NotFound(f"account not found: {update.id}")
        changes = dict(present_fields(update, skip=("id",)))
        email = changes.get("email")
        if email and any(a.email == email and a.id != update.id for a in self._t.accounts.values()):
            raise AlreadyExists()
        self._t.accounts[update.id] = replace(current, **changes)

    async def delete_account(self, account_id: str) -> None:
        if self._t.accounts.pop(account_id, None) is None:
            raise NotFound(f"account not found: {account_id}")

    async def find_accounts(self, account_filter: AccountFilter) -> list[Account]:
        out = []
        for account in sorted(self._t.accounts.values(), key=lambda a: a.id):
            if account_filter.ids and account.id not in account_filter.ids:
                continue
            if account_filter.emails and account.email not in account_filter.emails:
                continue
            if account_filter.is_active is not None and account.is_active != account_filter.is_active:
                continue
            out.append(copy.copy(account))
        return out

    async def create_listing(self, listing: Listing) -> None:
        if not listing.id or listing.id in self._t.listings:
            raise AlreadyExists()
        self._t.listings[listing.id] = copy.copy(listing)

    async def update_listing(self, update: ListingUpdate) -> None:
        current = self._t.listings.get(update.id)
        if current is None:
            raise NotFound(f"listing not found: {update.id}")
        self._t.listings[update.id] = replace(current, **dict(present_fields(update, skip=("id",))))

    async def delete_listing(self, listing_id: str) -> None:
        if self._t.listings.pop(listing_id, None) is None:
            raise NotFound(f"listing not found: {listing_id}")

    async def find_listings(self, listing_filter: ListingFilter) -> list[Listing]:
        return [
            copy.copy(listing)
            for listing in sorted(self._t.listings.values(), key=lambda item: item.id)
            if not listing_filter.ids or listing.id in listing_filter.ids
        ]

    async def get_listing(self, listing_id: str) -> Listing:
        listing = self._t.listings.get(listing_id)
        if listing is None:
            raise NotFound(f"listing not found: {listing_id}")
        return copy.copy(listing)

    async def create_email_token(self, token: EmailToken) -> None:
        if not token.id or token.id in self._t.email_tokens:
            raise AlreadyExists()
        self._t.email_tokens[token.id] = copy.copy(token)

    async def update_email_token(self, update: EmailTokenUpdate) -> None:
        current = self._t.email_tokens.get(update.id)
        if current is None:
            raise NotFound()
        # Mirrors "AND consumed_at IS NULL": a row consumed by a committed
        # concurrent transaction no longer matches.
        committed = self._store.tables.email_tokens.get(update.id) if self._store else None
        if current.consumed_at is not None or (committed is not None and committed.consumed_at is not None):
            raise NotFound()
        self._t.email_tokens[update.id] = replace(current, **dict(present_fields(update, skip=("id",))))

    async def find_email_tokens(self, token_filter: EmailTokenFilter) -> list[EmailToken]:
        if self._store is not None and self._store.yield_on_read:
            await asyncio.sleep(0)
        return [
            copy.copy(token)
            for token in sorted(self._t.email_tokens.values(), key=lambda item: item.id)
            if not token_filter.ids or token.id in token_filter.ids
        ]


class MemoryStore:
    def __init__(self) -> None:
        self.tables = _Tables()
        self.commits = 0
        self.rollbacks = 0
        # Suspend on token reads inside a unit of work, like a database round trip.
        self.yield_on_read = False

    @asynccontextmanager
    async def unit_of_work(self):
        working = copy.deepcopy(self.tables)
        try:
            yield MemoryTransaction(working, self)
        except BaseException:
            self.rollbacks += 1
            raise
        self.tables = working
        self.commits += 1

    async def find_accounts(self, account_filter: AccountFilter) -> list[Account]:
        return await MemoryTransaction(self.tables).find_accounts(account_filter)

    async def find_listings(self, listing_filter: ListingFilter) -> list[Listing]:
        return await MemoryTransaction(self.tables).find_listings(listing_filter)

    async def get_listing(self, listing_id: str) -> Listing:
        return await MemoryTransaction(self.tables).get_listing(listing_id)

    async def find_email_tokens(self, token_filter: EmailTokenFilter) -> list[EmailToken]:
        return await MemoryTransaction(self.tables).find_email_tokens(token_filter)


def make_account(**overrides: Any) -> Account:
    values: dict[str, Any] = {
        "id": "1001",
        "email": "jane@example.com",
        "password_hash": "$2b$12$notarealhash",
        "role": "user",
        "is_active": True,
        "created_at": FIXED_NOW,
        "updated_at": FIXED_NOW,
    }
    values.update(overrides)
    return Account(**values)


def make_listing(**overrides: Any) -> Listing:
    values: dict[str, Any] = {
        "id": "2001",
        "title": "Bright two-room flat",
        "price": "2 400 PLN",
        "address": "Mokotow, Warsaw",
        "created_at": FIXED_NOW,
        "updated_at": FIXED_NOW,
    }
    values.update(overrides)
    return Listing(**values)


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()
