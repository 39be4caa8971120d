"""
Store and unit of work.

`Store` owns the asyncpg pool. Reads that need no isolation across calls go
straight through the pool; anything that writes opens a `Transaction`
(`Store.begin()` or the `Store.unit_of_work()` context manager) and calls the
same repository functions bound to the transaction's connection.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import asyncpg

from accounts import repository as account_repository
from accounts.models import Account, AccountFilter, AccountUpdate
from auth import repository as email_token_repository
from auth.models import EmailToken, EmailTokenFilter, EmailTokenUpdate
from core.db import AsyncpgExecutor, Executor
from listings import repository as listing_repository
from listings.models import Listing, ListingFilter, ListingUpdate

logger = logging.getLogger(__name__)


class TransactionClosed(RuntimeError):
    pass


class Transaction:
    """
    One open database transaction on a dedicated pooled connection.

    Callers must finish it with exactly one of `commit()` or `rollback()`.
    The connection goes back to the pool either way. `rollback()` on a
    finished transaction is a no-op, so it is safe in cleanup paths;
    `commit()` on a finished transaction raises `TransactionClosed`.
    """

    def __init__(
        self,
        pool: asyncpg.Pool,
        conn: asyncpg.Connection,
        tx: asyncpg.transaction.Transaction,
        *,
        timeout: float | None = None,
    ) -> None:
        self._pool = pool
        self._conn = conn
        self._tx = tx
        self._timeout = timeout
        self._executor: Executor = AsyncpgExecutor(conn, timeout=timeout)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_open(self) -> None:
        if self._closed:
            raise TransactionClosed("Transaction is already committed or rolled back.")

    async def commit(self) -> None:
        self._ensure_open()
        self._closed = True
        try:
            await self._tx.commit()
        finally:
            await self._pool.release(self._conn)

    async def rollback(self) -> None:
        if self._closed:
            return None
        self._closed = True
        try:
            await self._tx.rollback()
        finally:
            await self._pool.release(self._conn)

    async def execute(self, sql: str, *args, timeout: float | None = None) -> int:
        self._ensure_open()
        return await self._executor.execute(sql, *args, timeout=timeout)

    async def query(self, sql: str, *args, timeout: float | None = None) -> list:
        self._ensure_open()
        return await self._executor.query(sql, *args, timeout=timeout)

    # Accounts.

    async def create_account(self, account: Account, *, timeout: float | None = None) -> None:
        await account_repository.insert_account(self, account, timeout=timeout)

    async def update_account(self, update: AccountUpdate, *, timeout: float | None = None) -> None:
        await account_repository.update_account(self, update, timeout=timeout)

    async def delete_account(self, account_id: str, *, timeout: float | None = None) -> None:
        await account_repository.delete_account(self, account_id, timeout=timeout)

    async def find_accounts(self, account_filter: AccountFilter, *, timeout: float | None = None) -> list[Account]:
        return await account_repository.select_accounts(self, account_filter, timeout=timeout)

    # Listings.

    async def create_listing(self, listing: Listing, *, timeout: float | None = None) -> None:
        await listing_repository.insert_listing(self, listing, timeout=timeout)

    async def update_listing(self, update: ListingUpdate, *, timeout: float | None = None) -> None:
        await listing_repository.update_listing(self, update, timeout=timeout)

    async def delete_listing(self, listing_id: str, *, timeout: float | None = None) -> None:
        await listing_repository.delete_listing(self, listing_id, timeout=timeout)

    async def find_listings(self, listing_filter: ListingFilter, *, timeout: float | None = None) -> list[Listing]:
        return await listing_repository.select_listings(self, listing_filter, timeout=timeout)

    async def get_listing(self, listing_id: str, *, timeout: float | None = None) -> Listing:
        return await listing_repository.select_listing(self, listing_id, timeout=timeout)

    # Email tokens.

    async def create_email_token(self, token: EmailToken, *, timeout: float | None = None) -> None:
        await email_token_repository.insert_email_token(self, token, timeout=timeout)

    async def update_email_token(self, update: EmailTokenUpdate, *, timeout: float | None = None) -> None:
        await email_token_repository.update_email_token(self, update, timeout=timeout)

    async def find_email_tokens(
        self,
        token_filter: EmailTokenFilter,
        *,
        timeout: float | None = None,
    ) -> list[EmailToken]:
        return await email_token_repository.select_email_tokens(self, token_filter, timeout=timeout)


class Store:
    def __init__(self, pool: asyncpg.Pool, *, timeout: float | None = None) -> None:
        self._pool = pool
        self._timeout = timeout
        self._executor: Executor = AsyncpgExecutor(pool, timeout=timeout)

    async def begin(self, *, timeout: float | None = None) -> Transaction:
        """
        Acquire a connection and start a transaction on it.
        """
        conn = await self._pool.acquire(timeout=timeout or self._timeout)
        tx = conn.transaction()
        try:
            await tx.start()
        except BaseException:
            await self._pool.release(conn)
            raise
        return Transaction(self._pool, conn, tx, timeout=self._timeout)

    @asynccontextmanager
    async def unit_of_work(self, *, timeout: float | None = None) -> AsyncIterator[Transaction]:
        """
        Usage:
            async with store.unit_of_work() as tx:
                await tx.create_account(account)

        Commits when the block exits normally; rolls back and re-raises otherwise.
        A block that already finished the transaction itself is left as is.
        """
        tx = await self.begin(timeout=timeout)
        try:
            yield tx
        except BaseException:
            try:
                await tx.rollback()
            except Exception:
                logger.exception("transaction_rollback_failed")
            raise
        if not tx.closed:
            await tx.commit()

    async def execute(self, sql: str, *args, timeout: float | None = None) -> int:
        return await self._executor.execute(sql, *args, timeout=timeout)

    async def query(self, sql: str, *args, timeout: float | None = None) -> list:
        return await self._executor.query(sql, *args, timeout=timeout)

    async def find_accounts(self, account_filter: AccountFilter, *, timeout: float | None = None) -> list[Account]:
        return await account_repository.select_accounts(self, account_filter, timeout=timeout)

    async def find_listings(self, listing_filter: ListingFilter, *, timeout: float | None = None) -> list[Listing]:
        return await listing_repository.select_listings(self, listing_filter, timeout=timeout)

    async def get_listing(self, listing_id: str, *, timeout: float | None = None) -> Listing:
        return await listing_repository.select_listing(self, listing_id, timeout=timeout)

    async def find_email_tokens(
        self,
        token_filter: EmailTokenFilter,
        *,
        timeout: float | None = None,
    ) -> list[EmailToken]:
        return await email_token_repository.select_email_tokens(self, token_filter, timeout=timeout)
