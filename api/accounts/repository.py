"""
Account persistence (raw SQL).

Every function takes an `Executor`, so the same statements run against the
shared pool or inside an open transaction.
"""

from __future__ import annotations

from typing import Any

from core.db import Executor
from core.errors import AlreadyExists, NotFound, mapped_db_errors
from core.fields import present_fields
from core.query import QueryBuilder

from .models import Account, AccountFilter, AccountUpdate

ACCOUNT_COLUMNS = "id, email, password_hash, role, is_active, created_at, updated_at"


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def _row_to_account(row: Any) -> Account:
    return Account(
        id=str(row["id"]),
        email=str(row["email"]),
        password_hash=str(row["password_hash"]),
        role=str(row["role"]),
        is_active=bool(row["is_active"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


async def insert_account(ex: Executor, account: Account, *, timeout: float | None = None) -> None:
    if not account.id:
        raise AlreadyExists("account id must not be empty")

    q = QueryBuilder()
    q.literal(f"INSERT INTO accounts ({ACCOUNT_COLUMNS}) VALUES (")
    q.params(
        account.id,
        account.email,
        account.password_hash,
        account.role,
        account.is_active,
        account.created_at,
        account.updated_at,
    )
    q.literal(")")
    sql, params = q.build()

    with mapped_db_errors():
        await ex.execute(sql, *params, timeout=timeout)


async def update_account(ex: Executor, update: AccountUpdate, *, timeout: float | None = None) -> None:
    q = QueryBuilder()
    q.literal("UPDATE accounts SET updated_at = ").param(update.updated_at)
    for column, value in present_fields(update, skip=("id", "updated_at")):
        q.literal(f", {column} = ").param(value)
    q.literal(" WHERE id = ").param(update.id)
    sql, params = q.build()

    with mapped_db_errors():
        affected = await ex.execute(sql, *params, timeout=timeout)
    if affected == 0:
        raise NotFound(f"account not found: {update.id}")


async def delete_account(ex: Executor, account_id: str, *, timeout: float | None = None) -> None:
    q = QueryBuilder()
    q.literal("DELETE FROM accounts WHERE id = ").param(account_id)
    sql, params = q.build()

    with mapped_db_errors():
        affected = await ex.execute(sql, *params, timeout=timeout)
    if affected == 0:
        raise NotFound(f"account not found: {account_id}")


async def select_accounts(
    ex: Executor,
    account_filter: AccountFilter,
    *,
    timeout: float | None = None,
) -> list[Account]:
    q = QueryBuilder()
    q.literal(f"SELECT {ACCOUNT_COLUMNS} FROM accounts WHERE 1=1")

    if account_filter.ids:
        q.literal(" AND id IN (").params(*account_filter.ids).literal(")")
    if account_filter.emails:
        q.literal(" AND email IN (").params(*account_filter.emails).literal(")")
    if account_filter.is_active is not None:
        q.literal(" AND is_active = ").param(account_filter.is_active)

    q.literal(" ORDER BY id ASC")
    sql, params = q.build()

    with mapped_db_errors():
        rows = await ex.query(sql, *params, timeout=timeout)
    return [_row_to_account(row) for row in rows]
