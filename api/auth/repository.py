"""
Email token persistence helpers.
"""

from __future__ import annotations

from datetime import timezone
from typing import Any

from core.db import Executor
from core.errors import AlreadyExists, NotFound, mapped_db_errors
from core.fields import is_set
from core.query import QueryBuilder

from .models import EmailToken, EmailTokenFilter, EmailTokenUpdate, TokenPurpose

EMAIL_TOKEN_COLUMNS = "id, token_hash, account_id, email, purpose, created_at, consumed_at"


def _row_to_email_token(row: Any) -> EmailToken:
    return EmailToken(
        id=str(row["id"]),
        token_hash=str(row["token_hash"]),
        account_id=str(row["account_id"]),
        email=str(row["email"]),
        purpose=TokenPurpose(row["purpose"]),
        created_at=row["created_at"],
        consumed_at=row["consumed_at"],
    )


async def insert_email_token(ex: Executor, token: EmailToken, *, timeout: float | None = None) -> None:
    if not token.id:
        raise AlreadyExists("email token id must not be empty")

    created_at = token.created_at
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)

    q = QueryBuilder()
    q.literal(f"INSERT INTO email_tokens ({EMAIL_TOKEN_COLUMNS}) VALUES (")
    q.params(
        token.id,
        token.token_hash,
        token.account_id,
        token.email,
        token.purpose.value,
        created_at,
        token.consumed_at,
    )
    q.literal(")")
    sql, params = q.build()

    with mapped_db_errors():
        await ex.execute(sql, *params, timeout=timeout)


async def update_email_token(ex: Executor, update: EmailTokenUpdate, *, timeout: float | None = None) -> None:
    if not is_set(update.consumed_at):
        return None

    # A token is consumed at most once; a concurrent second consumer matches no row.
    q = QueryBuilder()
    q.literal("UPDATE email_tokens SET consumed_at = ").param(update.consumed_at)
    q.literal(" WHERE id = ").param(update.id)
    q.literal(" AND consumed_at IS NULL")
    sql, params = q.build()

    with mapped_db_errors():
        affected = await ex.execute(sql, *params, timeout=timeout)
    if affected == 0:
        raise NotFound(f"email token not found or already consumed: {update.id}")


async def select_email_tokens(
    ex: Executor,
    token_filter: EmailTokenFilter,
    *,
    timeout: float | None = None,
) -> list[EmailToken]:
    q = QueryBuilder()
    q.literal(f"SELECT {EMAIL_TOKEN_COLUMNS} FROM email_tokens WHERE 1=1")
    if token_filter.ids:
        q.literal(" AND id IN (").params(*token_filter.ids).literal(")")
    q.literal(" ORDER BY id ASC")
    sql, params = q.build()

    with mapped_db_errors():
        rows = await ex.query(sql, *params, timeout=timeout)
    return [_row_to_email_token(row) for row in rows]
