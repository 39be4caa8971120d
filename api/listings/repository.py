"""
Listing persistence (raw SQL).
"""

from __future__ import annotations

from typing import Any

from core.db import Executor
from core.errors import AlreadyExists, NoRowsError, NotFound, mapped_db_errors
from core.fields import present_fields
from core.query import QueryBuilder

from .models import CONTENT_FIELDS, Listing, ListingFilter, ListingUpdate

LISTING_COLUMNS = ", ".join(("id", *CONTENT_FIELDS, "created_at", "updated_at"))


def _row_to_listing(row: Any) -> Listing:
    return Listing(
        id=str(row["id"]),
        **{name: str(row[name] or "") for name in CONTENT_FIELDS},
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


async def insert_listing(ex: Executor, listing: Listing, *, timeout: float | None = None) -> None:
    if not listing.id:
        raise AlreadyExists("listing id must not be empty")

    q = QueryBuilder()
    q.literal(f"INSERT INTO listings ({LISTING_COLUMNS}) VALUES (")
    q.params(
        listing.id,
        *(getattr(listing, name) for name in CONTENT_FIELDS),
        listing.created_at,
        listing.updated_at,
    )
    q.literal(")")
    sql, params = q.build()

    with mapped_db_errors():
        await ex.execute(sql, *params, timeout=timeout)


async def update_listing(ex: Executor, update: ListingUpdate, *, timeout: float | None = None) -> None:
    q = QueryBuilder()
    q.literal("UPDATE listings SET updated_at = ").param(update.updated_at)
    for column, value in present_fields(update, skip=("id", "updated_at")):
        q.literal(f", {column} = ").param(value)
    q.literal(" WHERE id = ").param(update.id)
    sql, params = q.build()

    with mapped_db_errors():
        affected = await ex.execute(sql, *params, timeout=timeout)
    if affected == 0:
        raise NotFound(f"listing not found: {update.id}")


async def delete_listing(ex: Executor, listing_id: str, *, timeout: float | None = None) -> None:
    q = QueryBuilder()
    q.literal("DELETE FROM listings WHERE id = ").param(listing_id)
    sql, params = q.build()

    with mapped_db_errors():
        affected = await ex.execute(sql, *params, timeout=timeout)
    if affected == 0:
        raise NotFound(f"listing not found: {listing_id}")


async def select_listings(
    ex: Executor,
    listing_filter: ListingFilter,
    *,
    timeout: float | None = None,
) -> list[Listing]:
    q = QueryBuilder()
    q.literal(f"SELECT {LISTING_COLUMNS} FROM listings WHERE 1=1")
    if listing_filter.ids:
        q.literal(" AND id IN (").params(*listing_filter.ids).literal(")")
    q.literal(" ORDER BY id ASC")
    sql, params = q.build()

    with mapped_db_errors():
        rows = await ex.query(sql, *params, timeout=timeout)
    return [_row_to_listing(row) for row in rows]


async def select_listing(ex: Executor, listing_id: str, *, timeout: float | None = None) -> Listing:
    q = QueryBuilder()
    q.literal(f"SELECT {LISTING_COLUMNS} FROM listings WHERE id = ").param(listing_id)
    sql, params = q.build()

    with mapped_db_errors():
        rows = await ex.query(sql, *params, timeout=timeout)
        if not rows:
            raise NoRowsError(f"listing not found: {listing_id}")
    return _row_to_listing(rows[0])
