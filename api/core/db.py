"""
Async database access helpers (raw SQL) using asyncpg.

`main.py` creates the connection pool on startup and closes it on shutdown.
Repositories never touch the pool directly; they receive an `Executor`, which
is either the shared pool (plain reads) or one open transaction.

SQL parameter style:
- asyncpg uses positional placeholders: $1, $2, $3, ...
"""

from __future__ import annotations

from typing import Any, Protocol
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import asyncpg

from .settings import Settings


def _sanitize_database_url(url: str) -> str:
    parts = urlsplit(url)
    if not parts.query:
        return url

    params = [(k, v) for (k, v) in parse_qsl(parts.query, keep_blank_values=True) if k != "sslmode"]
    query = urlencode(params)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


async def create_pool(settings: Settings) -> asyncpg.Pool:
    return await asyncpg.create_pool(
        dsn=_sanitize_database_url(settings.database_url),
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
        command_timeout=settings.db_command_timeout.total_seconds(),
    )


def rows_affected(status: str) -> int:
    """
    Parse the row count out of a command status tag.

    asyncpg's `execute()` returns the tag verbatim: "UPDATE 3", "DELETE 0",
    "INSERT 0 1". The count is always the last token.
    """
    try:
        return int((status or "").rsplit(" ", 1)[-1])
    except ValueError:
        return 0


class Executor(Protocol):
    async def execute(self, sql: str, *args: Any, timeout: float | None = None) -> int:
        """
        Run a statement (INSERT/UPDATE/DELETE). Returns the number of rows affected.
        """
        ...

    async def query(self, sql: str, *args: Any, timeout: float | None = None) -> list[Any]:
        """
        Run a query and return all rows. Rows support `row["column"]` access.
        """
        ...


class AsyncpgExecutor:
    """
    `Executor` over anything with asyncpg's `execute`/`fetch` methods.

    Both `asyncpg.Pool` and `asyncpg.Connection` qualify, so the same
    repository code runs against the shared pool or an open transaction.
    """

    def __init__(self, target: asyncpg.Pool | asyncpg.Connection, *, timeout: float | None = None) -> None:
        self._target = target
        self._timeout = timeout

    async def execute(self, sql: str, *args: Any, timeout: float | None = None) -> int:
        status = await self._target.execute(sql, *args, timeout=timeout or self._timeout)
        return rows_affected(status)

    async def query(self, sql: str, *args: Any, timeout: float | None = None) -> list[asyncpg.Record]:
        return await self._target.fetch(sql, *args, timeout=timeout or self._timeout)
