"""
Domain error taxonomy and the storage error mapper.

Repositories wrap every storage call in `mapped_db_errors()`, so callers above
the repository layer only ever see the domain errors defined here (or the
original exception, when it has no domain meaning).
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

# https://www.postgresql.org/docs/current/errcodes-appendix.html
UNIQUE_VIOLATION = "23505"
NO_DATA_FOUND = "P0002"


class DomainError(Exception):
    """
    Base class for errors that carry a meaning independent of the storage engine.
    """

    default_message = "domain error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class NotFound(DomainError):
    default_message = "not found"


class AlreadyExists(DomainError):
    default_message = "already exists"


class InvalidToken(DomainError):
    default_message = "invalid token"


class InvalidCredentials(DomainError):
    default_message = "invalid credentials"


class InvalidPassword(DomainError):
    default_message = "invalid password"


class AccessDenied(DomainError):
    default_message = "no permission to access this route"


class NoRowsError(LookupError):
    """
    Raised by single-row lookups when the query returned nothing.

    asyncpg returns None instead of raising, so repositories raise this to give
    the mapper a no-rows condition to translate.
    """


def map_db_error(exc: BaseException | None) -> BaseException | None:
    if exc is None:
        return None

    if isinstance(exc, NoRowsError):
        return NotFound(str(exc) or None)

    sqlstate = getattr(exc, "sqlstate", None)
    if sqlstate == NO_DATA_FOUND:
        return NotFound()
    if sqlstate == UNIQUE_VIOLATION:
        constraint = getattr(exc, "constraint_name", None)
        if constraint:
            return AlreadyExists(f"already exists (constraint: {constraint})")
        return AlreadyExists()

    return exc


@contextmanager
def mapped_db_errors() -> Iterator[None]:
    """
    Usage:
        with mapped_db_errors():
            await executor.execute(sql, *params)
    """
    try:
        yield
    except Exception as exc:
        mapped = map_db_error(exc)
        if mapped is exc:
            raise
        raise mapped from exc
