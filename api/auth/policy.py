"""
Route policy: which roles may call which (normalized) route.

Keys are normalized routes (see `interceptor.normalize_route`). A key of the
form "METHOD /route" applies to that method only and wins over the plain
"/route" entry.
"""

from __future__ import annotations

ADMIN = "admin"
USER = "user"

DEFAULT_ROLE = USER


def accessible_roles() -> dict[str, tuple[str, ...]]:
    return {
        "/api/v1/accounts": (ADMIN,),
        "/api/v1/listings": (ADMIN, USER),
    }
