"""
Per-request authorization.

A request moves Unauthenticated -> TokenPresented -> Verified -> Authorized,
or stops at Rejected (`AccessDenied`) on the first failed step:

1. no bearer token
2. normalized route not in the policy table
3. token fails verification
4. token role not allowed for the route
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from types import MappingProxyType

from core.errors import AccessDenied, InvalidToken

from .tokens import Claims, TokenManager

logger = logging.getLogger(__name__)


def _is_id_segment(segment: str) -> bool:
    # An empty segment ("//" at the end) counts too.
    return all(c.isdigit() for c in segment)


def normalize_route(path: str) -> str:
    """
    Drop a trailing numeric id segment: "/api/v1/listings/42" -> "/api/v1/listings".

    One trailing slash is stripped first, so "/api/v1/listings/42/" normalizes
    the same way.
    """
    if len(path) > 1 and path.endswith("/"):
        path = path[:-1]
    head, sep, last = path.rpartition("/")
    if sep and _is_id_segment(last):
        return head
    return path


class Interceptor:
    def __init__(self, tokens: TokenManager, policy: Mapping[str, Iterable[str]]) -> None:
        self._tokens = tokens
        self._policy: Mapping[str, frozenset[str]] = MappingProxyType(
            {route: frozenset(roles) for route, roles in policy.items()}
        )

    def allowed_roles(self, method: str, path: str) -> frozenset[str] | None:
        route = normalize_route(path)
        roles = self._policy.get(f"{method.upper()} {route}")
        if roles is None:
            roles = self._policy.get(route)
        return roles

    def authorize(self, method: str, path: str, access_token: str | None) -> Claims:
        if not access_token:
            raise AccessDenied("missing bearer token")

        roles = self.allowed_roles(method, path)
        if roles is None:
            raise AccessDenied()

        try:
            claims = self._tokens.verify(access_token)
        except InvalidToken as exc:
            raise AccessDenied("invalid token") from exc

        if claims.role not in roles:
            logger.info(
                "access_denied method=%s route=%s account_id=%s role=%s",
                method,
                normalize_route(path),
                claims.id,
                claims.role,
            )
            raise AccessDenied()

        return claims
