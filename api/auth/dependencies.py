"""
Auth dependencies for protected FastAPI routes.
"""

from __future__ import annotations

from fastapi import Depends, Header, HTTPException, Request, status

from core.errors import AccessDenied

from .interceptor import Interceptor
from .tokens import Claims, TokenManager


def _extract_bearer_token(authorization: str | None) -> str | None:
    raw = (authorization or "").strip()
    if not raw:
        return None

    parts = raw.split(" ", 1)
    if len(parts) != 2:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid Authorization header format.",
        )

    scheme, token = parts[0].strip().lower(), parts[1].strip()
    if scheme != "bearer" or not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization must be: Bearer <token>.",
        )
    return token


async def get_bearer_token(authorization: str | None = Header(default=None)) -> str | None:
    return _extract_bearer_token(authorization)


def get_interceptor(request: Request) -> Interceptor:
    interceptor: Interceptor = request.app.state.interceptor
    return interceptor


def get_token_manager(request: Request) -> TokenManager:
    tokens: TokenManager = request.app.state.tokens
    return tokens


async def authorize(
    request: Request,
    access_token: str | None = Depends(get_bearer_token),
    interceptor: Interceptor = Depends(get_interceptor),
) -> Claims:
    """
    Run the interceptor for this request and return the caller's claims.
    """
    try:
        return interceptor.authorize(request.method, request.url.path, access_token)
    except AccessDenied as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc
