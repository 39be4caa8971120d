"""
Public auth endpoints: register, login, password reset.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status

from accounts.schemas import AccountResponse

from . import schemas
from .dependencies import get_token_manager
from .service import AuthResult, AuthService, PasswordResetService
from .tokens import TokenManager

router = APIRouter(prefix="/api/v1")


def get_auth_service(request: Request) -> AuthService:
    service: AuthService = request.app.state.auth_service
    return service


def get_password_reset_service(request: Request) -> PasswordResetService:
    service: PasswordResetService = request.app.state.password_reset_service
    return service


def _to_auth_response(result: AuthResult, tokens: TokenManager) -> schemas.AuthResponse:
    return schemas.AuthResponse(
        account=AccountResponse.from_domain(result.account),
        token=schemas.TokenResponse(
            access_token=result.access_token,
            expires_in=int(tokens.token_duration.total_seconds()),
        ),
    )


@router.post("/register", response_model=schemas.AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    payload: schemas.RegisterRequest,
    service: AuthService = Depends(get_auth_service),
    tokens: TokenManager = Depends(get_token_manager),
) -> schemas.AuthResponse:
    result = await service.register(payload.email, payload.password)
    return _to_auth_response(result, tokens)


@router.post("/login", response_model=schemas.AuthResponse)
async def login(
    payload: schemas.LoginRequest,
    service: AuthService = Depends(get_auth_service),
    tokens: TokenManager = Depends(get_token_manager),
) -> schemas.AuthResponse:
    result = await service.login(payload.email, payload.password)
    return _to_auth_response(result, tokens)


@router.post("/password-reset", status_code=status.HTTP_202_ACCEPTED)
async def request_password_reset(
    payload: schemas.PasswordResetRequest,
    service: PasswordResetService = Depends(get_password_reset_service),
) -> dict:
    service.request_reset(payload.email)
    return {"ok": True}


@router.post("/password-reset/confirm")
async def confirm_password_reset(
    payload: schemas.PasswordResetConfirm,
    service: PasswordResetService = Depends(get_password_reset_service),
) -> dict:
    await service.reset_password(payload.id, payload.token, payload.password)
    return {"ok": True}
