"""
Account management endpoints (admin only, see auth/policy.py).
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request, Response, status

from auth.dependencies import authorize
from auth.tokens import Claims

from . import schemas
from .models import AccountFilter
from .service import AccountService

router = APIRouter(prefix="/api/v1")


def get_account_service(request: Request) -> AccountService:
    service: AccountService = request.app.state.account_service
    return service


@router.get("/accounts", response_model=list[schemas.AccountResponse])
async def list_accounts(
    ids: list[str] | None = Query(default=None, alias="id"),
    emails: list[str] | None = Query(default=None, alias="email"),
    is_active: bool | None = Query(default=None),
    _: Claims = Depends(authorize),
    service: AccountService = Depends(get_account_service),
) -> list[schemas.AccountResponse]:
    accounts = await service.list_accounts(AccountFilter(ids=ids or [], emails=emails or [], is_active=is_active))
    return [schemas.AccountResponse.from_domain(a) for a in accounts]


@router.get("/accounts/{account_id}", response_model=schemas.AccountResponse)
async def get_account(
    account_id: str,
    _: Claims = Depends(authorize),
    service: AccountService = Depends(get_account_service),
) -> schemas.AccountResponse:
    return schemas.AccountResponse.from_domain(await service.get_account(account_id))


@router.post("/accounts", response_model=schemas.AccountResponse, status_code=status.HTTP_201_CREATED)
async def create_account(
    payload: schemas.CreateAccountRequest,
    _: Claims = Depends(authorize),
    service: AccountService = Depends(get_account_service),
) -> schemas.AccountResponse:
    account = await service.create_account(
        email=payload.email,
        password=payload.password,
        role=payload.role,
    )
    return schemas.AccountResponse.from_domain(account)


@router.put("/accounts/{account_id}", response_model=schemas.AccountResponse)
async def update_account(
    account_id: str,
    payload: schemas.UpdateAccountRequest,
    _: Claims = Depends(authorize),
    service: AccountService = Depends(get_account_service),
) -> schemas.AccountResponse:
    # Every account column is NOT NULL, so an explicit null means "leave unchanged".
    changes = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    account = await service.update_account(account_id, changes)
    return schemas.AccountResponse.from_domain(account)


@router.delete("/accounts/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_account(
    account_id: str,
    _: Claims = Depends(authorize),
    service: AccountService = Depends(get_account_service),
) -> Response:
    await service.delete_account(account_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
