"""
Listing endpoints (admin and user, see auth/policy.py).
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request, Response, status

from auth.dependencies import authorize
from auth.tokens import Claims

from . import schemas
from .models import ListingFilter
from .service import ListingService

router = APIRouter(prefix="/api/v1")


def get_listing_service(request: Request) -> ListingService:
    service: ListingService = request.app.state.listing_service
    return service


@router.get("/listings", response_model=list[schemas.ListingResponse])
async def list_listings(
    ids: list[str] | None = Query(default=None, alias="id"),
    _: Claims = Depends(authorize),
    service: ListingService = Depends(get_listing_service),
) -> list[schemas.ListingResponse]:
    listings = await service.list_listings(ListingFilter(ids=ids or []))
    return [schemas.ListingResponse.from_domain(item) for item in listings]


@router.get("/listings/{listing_id}", response_model=schemas.ListingResponse)
async def get_listing(
    listing_id: str,
    _: Claims = Depends(authorize),
    service: ListingService = Depends(get_listing_service),
) -> schemas.ListingResponse:
    return schemas.ListingResponse.from_domain(await service.get_listing(listing_id))


@router.post("/listings", response_model=schemas.ListingResponse, status_code=status.HTTP_201_CREATED)
async def import_listing(
    payload: schemas.ImportListingRequest,
    _: Claims = Depends(authorize),
    service: ListingService = Depends(get_listing_service),
) -> schemas.ListingResponse:
    listing = await service.import_listing(str(payload.url))
    return schemas.ListingResponse.from_domain(listing)


@router.put("/listings/{listing_id}", response_model=schemas.ListingResponse)
async def update_listing(
    listing_id: str,
    payload: schemas.UpdateListingRequest,
    _: Claims = Depends(authorize),
    service: ListingService = Depends(get_listing_service),
) -> schemas.ListingResponse:
    # Listing columns are NOT NULL; null means "leave unchanged", "" clears the field.
    changes = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    listing = await service.update_listing(listing_id, changes)
    return schemas.ListingResponse.from_domain(listing)


@router.delete("/listings/{listing_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_listing(
    listing_id: str,
    _: Claims = Depends(authorize),
    service: ListingService = Depends(get_listing_service),
) -> Response:
    await service.delete_listing(listing_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
