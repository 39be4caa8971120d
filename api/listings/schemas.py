"""
Listing API schemas (request/response models).
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, HttpUrl

from .models import Listing


class ListingResponse(BaseModel):
    id: str
    title: str
    price: str
    address: str
    surface: str
    rooms: str
    floor: str
    available_from: str
    rent: str
    deposit: str
    description: str
    created_at: datetime | None
    updated_at: datetime | None

    @classmethod
    def from_domain(cls, listing: Listing) -> ListingResponse:
        return cls(
            id=listing.id,
            title=listing.title,
            price=listing.price,
            address=listing.address,
            surface=listing.surface,
            rooms=listing.rooms,
            floor=listing.floor,
            available_from=listing.available_from,
            rent=listing.rent,
            deposit=listing.deposit,
            description=listing.description,
            created_at=listing.created_at,
            updated_at=listing.updated_at,
        )


class ImportListingRequest(BaseModel):
    url: HttpUrl


class UpdateListingRequest(BaseModel):
    title: str | None = Field(default=None, max_length=512)
    price: str | None = Field(default=None, max_length=128)
    address: str | None = Field(default=None, max_length=512)
    surface: str | None = Field(default=None, max_length=128)
    rooms: str | None = Field(default=None, max_length=128)
    floor: str | None = Field(default=None, max_length=128)
    available_from: str | None = Field(default=None, max_length=128)
    rent: str | None = Field(default=None, max_length=128)
    deposit: str | None = Field(default=None, max_length=128)
    description: str | None = None
