from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from core.fields import UNSET

# Free-text content columns, in storage order.
CONTENT_FIELDS = (
    "title",
    "price",
    "address",
    "surface",
    "rooms",
    "floor",
    "available_from",
    "rent",
    "deposit",
    "description",
)


@dataclass(slots=True)
class Listing:
    id: str = ""
    title: str = ""
    price: str = ""
    address: str = ""
    surface: str = ""
    rooms: str = ""
    floor: str = ""
    available_from: str = ""
    rent: str = ""
    deposit: str = ""
    description: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(slots=True)
class ListingFilter:
    ids: list[str] = field(default_factory=list)


@dataclass(slots=True)
class ListingUpdate:
    id: str
    updated_at: datetime
    title: Any = UNSET
    price: Any = UNSET
    address: Any = UNSET
    surface: Any = UNSET
    rooms: Any = UNSET
    floor: Any = UNSET
    available_from: Any = UNSET
    rent: Any = UNSET
    deposit: Any = UNSET
    description: Any = UNSET
