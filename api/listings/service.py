"""
Listing business logic.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any

from core.ids import new_id
from store.unit_of_work import Store

from .importer import ListingImporter
from .models import Listing, ListingFilter, ListingUpdate

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ListingService:
    def __init__(
        self,
        store: Store,
        importer: ListingImporter,
        *,
        now: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._store = store
        self._importer = importer
        self._now = now

    async def list_listings(self, listing_filter: ListingFilter | None = None) -> list[Listing]:
        return await self._store.find_listings(listing_filter or ListingFilter())

    async def get_listing(self, listing_id: str) -> Listing:
        return await self._store.get_listing(listing_id)

    async def import_listing(self, url: str) -> Listing:
        """
        Fetch `url`, extract its fields and store the result as a new listing.
        """
        scraped = await self._importer.fetch(url)
        now = self._now()
        listing = replace(scraped, id=new_id(), created_at=now, updated_at=now)
        async with self._store.unit_of_work() as tx:
            await tx.create_listing(listing)
        logger.info("listing_imported id=%s url=%s", listing.id, url)
        return listing

    async def update_listing(self, listing_id: str, changes: dict[str, Any]) -> Listing:
        update = ListingUpdate(id=listing_id, updated_at=self._now(), **changes)
        async with self._store.unit_of_work() as tx:
            await tx.update_listing(update)
            return await tx.get_listing(listing_id)

    async def delete_listing(self, listing_id: str) -> None:
        async with self._store.unit_of_work() as tx:
            await tx.delete_listing(listing_id)
