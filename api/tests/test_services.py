import pytest

from accounts.models import AccountFilter
from accounts.service import AccountService
from auth.security import match_password
from conftest import FIXED_NOW, make_account, make_listing
from core.errors import AlreadyExists, NotFound
from listings.models import Listing
from listings.service import ListingService


class FakeImporter:
    def __init__(self, listing):
        self.listing = listing
        self.urls = []

    async def fetch(self, url):
        self.urls.append(url)
        return self.listing


@pytest.fixture
def accounts(memory_store):
    return AccountService(memory_store, now=lambda: FIXED_NOW)


@pytest.mark.asyncio
async def test_create_then_get_returns_the_created_account(accounts):
    created = await accounts.create_account(email="Admin@Example.com", password="correct horse", role="admin")

    assert await accounts.get_account(created.id) == created
    assert created.email == "admin@example.com"
    assert match_password(created.password_hash, "correct horse")


@pytest.mark.asyncio
async def test_get_missing_account(accounts):
    with pytest.raises(NotFound):
        await accounts.get_account("404")


@pytest.mark.asyncio
async def test_partial_update_keeps_other_fields(accounts, memory_store):
    async with memory_store.unit_of_work() as tx:
        await tx.create_account(make_account(created_at=None, updated_at=None))

    updated = await accounts.update_account("1001", {"is_active": False})

    assert updated.is_active is False
    assert updated.email == "jane@example.com"
    assert updated.role == "user"
    assert updated.updated_at == FIXED_NOW


@pytest.mark.asyncio
async def test_update_hashes_new_password(accounts, memory_store):
    async with memory_store.unit_of_work() as tx:
        await tx.create_account(make_account())

    updated = await accounts.update_account("1001", {"password": "brand new password"})

    assert match_password(updated.password_hash, "brand new password")


@pytest.mark.asyncio
async def test_update_to_taken_email(accounts, memory_store):
    async with memory_store.unit_of_work() as tx:
        await tx.create_account(make_account())
        await tx.create_account(make_account(id="1002", email="john@example.com"))

    with pytest.raises(AlreadyExists):
        await accounts.update_account("1002", {"email": "JANE@example.com"})


@pytest.mark.asyncio
async def test_update_and_delete_missing(accounts):
    with pytest.raises(NotFound):
        await accounts.update_account("404", {"role": "admin"})
    with pytest.raises(NotFound):
        await accounts.delete_account("404")


@pytest.mark.asyncio
async def test_list_filters(accounts, memory_store):
    async with memory_store.unit_of_work() as tx:
        await tx.create_account(make_account())
        await tx.create_account(make_account(id="1002", email="john@example.com", is_active=False))

    assert len(await accounts.list_accounts()) == 2
    assert [a.id for a in await accounts.list_accounts(AccountFilter(is_active=False))] == ["1002"]
    assert await accounts.list_accounts(AccountFilter(ids=["999"])) == []


@pytest.mark.asyncio
async def test_import_listing_stores_scraped_fields(memory_store):
    importer = FakeImporter(Listing(title="Loft", price="3 000 PLN"))
    service = ListingService(memory_store, importer, now=lambda: FIXED_NOW)

    listing = await service.import_listing("https://listings.test/offer/9")

    assert importer.urls == ["https://listings.test/offer/9"]
    assert listing.id.isdigit()
    assert listing.created_at == listing.updated_at == FIXED_NOW
    assert await service.get_listing(listing.id) == listing


@pytest.mark.asyncio
async def test_listing_update_and_delete(memory_store):
    service = ListingService(memory_store, FakeImporter(None), now=lambda: FIXED_NOW)
    async with memory_store.unit_of_work() as tx:
        await tx.create_listing(make_listing(updated_at=None))

    updated = await service.update_listing("2001", {"rent": "500 PLN", "title": ""})

    assert updated.rent == "500 PLN"
    assert updated.title == ""
    assert updated.address == "Mokotow, Warsaw"
    assert updated.updated_at == FIXED_NOW

    await service.delete_listing("2001")
    assert await service.list_listings() == []
    with pytest.raises(NotFound):
        await service.get_listing("2001")
