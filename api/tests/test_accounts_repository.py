from datetime import timedelta

import pytest

from accounts import repository
from accounts.models import AccountFilter, AccountUpdate
from conftest import FIXED_NOW, FakeExecutor, make_account
from core.errors import AlreadyExists, NotFound


def _row(account):
    return {
        "id": account.id,
        "email": account.email,
        "password_hash": account.password_hash,
        "role": account.role,
        "is_active": account.is_active,
        "created_at": account.created_at,
        "updated_at": account.updated_at,
    }


def test_normalize_email():
    assert repository.normalize_email("  Jane@Example.COM ") == "jane@example.com"
    assert repository.normalize_email(None) == ""


@pytest.mark.asyncio
async def test_insert_writes_every_column_in_order():
    ex = FakeExecutor()
    account = make_account()

    await repository.insert_account(ex, account, timeout=3.0)

    call = ex.last
    assert call.kind == "execute"
    assert call.sql == (
        "INSERT INTO accounts (id, email, password_hash, role, is_active, created_at, updated_at) "
        "VALUES ($1, $2, $3, $4, $5, $6, $7)"
    )
    assert call.args == (
        account.id,
        account.email,
        account.password_hash,
        account.role,
        True,
        FIXED_NOW,
        FIXED_NOW,
    )
    assert call.timeout == 3.0


@pytest.mark.asyncio
async def test_insert_without_id_is_rejected_before_sql():
    ex = FakeExecutor()

    with pytest.raises(AlreadyExists):
        await repository.insert_account(ex, make_account(id=""))
    assert ex.calls == []


@pytest.mark.asyncio
async def test_insert_duplicate_maps_to_already_exists():
    import asyncpg

    ex = FakeExecutor(error=asyncpg.exceptions.UniqueViolationError("duplicate key"))

    with pytest.raises(AlreadyExists):
        await repository.insert_account(ex, make_account())


@pytest.mark.asyncio
async def test_update_only_writes_present_fields():
    ex = FakeExecutor(affected=1)
    later = FIXED_NOW + timedelta(minutes=5)

    await repository.update_account(ex, AccountUpdate(id="1001", updated_at=later, is_active=False))

    assert ex.last.sql == "UPDATE accounts SET updated_at = $1, is_active = $2 WHERE id = $3"
    assert ex.last.args == (later, False, "1001")


@pytest.mark.asyncio
async def test_update_with_no_fields_still_refreshes_updated_at():
    ex = FakeExecutor(affected=1)

    await repository.update_account(ex, AccountUpdate(id="1001", updated_at=FIXED_NOW))

    assert ex.last.sql == "UPDATE accounts SET updated_at = $1 WHERE id = $2"
    assert ex.last.args == (FIXED_NOW, "1001")


@pytest.mark.asyncio
async def test_update_missing_row_is_not_found():
    ex = FakeExecutor(affected=0)

    with pytest.raises(NotFound):
        await repository.update_account(ex, AccountUpdate(id="404", updated_at=FIXED_NOW, role="admin"))


@pytest.mark.asyncio
async def test_delete_missing_row_is_not_found():
    ex = FakeExecutor(affected=0)

    with pytest.raises(NotFound):
        await repository.delete_account(ex, "404")
    assert ex.last.sql == "DELETE FROM accounts WHERE id = $1"
    assert ex.last.args == ("404",)


@pytest.mark.asyncio
async def test_select_without_constraints_reads_everything():
    account = make_account()
    ex = FakeExecutor(rows=[_row(account)])

    found = await repository.select_accounts(ex, AccountFilter())

    assert ex.last.kind == "query"
    assert ex.last.sql == (
        "SELECT id, email, password_hash, role, is_active, created_at, updated_at "
        "FROM accounts WHERE 1=1 ORDER BY id ASC"
    )
    assert ex.last.args == ()
    assert found == [account]


@pytest.mark.asyncio
async def test_select_combines_all_constraints():
    ex = FakeExecutor(rows=[])

    found = await repository.select_accounts(
        ex,
        AccountFilter(ids=["1", "2"], emails=["a@example.com"], is_active=True),
    )

    assert found == []
    assert ex.last.sql.endswith(
        "WHERE 1=1 AND id IN ($1, $2) AND email IN ($3) AND is_active = $4 ORDER BY id ASC"
    )
    assert ex.last.args == ("1", "2", "a@example.com", True)


@pytest.mark.asyncio
async def test_select_inactive_only():
    ex = FakeExecutor(rows=[])

    await repository.select_accounts(ex, AccountFilter(is_active=False))

    assert "AND is_active = $1" in ex.last.sql
    assert ex.last.args == (False,)
