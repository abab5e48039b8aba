"""Tests for the SQLite balance store.

This module tests the open/add/close window and that balances keep their
decimal precision.
"""

import tempfile
from decimal import Decimal
from pathlib import Path

import pytest

from bankfetch.store import DataStoreError, SqliteBalanceStore

from tests.conftest import make_balance


@pytest.fixture
async def balance_store():
    """Create a temporary, opened balance store for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = str(Path(tmpdir) / "nested" / "balances.db")
        store = SqliteBalanceStore(db_path=db_path)
        await store.open()
        yield store
        await store.close()


@pytest.mark.asyncio
async def test_add_and_list_balances(balance_store):
    """Balances come back newest first with all fields."""
    await balance_store.add_balance(make_balance("ING", "111", "100.50"))
    await balance_store.add_balance(make_balance("ING", "222", "-20.00"))

    rows = await balance_store.list_balances()

    assert [row["account_number"] for row in rows] == ["222", "111"]
    assert rows[0]["institution"] == "ING"
    assert rows[0]["account_name"] == "ING account 222"
    assert rows[0]["run_id"] == balance_store.run_id
    assert "recorded_at" in rows[0]


@pytest.mark.asyncio
async def test_decimal_precision_preserved(balance_store):
    await balance_store.add_balance(make_balance("ING", "1", "12345678901234.57"))

    rows = await balance_store.list_balances(limit=1)

    assert rows[0]["balance"] == Decimal("12345678901234.57")


@pytest.mark.asyncio
async def test_list_limit(balance_store):
    for i in range(5):
        await balance_store.add_balance(make_balance("ING", str(i), "1"))

    assert len(await balance_store.list_balances(limit=3)) == 3


@pytest.mark.asyncio
async def test_add_balance_outside_window(tmp_path):
    store = SqliteBalanceStore(str(tmp_path / "balances.db"))
    assert not store.is_open

    with pytest.raises(DataStoreError):
        await store.add_balance(make_balance("ING", "1", "1"))

    await store.open()
    assert store.is_open
    await store.close()
    assert not store.is_open

    with pytest.raises(DataStoreError):
        await store.add_balance(make_balance("ING", "1", "1"))


@pytest.mark.asyncio
async def test_open_twice_rejected(balance_store):
    with pytest.raises(DataStoreError, match="already open"):
        await balance_store.open()


@pytest.mark.asyncio
async def test_balances_persist_across_runs(tmp_path):
    db_path = str(tmp_path / "balances.db")

    first = SqliteBalanceStore(db_path)
    await first.open()
    await first.add_balance(make_balance("ING", "1", "5"))
    await first.close()
    await first.close()

    second = SqliteBalanceStore(db_path)
    await second.open()
    try:
        rows = await second.list_balances()
    finally:
        await second.close()

    assert len(rows) == 1
    assert rows[0]["run_id"] == first.run_id
    assert second.run_id != first.run_id
