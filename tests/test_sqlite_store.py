"""Tests for taskbot.adapters.sqlite_store — async StorePort over SQLite."""

import sqlite3
from unittest.mock import patch

import pytest

from taskbot.adapters.sqlite_store import SQLiteStoreAdapter
from taskbot.core.errors import StoreUnavailable


@pytest.mark.asyncio
async def test_set_get_round_trip(store):
    await store.set("users", "111", {"userName": "Alice"})
    assert await store.get("users", "111") == {"userName": "Alice"}


@pytest.mark.asyncio
async def test_merge(store):
    await store.set("users", "111", {"userName": "Alice", "strikes": 0})
    await store.set("users", "111", {"strikes": 2}, merge=True)
    assert await store.get("users", "111") == {"userName": "Alice", "strikes": 2}


@pytest.mark.asyncio
async def test_query_and_get_all(store):
    await store.set("tasks", "t1", {"userId": "111"})
    await store.set("tasks", "t2", {"userId": "222"})
    assert list(await store.query("tasks", "userId", "222")) == ["t2"]
    assert list(await store.get_all("tasks")) == ["t1", "t2"]


@pytest.mark.asyncio
async def test_add_returns_new_id(store):
    doc_id = await store.add("broadcasts", {"message": "hi"})
    assert await store.get("broadcasts", doc_id) == {"message": "hi"}


@pytest.mark.asyncio
async def test_ping(store):
    await store.ping()


@pytest.mark.asyncio
async def test_sqlite_errors_become_store_unavailable(store):
    with patch.object(store._db, "get", side_effect=sqlite3.OperationalError("locked")):
        with pytest.raises(StoreUnavailable, match="get"):
            await store.get("users", "111")


def test_init_failure_raises_store_unavailable(tmp_path):
    # a directory cannot be opened as a database file
    with pytest.raises(StoreUnavailable):
        SQLiteStoreAdapter(db_path=str(tmp_path))
