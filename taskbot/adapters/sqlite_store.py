"""SQLite store adapter — implements StorePort over DocumentDB.

DocumentDB is synchronous; every call is wrapped with asyncio.to_thread so
store I/O never blocks the event loop.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3

from taskbot.data.db import DocumentDB
from taskbot.ports.store_port import StoreUnavailable

logger = logging.getLogger(__name__)


class SQLiteStoreAdapter:
    """SQLite implementation of StorePort."""

    def __init__(self, db_path: str | None = None) -> None:
        try:
            self._db = DocumentDB(db_path=db_path)
        except (sqlite3.Error, OSError) as exc:
            logger.error("SQLite store init failed: %s", exc)
            raise StoreUnavailable(f"Failed to open store: {exc}") from exc

    async def _run(self, op: str, func, *args):
        try:
            return await asyncio.to_thread(func, *args)
        except sqlite3.Error as exc:
            logger.error("SQLite error (%s): %s", op, exc)
            raise StoreUnavailable(f"Store {op} failed: {exc}") from exc

    async def ping(self) -> None:
        await self._run("ping", self._db.ping)

    async def get(self, collection: str, doc_id: str) -> dict | None:
        return await self._run("get", self._db.get, collection, doc_id)

    async def set(
        self, collection: str, doc_id: str, document: dict, merge: bool = False,
    ) -> None:
        await self._run("set", self._db.set, collection, doc_id, document, merge)

    async def get_all(self, collection: str) -> dict[str, dict]:
        return await self._run("get_all", self._db.get_all, collection)

    async def query(
        self, collection: str, field: str, value: object,
    ) -> dict[str, dict]:
        return await self._run("query", self._db.query, collection, field, value)

    async def add(self, collection: str, document: dict) -> str:
        return await self._run("add", self._db.add, collection, document)
