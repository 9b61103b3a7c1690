"""Store port — abstract interface for the document store.

Core modules depend on this protocol, never on a specific database.
Implementations raise StoreUnavailable for any backend failure.
"""

from __future__ import annotations

from typing import Protocol

from taskbot.core.errors import StoreUnavailable

__all__ = ["StorePort", "StoreUnavailable"]


class StorePort(Protocol):
    """Document store interface used by core modules."""

    async def ping(self) -> None: ...

    async def get(self, collection: str, doc_id: str) -> dict | None: ...

    async def set(
        self, collection: str, doc_id: str, document: dict, merge: bool = False,
    ) -> None: ...

    async def get_all(self, collection: str) -> dict[str, dict]: ...

    async def query(
        self, collection: str, field: str, value: object,
    ) -> dict[str, dict]: ...

    async def add(self, collection: str, document: dict) -> str: ...
