"""
Team Task Bot — Document Database.

A small document store on top of SQLite: every collection holds JSON
documents keyed by id. Writes are atomic per document; there are no
multi-document transactions.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from pathlib import Path

logger = logging.getLogger(__name__)


class DocumentDB:
    """SQLite-backed storage for JSON documents grouped in collections."""

    def __init__(self, db_path: str | None = None) -> None:
        if db_path is None:
            from taskbot.config import settings
            db_path = settings.DATABASE_PATH

        self._db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, timeout=10)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        """Create the documents table if it doesn't exist."""
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS documents (
                    collection  TEXT NOT NULL,
                    doc_id      TEXT NOT NULL,
                    body        TEXT NOT NULL,
                    PRIMARY KEY (collection, doc_id)
                )
            """)
        logger.debug("Documents table initialized at %s", self._db_path)

    def ping(self) -> None:
        """Run a trivial query; raises sqlite3.Error if the DB is unusable."""
        with self._connect() as conn:
            conn.execute("SELECT COUNT(*) FROM documents").fetchone()

    def get(self, collection: str, doc_id: str) -> dict | None:
        """Fetch a single document, or None if absent."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT body FROM documents WHERE collection = ? AND doc_id = ?",
                (collection, doc_id),
            ).fetchone()
        if row is None:
            return None
        return json.loads(row["body"])

    def set(
        self, collection: str, doc_id: str, document: dict, merge: bool = False,
    ) -> None:
        """Write a document.

        With merge=True the given top-level fields are merged into the
        stored document; the read and the write happen in one IMMEDIATE
        transaction so concurrent merges on the same document cannot
        interleave.
        """
        conn = self._connect()
        conn.isolation_level = None
        try:
            conn.execute("BEGIN IMMEDIATE")
            body = dict(document)
            if merge:
                row = conn.execute(
                    "SELECT body FROM documents WHERE collection = ? AND doc_id = ?",
                    (collection, doc_id),
                ).fetchone()
                if row is not None:
                    body = {**json.loads(row["body"]), **document}
            # ON CONFLICT keeps the rowid, so get_all order is insertion order
            conn.execute(
                """
                INSERT INTO documents (collection, doc_id, body) VALUES (?, ?, ?)
                ON CONFLICT (collection, doc_id) DO UPDATE SET body = excluded.body
                """,
                (collection, doc_id, json.dumps(body)),
            )
            conn.execute("COMMIT")
        except BaseException:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        finally:
            conn.close()
        logger.debug("Document saved: %s/%s", collection, doc_id)

    def get_all(self, collection: str) -> dict[str, dict]:
        """Return every document in a collection, in insertion order."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT doc_id, body FROM documents WHERE collection = ? ORDER BY rowid",
                (collection,),
            ).fetchall()
        return {r["doc_id"]: json.loads(r["body"]) for r in rows}

    def query(self, collection: str, field: str, value: object) -> dict[str, dict]:
        """Return documents whose top-level `field` equals `value`.

        Values are compared as text, so a handle stored as a JSON number
        matches its string form.
        """
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT doc_id, body FROM documents
                WHERE collection = ?
                  AND CAST(json_extract(body, ?) AS TEXT) = CAST(? AS TEXT)
                ORDER BY rowid
                """,
                (collection, f'$."{field}"', value),
            ).fetchall()
        return {r["doc_id"]: json.loads(r["body"]) for r in rows}

    def add(self, collection: str, document: dict) -> str:
        """Append a document under a generated id and return the id."""
        doc_id = uuid.uuid4().hex
        self.set(collection, doc_id, document)
        return doc_id
