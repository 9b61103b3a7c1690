"""Shared test fixtures and configuration.

Sets up fake environment variables so taskbot.config doesn't sys.exit(),
and provides common fixtures like a temp document store and a fixed clock.
"""

import os
import tempfile

# Patch env vars BEFORE any taskbot imports
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "fake-token-for-tests")
os.environ.setdefault("ADMIN_HANDLE", "999")
# DocumentDB opens a connection per call, so the default path must be a file
os.environ.setdefault(
    "DATABASE_PATH",
    os.path.join(tempfile.mkdtemp(prefix="taskbot-tests-"), "taskbot.db"),
)
os.environ.setdefault("TIMEZONE", "Asia/Kolkata")
os.environ.setdefault("COMMAND_PREFIX", "/")

from datetime import datetime, timedelta
from unittest.mock import AsyncMock
from zoneinfo import ZoneInfo

import pytest

TZ = ZoneInfo("Asia/Kolkata")


class FixedClock:
    """A clock tests can set and advance."""

    def __init__(self, now: datetime) -> None:
        self.current = now

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite DB path."""
    return str(tmp_path / "test_taskbot.db")


@pytest.fixture
def document_db(tmp_db_path):
    """Return a DocumentDB instance backed by a temp file."""
    from taskbot.data.db import DocumentDB
    return DocumentDB(db_path=tmp_db_path)


@pytest.fixture
def store(tmp_db_path):
    """Return a SQLiteStoreAdapter backed by a temp file."""
    from taskbot.adapters.sqlite_store import SQLiteStoreAdapter
    return SQLiteStoreAdapter(db_path=tmp_db_path)


@pytest.fixture
def clock():
    """A fixed clock at Wednesday 2026-03-18 10:00 Asia/Kolkata."""
    return FixedClock(datetime(2026, 3, 18, 10, 0, tzinfo=TZ))


@pytest.fixture
def engine(store, clock):
    """Return a TaskEngine over the temp store with a fixed clock."""
    from taskbot.core.task_engine import TaskEngine
    return TaskEngine(store, clock=clock)


@pytest.fixture
def notifier():
    """A NotificationPort double."""
    mock = AsyncMock()
    mock.send_message = AsyncMock()
    return mock


@pytest.fixture
def spawned():
    """Coroutines handed to the session engine for background execution."""
    return []


@pytest.fixture
def sessions(engine, store, notifier, spawned):
    """Return a SessionEngine whose background work is captured, not run."""
    from taskbot.core.session import SessionEngine
    return SessionEngine(engine, store, notifier=notifier, spawn=spawned.append)
