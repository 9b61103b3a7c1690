"""
Team Task Bot — Task Lifecycle Engine.

Creates, completes and edits tasks and keeps each profile's counters
(total / completed / strikes) in step with them.

The store only guarantees per-document atomicity, so every mutation that
reads a profile and writes it back runs under a per-handle lock. Two
operations for the same user never interleave; different users proceed in
parallel.
"""

from __future__ import annotations

import logging
import secrets
import string
import time
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Callable
from zoneinfo import ZoneInfo

from taskbot.core.errors import AlreadyCompleted, NotFound
from taskbot.core.keyed_lock import KeyedLock
from taskbot.data.models import TASKS, USERS, Task, TaskStatus, UserProfile

if TYPE_CHECKING:
    from taskbot.ports.store_port import StorePort

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_lowercase


def _to_base36(n: int) -> str:
    digits = []
    while n:
        n, rem = divmod(n, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits)) or "0"


def generate_task_id() -> str:
    """Millisecond timestamp in base 36 followed by 8 random base-36 chars."""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(8))
    return _to_base36(time.time_ns() // 1_000_000) + suffix


def local_now() -> datetime:
    """Current time in the configured timezone."""
    from taskbot.config import settings

    return datetime.now(ZoneInfo(settings.TIMEZONE))


@dataclass(frozen=True)
class Snapshot:
    """All profiles and tasks, read once, for aggregation."""

    profiles: list[UserProfile]
    tasks: list[Task]


class TaskEngine:
    """Task and profile mutations over a StorePort."""

    def __init__(
        self,
        store: StorePort,
        clock: Callable[[], datetime] = local_now,
    ) -> None:
        self._store = store
        self._clock = clock
        self._locks = KeyedLock()

    def now(self) -> datetime:
        return self._clock()

    def today(self) -> str:
        return self._clock().date().isoformat()

    # -- profiles --------------------------------------------------------

    async def get_profile(self, handle: str) -> UserProfile | None:
        doc = await self._store.get(USERS, handle)
        if doc is None:
            return None
        return UserProfile.from_document(handle, doc)

    async def list_profiles(self) -> list[UserProfile]:
        docs = await self._store.get_all(USERS)
        return [UserProfile.from_document(h, d) for h, d in docs.items()]

    async def register(self, handle: str) -> tuple[UserProfile, bool]:
        """Create a profile for an unseen handle, or mark a known one active.

        Returns (profile, is_new).
        """
        async with self._locks(handle):
            now = self.now().isoformat()
            profile = await self.get_profile(handle)
            if profile is None:
                profile = UserProfile(
                    handle=handle, last_active=now, registered_at=now,
                )
                await self._store.set(USERS, handle, profile.to_document())
                logger.info("New user registered: %s (waiting for name)", handle)
                return profile, True

            profile.last_active = now
            profile.is_active = True
            await self._store.set(
                USERS, handle,
                {"lastActive": profile.last_active, "isActive": True},
                merge=True,
            )
            return profile, False

    async def rename(self, handle: str, name: str) -> UserProfile:
        async with self._locks(handle):
            profile = await self.get_profile(handle)
            if profile is None:
                raise NotFound(f"No profile for {handle}")
            profile.name = name
            profile.last_active = self.now().isoformat()
            await self._store.set(
                USERS, handle,
                {"userName": profile.name, "lastActive": profile.last_active},
                merge=True,
            )
        logger.info("User %s renamed to '%s'", handle, name)
        return profile

    async def add_strike(self, handle: str) -> int:
        """Add one strike to a profile and return the new count.

        Not idempotent: each call is +1.
        """
        async with self._locks(handle):
            profile = await self.get_profile(handle)
            if profile is None:
                profile = UserProfile(handle=handle)
            profile.strikes += 1
            profile.last_active = self.now().isoformat()
            await self._store.set(USERS, handle, profile.to_document(), merge=True)
        logger.info("Strike added to %s (now %d)", handle, profile.strikes)
        return profile.strikes

    # -- tasks -----------------------------------------------------------

    async def get_task(self, task_id: str) -> Task | None:
        doc = await self._store.get(TASKS, task_id)
        if doc is None:
            return None
        return Task.from_document(task_id, doc)

    async def list_tasks(
        self, handle: str, status: TaskStatus | None = None,
    ) -> list[Task]:
        """A user's tasks, newest first, optionally filtered by status."""
        docs = await self._store.query(TASKS, "userId", handle)
        tasks = [Task.from_document(tid, d) for tid, d in docs.items()]
        if status is not None:
            tasks = [t for t in tasks if t.status is status]
        # insertion order is creation order, so reversing keeps ties stable
        return list(reversed(tasks))

    async def snapshot(self) -> Snapshot:
        profiles = await self.list_profiles()
        task_docs = await self._store.get_all(TASKS)
        tasks = [Task.from_document(tid, d) for tid, d in task_docs.items()]
        return Snapshot(profiles=profiles, tasks=tasks)

    async def create_task(self, handle: str, description: str) -> str:
        """Store a new pending task and bump the owner's total. Returns the id."""
        async with self._locks(handle):
            now = self.now()
            profile = await self.get_profile(handle) or UserProfile(
                handle=handle, registered_at=now.isoformat(),
            )
            task = Task(
                id=generate_task_id(),
                owner=handle,
                owner_name=profile.name,
                description=description,
                created_at=now.isoformat(),
                date=now.date().isoformat(),
            )
            await self._store.set(TASKS, task.id, task.to_document())

            profile.total_tasks += 1
            profile.last_active = now.isoformat()
            await self._store.set(USERS, handle, profile.to_document(), merge=True)

        logger.info("Task %s created for %s", task.id, handle)
        return task.id

    async def _owned_task(self, handle: str, task_id: str) -> Task:
        task = await self.get_task(task_id)
        if task is None or task.owner != handle:
            raise NotFound("Task not found")
        return task

    async def complete_task(self, handle: str, task_id: str) -> Task:
        """Mark a pending task as completed and bump the owner's counter."""
        async with self._locks(handle):
            task = await self._owned_task(handle, task_id)
            if task.is_completed:
                raise AlreadyCompleted("Task already completed")

            now = self.now().isoformat()
            task.status = TaskStatus.COMPLETED
            task.completed_at = now
            await self._store.set(
                TASKS, task.id,
                {"status": task.status.value, "completedAt": now},
                merge=True,
            )

            profile = await self.get_profile(handle) or UserProfile(handle=handle)
            profile.completed_tasks += 1
            # dashboard-written tasks never bumped totalTasks
            profile.total_tasks = max(profile.total_tasks, profile.completed_tasks)
            profile.last_active = now
            await self._store.set(USERS, handle, profile.to_document(), merge=True)

        logger.info("Task %s completed by %s", task.id, handle)
        return task

    async def edit_task(self, handle: str, task_id: str, description: str) -> Task:
        """Replace the description of a pending task."""
        async with self._locks(handle):
            task = await self._owned_task(handle, task_id)
            if task.is_completed:
                raise AlreadyCompleted("Cannot edit completed task")

            task.description = description
            task.updated_at = self.now().isoformat()
            await self._store.set(
                TASKS, task.id,
                {"description": task.description, "updatedAt": task.updated_at},
                merge=True,
            )
        logger.info("Task %s edited by %s", task.id, handle)
        return task
