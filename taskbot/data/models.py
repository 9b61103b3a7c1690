"""
Team Task Bot — Data Models.

Profiles, tasks and broadcasts are stored as documents keyed by id. The
document keys stay camelCase because the admin dashboard reads the same
collections directly.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

USERS = "users"
TASKS = "tasks"
SESSIONS = "sessions"
BROADCASTS = "broadcasts"

UNKNOWN_NAME = "Unknown User"


def _count(value: object) -> int:
    """A stored counter as an int; 0 when missing or unparseable."""
    try:
        return int(float(value or 0))
    except (TypeError, ValueError, OverflowError):
        return 0


class TaskStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


@dataclass
class UserProfile:
    """A team member known to the bot, keyed by chat handle."""

    handle: str
    name: str = UNKNOWN_NAME
    total_tasks: int = 0
    completed_tasks: int = 0
    strikes: int = 0
    last_active: str = ""
    registered_at: str = ""
    is_active: bool = True

    @classmethod
    def from_document(cls, handle: str, doc: dict) -> UserProfile:
        # Dashboard-written documents may omit any field
        return cls(
            handle=handle,
            name=doc.get("userName") or UNKNOWN_NAME,
            total_tasks=_count(doc.get("totalTasks")),
            completed_tasks=_count(doc.get("completedTasks")),
            strikes=_count(doc.get("strikes")),
            last_active=doc.get("lastActive") or "",
            registered_at=doc.get("registeredAt") or "",
            is_active=doc.get("isActive") is not False,
        )

    def to_document(self) -> dict:
        return {
            "userId": self.handle,
            "userName": self.name,
            "totalTasks": self.total_tasks,
            "completedTasks": self.completed_tasks,
            "strikes": self.strikes,
            "lastActive": self.last_active,
            "registeredAt": self.registered_at,
            "isActive": self.is_active,
        }


@dataclass
class Task:
    """A single task owned by the user who created it.

    Once completed, the description is frozen and completed_at never changes.
    """

    id: str
    owner: str                        # owner handle
    owner_name: str                   # denormalized display name at creation
    description: str
    status: TaskStatus = TaskStatus.PENDING
    created_at: str = ""              # ISO-8601 with offset
    date: str = ""                    # YYYY-MM-DD, local calendar day
    completed_at: str | None = None
    updated_at: str | None = None

    @property
    def is_completed(self) -> bool:
        return self.status is TaskStatus.COMPLETED

    @classmethod
    def from_document(cls, task_id: str, doc: dict) -> Task:
        try:
            status = TaskStatus(doc.get("status", "pending"))
        except ValueError:
            status = TaskStatus.PENDING
        return cls(
            id=doc.get("id") or task_id,
            owner=str(doc.get("userId", "")),
            owner_name=doc.get("userName") or UNKNOWN_NAME,
            description=doc.get("description", ""),
            status=status,
            created_at=doc.get("createdAt") or "",
            date=doc.get("date") or "",
            completed_at=doc.get("completedAt"),
            updated_at=doc.get("updatedAt"),
        )

    def to_document(self) -> dict:
        return {
            "id": self.id,
            "userId": self.owner,
            "userName": self.owner_name,
            "description": self.description,
            "status": self.status.value,
            "createdAt": self.created_at,
            "date": self.date,
            "completedAt": self.completed_at,
            "updatedAt": self.updated_at,
        }


@dataclass
class BroadcastRecord:
    """An administrator broadcast. Append-only."""

    message: str
    timestamp: str
    recipients: int
    urgent: bool = False

    def to_document(self) -> dict:
        return {
            "message": self.message,
            "timestamp": self.timestamp,
            "recipients": self.recipients,
            "urgent": self.urgent,
        }
