"""Error taxonomy for task and session operations.

Every operation-level failure derives from TaskBotError so the session
dispatcher can turn it into a single user-facing reply.
"""

from __future__ import annotations


class TaskBotError(Exception):
    """Base class for failures reported back to the user."""


class NotFound(TaskBotError):
    """Task id unknown, or the task belongs to someone else."""


class AlreadyCompleted(TaskBotError):
    """Mutation attempted on a completed task."""


class InvalidFormat(TaskBotError):
    """User input is missing a required part."""


class PermissionDenied(TaskBotError):
    """A non-admin handle invoked an admin-only command."""


class StoreUnavailable(TaskBotError):
    """The document store failed or could not be reached."""
