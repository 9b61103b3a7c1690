"""
Team Task Bot — Scheduled Jobs.

Morning Reminder: a 09:00 push listing today's pending tasks (or a nudge to
add some when there are none).

Evening Check-in: an 18:00 summary of what got done today.

Weekly Strike Report: Sunday 10:00, each user's strike count.

Each job walks the profile collection once and sends one message per active
user. Jobs only read: they never touch sessions, so a reminder arriving in
the middle of a conversation doesn't change how the next reply is read.

This module is transport-agnostic: it depends on the NotificationPort
protocol, not on a specific implementation.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Awaitable, Callable

from taskbot.core import messages
from taskbot.data.models import TaskStatus

if TYPE_CHECKING:
    from taskbot.core.task_engine import TaskEngine
    from taskbot.data.models import UserProfile
    from taskbot.ports.notification_port import NotificationPort

logger = logging.getLogger(__name__)


async def _for_each_user(
    job: str,
    engine: TaskEngine,
    notifier: NotificationPort,
    build: Callable[[UserProfile], Awaitable[str]],
) -> int:
    """Send build(profile) to every active user; returns how many got it.

    A failure for one user is logged and the run moves on to the next.
    """
    try:
        profiles = await engine.list_profiles()
    except Exception as exc:
        logger.error("%s: could not load profiles: %s", job, exc)
        return 0

    sent = 0
    for profile in profiles:
        if not profile.is_active:
            continue
        try:
            text = await build(profile)
            await notifier.send_message(profile.handle, text)
            sent += 1
        except Exception as exc:
            logger.error("%s: failed for %s: %s", job, profile.handle, exc)

    logger.info("%s sent to %d user(s)", job, sent)
    return sent


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------


async def send_morning_reminders(notifier: NotificationPort, engine: TaskEngine) -> int:
    """Remind every user of today's pending tasks."""
    today = engine.today()

    async def build(profile: UserProfile) -> str:
        pending = await engine.list_tasks(profile.handle, TaskStatus.PENDING)
        todays = [t for t in pending if t.date == today]
        return messages.morning_reminder(profile.name, todays)

    return await _for_each_user("Morning reminder", engine, notifier, build)


async def send_evening_checkins(notifier: NotificationPort, engine: TaskEngine) -> int:
    """Summarize today's completed and pending tasks for every user."""
    today = engine.today()

    async def build(profile: UserProfile) -> str:
        tasks = await engine.list_tasks(profile.handle)
        todays = [t for t in tasks if t.date == today]
        return messages.evening_checkin(profile.name, todays)

    return await _for_each_user("Evening check-in", engine, notifier, build)


async def send_weekly_strike_report(notifier: NotificationPort, engine: TaskEngine) -> int:
    """Tell every user their current strike count."""

    async def build(profile: UserProfile) -> str:
        return messages.weekly_strike_report(profile.name, profile.strikes)

    return await _for_each_user("Weekly strike report", engine, notifier, build)
