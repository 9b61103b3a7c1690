"""
Team Task Bot — Broadcasts.

Sends one administrator message to every active profile and appends a
record to the broadcasts collection. Meant to run as a background task so a
long fan-out never holds up inbound messages.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from taskbot.data.models import BROADCASTS, BroadcastRecord

if TYPE_CHECKING:
    from taskbot.core.task_engine import TaskEngine
    from taskbot.ports.notification_port import NotificationPort
    from taskbot.ports.store_port import StorePort

logger = logging.getLogger(__name__)


def compose(text: str, urgent: bool = False) -> str:
    return f"🚨 URGENT: {text}" if urgent else f"📢 {text}"


async def send_broadcast(
    notifier: NotificationPort,
    engine: TaskEngine,
    store: StorePort,
    text: str,
    urgent: bool = False,
) -> BroadcastRecord:
    """Deliver `text` to all active users and record the broadcast.

    Per-recipient send failures are logged and skipped; `recipients` counts
    successful deliveries only.
    """
    message = compose(text, urgent)
    profiles = await engine.list_profiles()

    delivered = 0
    for profile in profiles:
        if not profile.is_active:
            continue
        try:
            await notifier.send_message(profile.handle, message)
            delivered += 1
        except Exception as exc:
            logger.error("Failed to broadcast to %s: %s", profile.handle, exc)

    record = BroadcastRecord(
        message=message,
        timestamp=engine.now().isoformat(),
        recipients=delivered,
        urgent=urgent,
    )
    await store.add(BROADCASTS, record.to_document())
    logger.info("Broadcast delivered to %d user(s)", delivered)
    return record
