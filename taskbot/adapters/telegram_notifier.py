"""Telegram notification adapter — implements NotificationPort.

Handles are Telegram private-chat ids rendered as strings. Broadcasts and
scheduled jobs send many messages in a row, so a flood-control reply from
Telegram is honoured once before giving up.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta

from telegram import Bot
from telegram.error import RetryAfter

logger = logging.getLogger(__name__)


class TelegramNotifier:
    """Telegram implementation of NotificationPort."""

    def __init__(self, bot: Bot) -> None:
        self._bot = bot

    async def send_message(self, handle: str, text: str) -> None:
        chat_id = int(handle)
        try:
            await self._bot.send_message(chat_id=chat_id, text=text)
        except RetryAfter as exc:
            delay = exc.retry_after
            if isinstance(delay, timedelta):
                delay = delay.total_seconds()
            logger.warning("Flood control for %s, retrying in %ss", handle, delay)
            await asyncio.sleep(delay)
            await self._bot.send_message(chat_id=chat_id, text=text)
        logger.debug("Message sent to %s: %s", handle, text[:50])
