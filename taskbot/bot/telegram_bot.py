"""
Team Task Bot — Telegram Bot.

Telegram is the chat transport: every private message is normalized into an
InboundMessage and handed to the SessionEngine, whose reply goes straight
back to the sender. Scheduled reminders run on the application's JobQueue.

Only one-to-one chats are served: group, channel and bot-authored messages
are ignored.
"""

from __future__ import annotations

import logging
import sys
from datetime import time as dt_time
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

from telegram import Update
from telegram.constants import ChatType
from telegram.ext import (
    Application,
    ApplicationBuilder,
    ContextTypes,
    MessageHandler,
    filters,
)

from taskbot.config import settings
from taskbot.core.errors import StoreUnavailable
from taskbot.core.session import InboundMessage, SessionEngine
from taskbot.core.task_engine import TaskEngine

if TYPE_CHECKING:
    from taskbot.ports.notification_port import NotificationPort
    from taskbot.ports.store_port import StorePort

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Inbound normalization
# ---------------------------------------------------------------------------


def normalize_update(update: Update, bot_id: int | None = None) -> InboundMessage | None:
    """Reduce a Telegram update to (sender, text), or None if it must be ignored.

    Ignored: non-private chats, messages from the bot itself, and messages
    without text.
    """
    message = update.effective_message
    chat = update.effective_chat
    user = update.effective_user
    if message is None or chat is None:
        return None

    if chat.type != ChatType.PRIVATE:
        logger.warning("Non-private message ignored (chat %s)", chat.id)
        return None

    if user is not None and (user.is_bot or (bot_id is not None and user.id == bot_id)):
        return None

    text = (message.text or message.caption or "").strip()
    if not text:
        return None

    return InboundMessage(sender=str(chat.id), text=text)


# ---------------------------------------------------------------------------
# Message handler
# ---------------------------------------------------------------------------


async def handle_message(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Route one private message through the session engine and reply."""
    inbound = normalize_update(update, bot_id=context.bot.id)
    if inbound is None:
        return

    logger.info("Received %r from %s", inbound.text[:50], inbound.sender)
    sessions: SessionEngine = context.bot_data["sessions"]
    reply = await sessions.handle(inbound)
    await update.effective_message.reply_text(reply)


async def _handle_error(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    logger.error("Unhandled error while processing an update: %s", context.error)


# ---------------------------------------------------------------------------
# App builder
# ---------------------------------------------------------------------------


def build_app(
    store: StorePort | None = None,
    notifier: NotificationPort | None = None,
) -> Application:
    """Build and configure the Telegram Application.

    Args:
        store: Document store. Defaults to SQLiteStoreAdapter on DATABASE_PATH.
        notifier: Notification port implementation. Defaults to TelegramNotifier
                  (created from the bot instance after app is built).
    """
    # Different users are processed in parallel; SessionEngine serializes
    # messages from the same user.
    app = (
        ApplicationBuilder()
        .token(settings.TELEGRAM_BOT_TOKEN)
        .concurrent_updates(True)
        .post_init(_check_store)
        .build()
    )

    if store is None:
        from taskbot.adapters.sqlite_store import SQLiteStoreAdapter
        store = SQLiteStoreAdapter()

    if notifier is None:
        from taskbot.adapters.telegram_notifier import TelegramNotifier
        notifier = TelegramNotifier(app.bot)

    engine = TaskEngine(store)
    sessions = SessionEngine(engine, store, notifier=notifier, spawn=app.create_task)

    app.bot_data["store"] = store
    app.bot_data["notifier"] = notifier
    app.bot_data["engine"] = engine
    app.bot_data["sessions"] = sessions

    app.add_handler(MessageHandler(filters.TEXT & filters.ChatType.PRIVATE, handle_message))
    app.add_error_handler(_handle_error)

    _setup_schedules(app, engine, notifier)

    logger.info("Telegram bot application built with %d handlers", len(app.handlers[0]))
    return app


def _setup_schedules(
    app: Application,
    engine: TaskEngine,
    notifier: NotificationPort,
) -> None:
    """Register the morning, evening and weekly jobs in TIMEZONE."""
    from taskbot.core.scheduler import (
        send_evening_checkins,
        send_morning_reminders,
        send_weekly_strike_report,
    )

    tz = ZoneInfo(settings.TIMEZONE)

    async def _morning_job(context: ContextTypes.DEFAULT_TYPE) -> None:
        await send_morning_reminders(notifier, engine)

    async def _evening_job(context: ContextTypes.DEFAULT_TYPE) -> None:
        await send_evening_checkins(notifier, engine)

    async def _weekly_job(context: ContextTypes.DEFAULT_TYPE) -> None:
        await send_weekly_strike_report(notifier, engine)

    app.job_queue.run_daily(
        _morning_job,
        time=dt_time(hour=settings.MORNING_REMINDER_HOUR, minute=0, tzinfo=tz),
        name="morning_reminder",
    )
    app.job_queue.run_daily(
        _evening_job,
        time=dt_time(hour=settings.EVENING_CHECKIN_HOUR, minute=0, tzinfo=tz),
        name="evening_checkin",
    )
    # days: 0 = Sunday
    app.job_queue.run_daily(
        _weekly_job,
        time=dt_time(hour=settings.WEEKLY_REPORT_HOUR, minute=0, tzinfo=tz),
        days=(0,),
        name="weekly_strike_report",
    )

    logger.info(
        "Reminders scheduled at %02d:00 and %02d:00, strike report Sundays %02d:00 %s",
        settings.MORNING_REMINDER_HOUR,
        settings.EVENING_CHECKIN_HOUR,
        settings.WEEKLY_REPORT_HOUR,
        settings.TIMEZONE,
    )


async def _check_store(app: Application) -> None:
    """post_init hook: refuse to start when the store is unreachable."""
    store: StorePort = app.bot_data["store"]
    await store.ping()
    logger.info("Document store reachable")


def main() -> None:
    """Entry point: build the app and start polling."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    # python-telegram-bot's HTTP client logs every poll at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logger.info("Starting %s v%s...", settings.BOT_NAME, settings.BOT_VERSION)
    # Fail fast: an unreachable store aborts startup, either when the
    # adapter opens the DB or when post_init probes it.
    try:
        app = build_app()
        app.run_polling(allowed_updates=Update.ALL_TYPES)
    except StoreUnavailable as exc:
        logger.error("Document store unavailable: %s", exc)
        print(f"ERROR: cannot reach the document store: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
