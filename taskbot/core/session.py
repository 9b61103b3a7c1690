"""
Team Task Bot — Session State Machine.

Every inbound message is classified against the sender's current session
state and routed through TRANSITIONS, a closed table keyed by
(SessionState, InputClass). Each handler returns an Outcome: the single
reply to send and the state to move to.

The session is persisted separately from the profile (sessions/<handle>).
A pending input is cleared before its payload is applied and put back if
applying it fails, so a resent message is never applied twice.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from enum import Enum
from functools import wraps
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Coroutine

from taskbot.config import settings
from taskbot.core import aggregation, messages
from taskbot.core.broadcast import send_broadcast
from taskbot.core.errors import (
    AlreadyCompleted,
    InvalidFormat,
    NotFound,
    PermissionDenied,
    StoreUnavailable,
    TaskBotError,
)
from taskbot.core.keyed_lock import KeyedLock
from taskbot.data.models import SESSIONS, UNKNOWN_NAME

if TYPE_CHECKING:
    from taskbot.core.task_engine import TaskEngine
    from taskbot.ports.notification_port import NotificationPort
    from taskbot.ports.store_port import StorePort

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# States, inputs, transitions
# ---------------------------------------------------------------------------


class SessionState(str, Enum):
    MAIN = "main"
    NAME_INPUT = "name_input"
    ADD_TASK = "add_task"
    COMPLETE_TASK = "complete_task"
    EDIT_TASK = "edit_task"


class InputClass(Enum):
    BACK = "back"            # escape hatch while awaiting input
    PAYLOAD = "payload"      # free-form input for the pending operation
    MENU = "menu"            # single digit 0-9
    COMMAND = "command"      # legacy prefixed command
    GREETING = "greeting"
    CHECKIN = "checkin"
    OTHER = "other"


@dataclass(frozen=True)
class Session:
    """A user's conversational position."""

    state: SessionState = SessionState.MAIN

    @property
    def awaiting_input(self) -> bool:
        return self.state is not SessionState.MAIN

    @property
    def input_type(self) -> str | None:
        return self.state.value if self.awaiting_input else None

    @classmethod
    def from_document(cls, doc: dict) -> Session:
        if not doc.get("waitingForInput"):
            return cls()
        try:
            return cls(SessionState(doc.get("inputType") or doc.get("currentMenu")))
        except ValueError:
            return cls()

    def to_document(self) -> dict:
        return {
            "currentMenu": self.state.value,
            "waitingForInput": self.awaiting_input,
            "inputType": self.input_type,
        }


@dataclass(frozen=True)
class InboundMessage:
    """A normalized one-to-one chat message."""

    sender: str
    text: str


@dataclass(frozen=True)
class Outcome:
    reply: str
    next_state: SessionState


ESCAPE_TOKENS = frozenset({"back", "0"})
GREETING_WORDS = frozenset({"hello", "hi", "hey", "start"})
CHECKIN_PHRASES = ("daily task", "task check", "aaj kya kaam kiye")

_MENU_RE = re.compile(r"[0-9]")
_WORD_RE = re.compile(r"[a-z]+")

_AWAITING = (
    SessionState.NAME_INPUT,
    SessionState.ADD_TASK,
    SessionState.COMPLETE_TASK,
    SessionState.EDIT_TASK,
)

TRANSITIONS: dict[tuple[SessionState, InputClass], str] = {
    **{(state, InputClass.BACK): "_on_back" for state in _AWAITING},
    (SessionState.NAME_INPUT, InputClass.PAYLOAD): "_on_name",
    (SessionState.ADD_TASK, InputClass.PAYLOAD): "_on_add_task",
    (SessionState.COMPLETE_TASK, InputClass.PAYLOAD): "_on_complete_task",
    (SessionState.EDIT_TASK, InputClass.PAYLOAD): "_on_edit_task",
    (SessionState.MAIN, InputClass.MENU): "_on_menu",
    (SessionState.MAIN, InputClass.COMMAND): "_on_command",
    (SessionState.MAIN, InputClass.GREETING): "_on_greeting",
    (SessionState.MAIN, InputClass.CHECKIN): "_on_checkin",
    (SessionState.MAIN, InputClass.OTHER): "_on_other",
}

# Menu options that open an input prompt
MENU_PROMPTS: dict[str, tuple[SessionState, str]] = {
    "1": (SessionState.ADD_TASK, messages.ADD_TASK_PROMPT),
    "3": (SessionState.COMPLETE_TASK, messages.COMPLETE_TASK_PROMPT),
    "4": (SessionState.EDIT_TASK, messages.EDIT_TASK_PROMPT),
}


def classify(session: Session, text: str) -> InputClass:
    """Decide how `text` is read given the current session."""
    stripped = text.strip()
    lowered = stripped.lower()

    if session.awaiting_input:
        if lowered in ESCAPE_TOKENS:
            return InputClass.BACK
        return InputClass.PAYLOAD

    if _MENU_RE.fullmatch(stripped):
        return InputClass.MENU
    if settings.COMMAND_PREFIX and stripped.startswith(settings.COMMAND_PREFIX):
        return InputClass.COMMAND
    if GREETING_WORDS & set(_WORD_RE.findall(lowered)):
        return InputClass.GREETING
    if any(phrase in lowered for phrase in CHECKIN_PHRASES):
        return InputClass.CHECKIN
    return InputClass.OTHER


def is_admin(handle: str) -> bool:
    return bool(settings.ADMIN_HANDLE) and handle == settings.ADMIN_HANDLE


def admin_only(
    func: Callable[..., Coroutine[Any, Any, str]],
) -> Callable[..., Coroutine[Any, Any, str]]:
    """Decorator for command handlers reserved to the configured admin."""

    @wraps(func)
    async def wrapper(self, message: InboundMessage, *args, **kwargs) -> str:
        if not is_admin(message.sender):
            logger.warning("Admin command refused for %s", message.sender)
            raise PermissionDenied("You don't have permission to use this command!")
        return await func(self, message, *args, **kwargs)

    return wrapper


# ---------------------------------------------------------------------------
# Background work
# ---------------------------------------------------------------------------

_background: set[asyncio.Task] = set()


def _spawn_background(coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
    task = asyncio.create_task(coro)
    _background.add(task)
    task.add_done_callback(_background.discard)
    return task


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class SessionEngine:
    """Turns each inbound message into exactly one reply."""

    def __init__(
        self,
        tasks: TaskEngine,
        store: StorePort,
        notifier: NotificationPort | None = None,
        spawn: Callable[[Coroutine[Any, Any, Any]], Any] | None = None,
    ) -> None:
        self._tasks = tasks
        self._store = store
        self._notifier = notifier
        self._spawn = spawn or _spawn_background
        self._locks = KeyedLock()
        self._commands: dict[str, Callable[..., Awaitable[str]]] = {
            "start": self._cmd_start,
            "help": self._cmd_help,
            "ping": self._cmd_ping,
            "info": self._cmd_info,
            "time": self._cmd_time,
            "task": self._cmd_task,
            "mytasks": self._cmd_mytasks,
            "complete": self._cmd_complete,
            "edit": self._cmd_edit,
            "progress": self._cmd_progress,
            "strike": self._cmd_strike,
            "stats": self._cmd_stats,
            "profile": self._cmd_profile,
            "leaderboard": self._cmd_leaderboard,
            "broadcast": self._cmd_broadcast,
            "teamstats": self._cmd_teamstats,
            "teammembers": self._cmd_teammembers,
            "reset": self._cmd_reset,
        }

    # -- session persistence ----------------------------------------------

    async def get_session(self, handle: str) -> Session:
        doc = await self._store.get(SESSIONS, handle)
        if doc is None:
            return Session()
        return Session.from_document(doc)

    async def _save_session(self, handle: str, session: Session) -> None:
        await self._store.set(SESSIONS, handle, session.to_document())
        logger.debug("Session for %s -> %s", handle, session.state.value)

    async def _restore_session(self, handle: str, session: Session) -> None:
        try:
            await self._save_session(handle, session)
        except StoreUnavailable as exc:
            logger.error("Could not restore session for %s: %s", handle, exc)

    # -- entry point ---------------------------------------------------------

    async def handle(self, message: InboundMessage) -> str:
        """Process one inbound message and return the reply text."""
        async with self._locks(message.sender):
            try:
                return await self._dispatch(message)
            except StoreUnavailable as exc:
                logger.error("Store failure while handling %s: %s", message.sender, exc)
                return messages.STORE_ERROR
            except TaskBotError as exc:
                logger.warning("Request from %s refused: %s", message.sender, exc)
                return messages.error(str(exc))
            except Exception:
                logger.exception("Unexpected error while handling %s", message.sender)
                return messages.UNEXPECTED_ERROR

    async def _dispatch(self, message: InboundMessage) -> str:
        handle = message.sender
        profile, is_new = await self._tasks.register(handle)
        doc = await self._store.get(SESSIONS, handle)
        # a profile whose first session write never landed is still unnamed
        if is_new or (doc is None and profile.name == UNKNOWN_NAME):
            await self._save_session(handle, Session(SessionState.NAME_INPUT))
            return messages.REGISTRATION_PROMPT

        session = Session() if doc is None else Session.from_document(doc)
        input_class = classify(session, message.text)
        handler = getattr(self, TRANSITIONS[(session.state, input_class)])

        if not session.awaiting_input:
            outcome: Outcome = await handler(message, profile, session)
            if outcome.next_state is not session.state:
                await self._save_session(handle, Session(outcome.next_state))
            return outcome.reply

        # consume the pending input before applying it; a failure restores the prompt
        await self._save_session(handle, Session())
        try:
            outcome = await handler(message, profile, session)
            if outcome.next_state is not SessionState.MAIN:
                await self._save_session(handle, Session(outcome.next_state))
        except Exception:
            await self._restore_session(handle, session)
            raise
        return outcome.reply

    # -- awaiting-input handlers ---------------------------------------------

    async def _on_back(self, message, profile, session) -> Outcome:
        return Outcome(messages.BACK_TO_MAIN, SessionState.MAIN)

    async def _on_name(self, message, profile, session) -> Outcome:
        name = message.text.strip()
        await self._tasks.rename(message.sender, name)
        return Outcome(messages.name_saved(name), SessionState.MAIN)

    async def _on_add_task(self, message, profile, session) -> Outcome:
        task_id = await self._tasks.create_task(message.sender, message.text.strip())
        return Outcome(messages.task_added(task_id), SessionState.MAIN)

    async def _on_complete_task(self, message, profile, session) -> Outcome:
        try:
            await self._tasks.complete_task(message.sender, message.text.strip())
        except (NotFound, AlreadyCompleted) as exc:
            return Outcome(messages.error(str(exc)), SessionState.MAIN)
        return Outcome(
            f"{messages.TASK_COMPLETED}\n{messages.motivation()}", SessionState.MAIN,
        )

    async def _on_edit_task(self, message, profile, session) -> Outcome:
        parts = message.text.split(maxsplit=1)
        if len(parts) < 2:
            return Outcome(
                "❌ Invalid format! Please provide task ID and new description.\n\n"
                + messages.EDIT_TASK_PROMPT,
                SessionState.EDIT_TASK,
            )
        task_id, description = parts[0], parts[1].strip()
        try:
            await self._tasks.edit_task(message.sender, task_id, description)
        except (NotFound, AlreadyCompleted) as exc:
            return Outcome(messages.error(str(exc)), SessionState.MAIN)
        return Outcome(messages.TASK_EDITED, SessionState.MAIN)

    # -- main-state handlers -------------------------------------------------

    async def _on_menu(self, message, profile, session) -> Outcome:
        option = message.text.strip()
        if option in MENU_PROMPTS:
            next_state, prompt = MENU_PROMPTS[option]
            return Outcome(prompt, next_state)
        if option == "0":
            return Outcome(messages.GOODBYE, SessionState.MAIN)

        handle = message.sender
        if option == "2":
            reply = await self._cmd_mytasks(message, profile, [])
        elif option == "5":
            reply = await self._cmd_progress(message, profile, [])
        elif option == "6":
            reply = await self._cmd_stats(message, profile, [])
        elif option == "7":
            reply = messages.profile(profile, handle)
        elif option == "8":
            reply = await self._cmd_leaderboard(message, profile, [])
        elif option == "9":
            reply = messages.help_text()
        else:
            return Outcome(messages.UNKNOWN_OPTION, SessionState.MAIN)
        return Outcome(f"{reply}\n\n{messages.MENU}", SessionState.MAIN)

    async def _on_command(self, message, profile, session) -> Outcome:
        body = message.text.strip()[len(settings.COMMAND_PREFIX):]
        parts = body.split(maxsplit=1)
        if not parts:
            return Outcome(messages.UNKNOWN_COMMAND, SessionState.MAIN)

        # "/start@SomeBot" -> "start"
        name = parts[0].split("@", 1)[0].lower()
        rest = parts[1] if len(parts) > 1 else ""
        handler = self._commands.get(name)
        if handler is None:
            return Outcome(messages.UNKNOWN_COMMAND, SessionState.MAIN)

        try:
            reply = await handler(message, profile, rest.split(), rest=rest)
        except StoreUnavailable:
            raise
        except TaskBotError as exc:
            logger.warning("/%s from %s refused: %s", name, message.sender, exc)
            reply = messages.error(str(exc))
        return Outcome(reply, SessionState.MAIN)

    async def _on_greeting(self, message, profile, session) -> Outcome:
        return Outcome(messages.greeting(profile.name), SessionState.MAIN)

    async def _on_checkin(self, message, profile, session) -> Outcome:
        return Outcome(messages.CHECKIN_HINT, SessionState.MAIN)

    async def _on_other(self, message, profile, session) -> Outcome:
        return Outcome(messages.NUDGE, SessionState.MAIN)

    # -- commands ------------------------------------------------------------

    async def _cmd_start(self, message, profile, args, rest="") -> str:
        return messages.WELCOME

    async def _cmd_help(self, message, profile, args, rest="") -> str:
        return messages.help_text()

    async def _cmd_ping(self, message, profile, args, rest="") -> str:
        return messages.PING

    async def _cmd_info(self, message, profile, args, rest="") -> str:
        return messages.info_text()

    async def _cmd_time(self, message, profile, args, rest="") -> str:
        return f"🕐 Current time: {messages.format_time(self._tasks.now())}"

    async def _cmd_task(self, message, profile, args, rest="") -> str:
        if not args:
            raise InvalidFormat(
                "Please provide task description!\n"
                f"Example: {settings.COMMAND_PREFIX}task Complete project documentation"
            )
        task_id = await self._tasks.create_task(message.sender, rest.strip())
        return messages.task_added(task_id)

    async def _cmd_mytasks(self, message, profile, args, rest="") -> str:
        tasks = await self._tasks.list_tasks(message.sender)
        return messages.task_list(tasks)

    async def _cmd_complete(self, message, profile, args, rest="") -> str:
        if not args:
            raise InvalidFormat(
                "Please provide task ID!\n"
                f"Example: {settings.COMMAND_PREFIX}complete abc123"
            )
        await self._tasks.complete_task(message.sender, args[0])
        return f"{messages.TASK_COMPLETED}\n{messages.motivation()}"

    async def _cmd_edit(self, message, profile, args, rest="") -> str:
        parts = rest.split(maxsplit=1)
        if len(parts) < 2:
            raise InvalidFormat(
                "Please provide task ID and new description!\n"
                f"Example: {settings.COMMAND_PREFIX}edit abc123 New task description"
            )
        await self._tasks.edit_task(message.sender, parts[0], parts[1].strip())
        return messages.TASK_EDITED

    async def _cmd_progress(self, message, profile, args, rest="") -> str:
        return messages.progress(aggregation.user_progress(profile))

    async def _cmd_stats(self, message, profile, args, rest="") -> str:
        tasks = await self._tasks.list_tasks(message.sender)
        streak = aggregation.completion_streak(tasks, self._tasks.now().date())
        return messages.stats(aggregation.user_progress(profile), streak)

    async def _cmd_profile(self, message, profile, args, rest="") -> str:
        return messages.profile(profile, message.sender)

    async def _cmd_strike(self, message, profile, args, rest="") -> str:
        if args:
            return await self._add_strike(message, profile, args)
        return messages.strikes(profile.strikes)

    @admin_only
    async def _add_strike(self, message, profile, args) -> str:
        target = args[0]
        target_profile = await self._tasks.get_profile(target)
        if target_profile is None:
            raise NotFound(f"No user with handle {target}")
        count = await self._tasks.add_strike(target)
        return f"⚠️ Strike added to {target_profile.name}. Total strikes: {count}"

    async def _cmd_leaderboard(self, message, profile, args, rest="") -> str:
        period = args[0].lower() if args else "all"
        snapshot = await self._tasks.snapshot()
        entries = aggregation.leaderboard(
            snapshot.profiles, snapshot.tasks, period, self._tasks.now(),
        )
        return messages.leaderboard(entries, period)

    @admin_only
    async def _cmd_broadcast(self, message, profile, args, rest="") -> str:
        urgent = bool(args) and args[0].lower() == "!urgent"
        text = rest.strip()
        if urgent:
            text = text.split(maxsplit=1)[1] if len(args) > 1 else ""
        if not text:
            raise InvalidFormat(
                "Please provide message to broadcast!\n"
                f"Example: {settings.COMMAND_PREFIX}broadcast Team meeting at 3 PM"
            )
        if self._notifier is None:
            raise InvalidFormat("Broadcasting is not available right now.")

        self._spawn(self._run_broadcast(text, urgent))
        return f"📢 Broadcast is being sent to all active users: {text}"

    async def _run_broadcast(self, text: str, urgent: bool) -> None:
        try:
            await send_broadcast(self._notifier, self._tasks, self._store, text, urgent)
        except Exception as exc:
            logger.error("Broadcast failed: %s", exc)

    @admin_only
    async def _cmd_teamstats(self, message, profile, args, rest="") -> str:
        snapshot = await self._tasks.snapshot()
        stats = aggregation.team_stats(
            snapshot.profiles, snapshot.tasks, self._tasks.today(),
        )
        return messages.team_stats(stats)

    @admin_only
    async def _cmd_teammembers(self, message, profile, args, rest="") -> str:
        profiles = await self._tasks.list_profiles()
        return messages.team_members(aggregation.team_members(profiles))

    @admin_only
    async def _cmd_reset(self, message, profile, args, rest="") -> str:
        target = args[0] if args else message.sender
        if target == message.sender:
            # the caller's own lock is already held
            await self._save_session(target, Session())
            return "🔄 Your session has been reset."

        if await self._tasks.get_profile(target) is None:
            raise NotFound(f"No user with handle {target}")
        async with self._locks(target):
            await self._save_session(target, Session())
        logger.info("Session for %s reset by admin", target)
        return f"🔄 Session for {target} has been reset."
