"""
Team Task Bot — User-facing texts.

Every reply the bot sends is built here so the session engine and the
scheduler speak with one voice. Messages are plain text (no parse mode):
task descriptions are user input and may contain markup characters.
"""

from __future__ import annotations

import random
from datetime import datetime

from taskbot.config import settings
from taskbot.core.aggregation import LeaderboardEntry, TeamStats, UserProgress
from taskbot.data.models import Task, UserProfile

MENU = (
    "📱 Main Menu:\n\n"
    "1️⃣ Add Task\n"
    "2️⃣ My Tasks\n"
    "3️⃣ Complete Task\n"
    "4️⃣ Edit Task\n"
    "5️⃣ My Progress\n"
    "6️⃣ My Stats\n"
    "7️⃣ My Profile\n"
    "8️⃣ Leaderboard\n"
    "9️⃣ Help\n"
    "0️⃣ Exit\n\n"
    "Reply with a number to select an option"
)

WELCOME = f"👋 Welcome to {settings.BOT_NAME}!\n\n{MENU}"

REGISTRATION_PROMPT = (
    f"🎉 Welcome! You're now registered with {settings.BOT_NAME}!\n\n"
    "Please enter your name to continue:"
)

ADD_TASK_PROMPT = (
    "📝 Add New Task:\n\n"
    "Please type your task description:\n\n"
    "Example: Complete project documentation\n\n"
    "Type 'back' to return to menu"
)

COMPLETE_TASK_PROMPT = (
    "✅ Complete Task:\n\n"
    "Please provide the task ID to complete:\n\n"
    "Type 'back' to return to menu"
)

EDIT_TASK_PROMPT = (
    "✏️ Edit Task:\n\n"
    "Please provide the task ID and new description:\n\n"
    "Format: task_id new_description\n"
    "Example: abc123 Complete updated documentation\n\n"
    "Type 'back' to return to menu"
)

BACK_TO_MAIN = f"👋 Back to the main menu.\n\n{MENU}"
GOODBYE = f"👋 Thank you for using {settings.BOT_NAME}! Type any message to start again."
NUDGE = "👋 Hello! How can I help you today? Reply 9 for help."
CHECKIN_HINT = "📋 Use the 'Add Task' option (1) to add your daily tasks!"
UNKNOWN_OPTION = "❓ Invalid option! Please select from menu (1-9, 0 to exit)"
UNKNOWN_COMMAND = f"❓ Unknown command! Send {settings.COMMAND_PREFIX}help for the command list."
STORE_ERROR = "❌ Database error. Please try again later."
UNEXPECTED_ERROR = "❌ Something went wrong. Please try again later."
NO_TASKS = "📝 No tasks found!"
NO_LEADERBOARD = "📊 No data available for leaderboard"

TASK_ADDED = "✅ Task added successfully!"
TASK_COMPLETED = "🎉 Task marked as completed!"
TASK_EDITED = "✏️ Task updated successfully!"

PING = "🏓 Pong! Bot is online and working!"

MOTIVATIONAL = [
    "💪 Keep pushing forward!",
    "🚀 You're doing great!",
    "⭐ Every task completed is a step closer to success!",
    "🔥 Consistency is the key to success!",
    "💎 Hard work pays off!",
]


def motivation() -> str:
    return random.choice(MOTIVATIONAL)


def help_text() -> str:
    p = settings.COMMAND_PREFIX
    return (
        f"🤖 {settings.BOT_NAME} Help:\n\n"
        "📱 Menu Options:\n"
        "• Add Task - Add new daily task\n"
        "• My Tasks - View all your tasks\n"
        "• Complete Task - Mark task as complete\n"
        "• Edit Task - Edit existing task\n"
        "• My Progress - View your progress\n"
        "• My Stats - Detailed statistics\n"
        "• My Profile - Your profile info\n"
        "• Leaderboard - Global rankings\n"
        "• Help - Show this help\n"
        "• Exit - Close menu\n\n"
        "⌨️ Commands:\n"
        f"{p}task <description> — add a task\n"
        f"{p}mytasks — list your tasks\n"
        f"{p}complete <task_id> — complete a task\n"
        f"{p}edit <task_id> <description> — edit a task\n"
        f"{p}progress, {p}stats, {p}profile, {p}strike\n"
        f"{p}leaderboard [all|week|month]\n"
        f"{p}ping, {p}info, {p}time\n\n"
        f"Bot Version: {settings.BOT_VERSION}"
    )


def info_text() -> str:
    lines = [
        "🤖 Bot Information:",
        f"Name: {settings.BOT_NAME}",
        f"Version: {settings.BOT_VERSION}",
    ]
    if settings.BOT_AUTHOR:
        lines.append(f"Author: {settings.BOT_AUTHOR}")
    lines.append("Status: Online ✅")
    return "\n".join(lines)


def format_time(value: datetime | str) -> str:
    """Human-readable timestamp; 'Unknown' for anything unparseable."""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return value or "Unknown"
    return value.strftime("%d %B %Y, %I:%M %p")


def greeting(name: str) -> str:
    return f"👋 Hello {name}! {WELCOME}"


def name_saved(name: str) -> str:
    return f"✅ Name updated to: {name}\n\n{WELCOME}"


def task_added(task_id: str) -> str:
    return f"{TASK_ADDED}\n📝 Task ID: {task_id}\n{motivation()}"


def error(message: str) -> str:
    return f"❌ Error: {message}"


def task_list(tasks: list[Task]) -> str:
    if not tasks:
        return NO_TASKS
    lines = ["📋 Your Tasks:\n"]
    for i, task in enumerate(tasks, 1):
        mark = "✅" if task.is_completed else "⏳"
        lines.append(f"{i}. {mark} {task.description}\n   ID: {task.id} | {task.date}\n")
    return "\n".join(lines)


def progress(p: UserProgress) -> str:
    return (
        "📊 Your Progress:\n\n"
        f"✅ Completed Tasks: {p.completed_tasks}\n"
        f"📝 Total Tasks: {p.total_tasks}\n"
        f"📈 Completion Rate: {p.completion_rate}%\n"
        f"⚠️ Strikes: {p.strikes}\n\n"
        f"{motivation()}"
    )


def stats(p: UserProgress, streak: int) -> str:
    return (
        "📊 Your Statistics:\n\n"
        f"✅ Completed Tasks: {p.completed_tasks}\n"
        f"📝 Total Tasks: {p.total_tasks}\n"
        f"📈 Completion Rate: {p.completion_rate}%\n"
        f"⚠️ Strikes: {p.strikes}\n"
        f"🏆 Current Streak: {streak} day{'s' if streak != 1 else ''}\n\n"
        f"{motivation()}"
    )


def profile(profile: UserProfile | None, handle: str) -> str:
    if profile is None:
        profile = UserProfile(handle=handle, name="Unknown", is_active=False)
    status = "🟢 Active" if profile.is_active else "🔴 Inactive"
    return (
        "👤 Your Profile:\n\n"
        f"📛 Name: {profile.name}\n"
        f"🆔 User ID: {handle}\n"
        f"📅 Registered: {format_time(profile.registered_at)}\n"
        f"🕐 Last Active: {format_time(profile.last_active)}\n"
        f"📊 Status: {status}\n\n"
        f"{motivation()}"
    )


def strikes(count: int) -> str:
    if count > 0:
        return f"⚠️ You have {count} strike(s)!"
    return "🎉 Great! You have no strikes!"


_MEDALS = ["🥇", "🥈", "🥉"]


def leaderboard(entries: list[LeaderboardEntry], period: str = "all") -> str:
    if not entries:
        return NO_LEADERBOARD
    title = {"all": "Global", "week": "Weekly", "month": "Monthly"}.get(period, "Global")
    lines = [f"🏆 {title} Leaderboard:\n"]
    for i, entry in enumerate(entries):
        medal = _MEDALS[i] if i < len(_MEDALS) else "🏅"
        lines.append(
            f"{medal} {entry.name}\n"
            f"   ✅ {entry.completed_tasks} completed | {entry.completion_rate}% rate\n"
        )
    return "\n".join(lines)


def team_stats(s: TeamStats) -> str:
    return (
        "📊 Team Statistics:\n\n"
        f"👥 Total Users: {s.total_users}\n"
        f"📝 Total Tasks: {s.total_tasks}\n"
        f"✅ Completed: {s.completed_tasks}\n"
        f"⏳ Pending: {s.pending_tasks}\n"
        f"📈 Completion Rate: {s.completion_rate}%\n\n"
        "📅 Today's Stats:\n"
        f"📝 Today's Tasks: {s.today_tasks}\n"
        f"✅ Today's Completed: {s.today_completed}\n"
        f"📈 Today's Rate: {s.today_completion_rate}%"
    )


def team_members(members: list[UserProfile]) -> str:
    if not members:
        return "📊 No team members found!"
    lines = ["👥 Team Members:\n"]
    for i, m in enumerate(members, 1):
        status = "🟢" if m.is_active else "🔴"
        lines.append(
            f"{i}. {status} {m.name} ({m.handle})\n"
            f"   📊 {m.completed_tasks}/{m.total_tasks} tasks | {m.strikes} strikes\n"
            f"   🕐 Last Active: {format_time(m.last_active)}\n"
        )
    return "\n".join(lines)


# -- scheduled messages ------------------------------------------------------


def morning_reminder(name: str, pending_today: list[Task]) -> str:
    p = settings.COMMAND_PREFIX
    if pending_today:
        lines = [
            f"🌅 Good Morning {name}!\n",
            f"📋 You have {len(pending_today)} pending task(s) for today:\n",
        ]
        lines += [f"{i}. {t.description} (ID: {t.id})" for i, t in enumerate(pending_today, 1)]
        lines.append(f"\n💪 Complete them and use {p}complete <task_id> to mark as done!")
    else:
        lines = [
            f"🌅 Good Morning {name}!\n",
            "🎉 Great! You have no pending tasks for today!",
            f"💡 Use {p}task <description> to add new tasks.\n",
        ]
    lines.append(motivation())
    return "\n".join(lines)


def evening_checkin(name: str, today_tasks: list[Task]) -> str:
    p = settings.COMMAND_PREFIX
    done = [t for t in today_tasks if t.is_completed]
    lines = [
        f"🌆 Evening Check-in {name}!\n",
        "📊 Today's Summary:",
        f"✅ Completed: {len(done)}",
        f"⏳ Pending: {len(today_tasks) - len(done)}\n",
    ]
    if done:
        lines.append("🎉 Great work! You completed:")
        lines += [f"{i}. {t.description}" for i, t in enumerate(done, 1)]
        lines.append("")
    else:
        lines.append("💪 Don't worry! Tomorrow is a new opportunity!")
        lines.append(f"Use {p}task <description> to plan for tomorrow.\n")
    lines.append(motivation())
    return "\n".join(lines)


def weekly_strike_report(name: str, strikes: int) -> str:
    if strikes > 0:
        return (
            "⚠️ Weekly Strike Report\n\n"
            f"{name}, you have {strikes} strike(s).\n"
            "Focus on completing your tasks to avoid more strikes!\n\n"
            f"{motivation()}"
        )
    return (
        "📊 Weekly Strike Report\n\n"
        f"🎉 {name}, you have no strikes. Keep it up!\n\n"
        f"{motivation()}"
    )
