"""Tests for taskbot.core.messages — reply formatting."""

from datetime import datetime
from zoneinfo import ZoneInfo

from taskbot.core import messages
from taskbot.core.aggregation import LeaderboardEntry
from taskbot.data.models import Task, TaskStatus, UserProfile


def _entry(name, completed):
    return LeaderboardEntry(
        handle=name, name=name, completed_tasks=completed, total_tasks=completed,
        completion_rate=100, strikes=0,
    )


class TestFormatTime:
    def test_datetime(self):
        value = datetime(2026, 3, 18, 15, 5, tzinfo=ZoneInfo("Asia/Kolkata"))
        assert messages.format_time(value) == "18 March 2026, 03:05 PM"

    def test_iso_string(self):
        assert messages.format_time("2026-03-18T09:00:00+05:30") == "18 March 2026, 09:00 AM"

    def test_legacy_or_empty(self):
        assert messages.format_time("18/3/2026, 9:00:00 am") == "18/3/2026, 9:00:00 am"
        assert messages.format_time("") == "Unknown"


class TestTaskList:
    def test_empty(self):
        assert messages.task_list([]) == messages.NO_TASKS

    def test_marks_and_ids(self):
        tasks = [
            Task(id="abc", owner="1", owner_name="A", description="Done", status=TaskStatus.COMPLETED),
            Task(id="def", owner="1", owner_name="A", description="Todo"),
        ]
        text = messages.task_list(tasks)
        assert "1. ✅ Done" in text
        assert "2. ⏳ Todo" in text
        assert "ID: abc" in text


class TestLeaderboard:
    def test_empty(self):
        assert messages.leaderboard([]) == messages.NO_LEADERBOARD

    def test_medals_then_generic(self):
        entries = [_entry(n, 5 - i) for i, n in enumerate(["A", "B", "C", "D"])]
        text = messages.leaderboard(entries, "month")
        assert text.startswith("🏆 Monthly Leaderboard")
        assert "🥇 A" in text
        assert "🥉 C" in text
        assert "🏅 D" in text


class TestMisc:
    def test_strikes(self):
        assert messages.strikes(0) == "🎉 Great! You have no strikes!"
        assert messages.strikes(3) == "⚠️ You have 3 strike(s)!"

    def test_error(self):
        assert messages.error("Task not found") == "❌ Error: Task not found"

    def test_profile_shows_status(self):
        text = messages.profile(UserProfile(handle="1", name="Alice", is_active=False), "1")
        assert "📛 Name: Alice" in text
        assert "🔴 Inactive" in text

    def test_motivation_is_from_the_list(self):
        assert messages.motivation() in messages.MOTIVATIONAL
