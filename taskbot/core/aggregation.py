"""
Team Task Bot — Aggregation.

Leaderboards and team/individual statistics computed from snapshots of the
profile and task collections. Everything here is a pure function: callers
load the snapshot, these functions never touch the store.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable

from taskbot.core.errors import InvalidFormat
from taskbot.data.models import Task, UserProfile

LEADERBOARD_SIZE = 10

PERIODS = {
    "all": None,
    "week": timedelta(days=7),
    "month": timedelta(days=30),
}


@dataclass(frozen=True)
class LeaderboardEntry:
    handle: str
    name: str
    completed_tasks: int
    total_tasks: int
    completion_rate: int
    strikes: int


@dataclass(frozen=True)
class TeamStats:
    total_users: int
    total_tasks: int
    completed_tasks: int
    pending_tasks: int
    today_tasks: int
    today_completed: int
    completion_rate: int
    today_completion_rate: int


@dataclass(frozen=True)
class UserProgress:
    total_tasks: int = 0
    completed_tasks: int = 0
    strikes: int = 0
    completion_rate: int = 0


def completion_rate(completed: int, total: int) -> int:
    """Percentage of completed tasks, rounded half-up; 0 when total is 0."""
    if total <= 0:
        return 0
    return math.floor(completed / total * 100 + 0.5)


def _parse_timestamp(value: str) -> datetime | None:
    try:
        return datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return None


def _tasks_in_period(
    tasks: Iterable[Task], period: str, now: datetime,
) -> list[Task]:
    if period not in PERIODS:
        raise InvalidFormat(
            f"Unknown period '{period}'. Use one of: {', '.join(PERIODS)}"
        )
    window = PERIODS[period]
    if window is None:
        return list(tasks)

    since = now - window
    selected = []
    for task in tasks:
        created = _parse_timestamp(task.created_at)
        if created is None:
            # legacy locale-formatted timestamps only count for "all"
            continue
        if created.tzinfo is None and now.tzinfo is not None:
            created = created.replace(tzinfo=now.tzinfo)
        if created >= since:
            selected.append(task)
    return selected


def leaderboard(
    profiles: Iterable[UserProfile],
    tasks: Iterable[Task],
    period: str,
    now: datetime,
) -> list[LeaderboardEntry]:
    """Rank active users by tasks completed within `period`.

    Ties keep the order in which profiles were given (stable sort).
    """
    by_owner: dict[str, list[Task]] = {}
    for task in _tasks_in_period(tasks, period, now):
        by_owner.setdefault(task.owner, []).append(task)

    entries = []
    for profile in profiles:
        if not profile.is_active:
            continue
        owned = by_owner.get(profile.handle, [])
        completed = sum(1 for t in owned if t.is_completed)
        entries.append(LeaderboardEntry(
            handle=profile.handle,
            name=profile.name,
            completed_tasks=completed,
            total_tasks=len(owned),
            completion_rate=completion_rate(completed, len(owned)),
            strikes=profile.strikes,
        ))

    entries.sort(key=lambda e: e.completed_tasks, reverse=True)
    return entries[:LEADERBOARD_SIZE]


def team_stats(
    profiles: Iterable[UserProfile], tasks: Iterable[Task], today: str,
) -> TeamStats:
    """Team-wide task counts, overall and for the calendar day `today`."""
    tasks = list(tasks)
    active = sum(1 for p in profiles if p.is_active)
    completed = sum(1 for t in tasks if t.is_completed)
    todays = [t for t in tasks if t.date == today]
    today_completed = sum(1 for t in todays if t.is_completed)

    return TeamStats(
        total_users=active,
        total_tasks=len(tasks),
        completed_tasks=completed,
        pending_tasks=len(tasks) - completed,
        today_tasks=len(todays),
        today_completed=today_completed,
        completion_rate=completion_rate(completed, len(tasks)),
        today_completion_rate=completion_rate(today_completed, len(todays)),
    )


def user_progress(profile: UserProfile | None) -> UserProgress:
    """Counters for one user; all zero when the profile doesn't exist."""
    if profile is None:
        return UserProgress()
    return UserProgress(
        total_tasks=profile.total_tasks,
        completed_tasks=profile.completed_tasks,
        strikes=profile.strikes,
        completion_rate=completion_rate(profile.completed_tasks, profile.total_tasks),
    )


def team_members(profiles: Iterable[UserProfile]) -> list[UserProfile]:
    """Active profiles, most recently active first."""
    active = [p for p in profiles if p.is_active]
    epoch = datetime.min

    def _last_active(p: UserProfile) -> datetime:
        parsed = _parse_timestamp(p.last_active)
        if parsed is None:
            return epoch
        return parsed.replace(tzinfo=None)

    return sorted(active, key=_last_active, reverse=True)


def completion_streak(tasks: Iterable[Task], today: date) -> int:
    """Consecutive days with at least one completed task.

    The streak ends today, or yesterday if nothing is done yet today.
    """
    done_days = set()
    for task in tasks:
        if not task.is_completed or not task.completed_at:
            continue
        completed = _parse_timestamp(task.completed_at)
        if completed is not None:
            done_days.add(completed.date())

    day = today if today in done_days else today - timedelta(days=1)
    streak = 0
    while day in done_days:
        streak += 1
        day -= timedelta(days=1)
    return streak
