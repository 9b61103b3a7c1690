"""
Team Task Bot — Centralized configuration.

Loads all settings from .env and validates required keys.
This module is the foundation for every other module in the project.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (two levels up from taskbot/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Telegram
    TELEGRAM_BOT_TOKEN: str

    # Single administrator identity (a chat handle); empty disables admin commands
    ADMIN_HANDLE: str = ""

    # SQLite document store
    DATABASE_PATH: str = "data/taskbot.db"

    # Scheduled jobs (local wall-clock hours in TIMEZONE)
    TIMEZONE: str = "Asia/Kolkata"
    MORNING_REMINDER_HOUR: int = 9
    EVENING_CHECKIN_HOUR: int = 18
    WEEKLY_REPORT_HOUR: int = 10

    # Legacy command surface
    COMMAND_PREFIX: str = "/"

    # Bot identity shown by /info
    BOT_NAME: str = "Task Manager Bot"
    BOT_VERSION: str = "2.0.0"
    BOT_AUTHOR: str = ""

    @field_validator(
        "MORNING_REMINDER_HOUR", "EVENING_CHECKIN_HOUR", "WEEKLY_REPORT_HOUR",
        mode="before",
    )
    @classmethod
    def parse_hour(cls, v: str | int) -> int:
        hour = int(v)
        if not 0 <= hour <= 23:
            raise ValueError(f"hour must be between 0 and 23, got {hour}")
        return hour

    @field_validator("ADMIN_HANDLE", mode="before")
    @classmethod
    def strip_handle(cls, v: str | int) -> str:
        return str(v).strip()


def _load_settings() -> Settings:
    """Load settings from environment, validating required keys."""
    token = os.getenv("TELEGRAM_BOT_TOKEN", "")

    if not token or token.startswith("your-"):
        print("ERROR: TELEGRAM_BOT_TOKEN is missing or not set in .env", file=sys.stderr)
        sys.exit(1)

    return Settings(
        TELEGRAM_BOT_TOKEN=token,
        ADMIN_HANDLE=os.getenv("ADMIN_HANDLE", ""),
        DATABASE_PATH=os.getenv("DATABASE_PATH", "data/taskbot.db"),
        TIMEZONE=os.getenv("TIMEZONE", "Asia/Kolkata"),
        MORNING_REMINDER_HOUR=os.getenv("MORNING_REMINDER_HOUR", "9"),
        EVENING_CHECKIN_HOUR=os.getenv("EVENING_CHECKIN_HOUR", "18"),
        WEEKLY_REPORT_HOUR=os.getenv("WEEKLY_REPORT_HOUR", "10"),
        COMMAND_PREFIX=os.getenv("COMMAND_PREFIX", "/"),
        BOT_NAME=os.getenv("BOT_NAME", "Task Manager Bot"),
        BOT_VERSION=os.getenv("BOT_VERSION", "2.0.0"),
        BOT_AUTHOR=os.getenv("BOT_AUTHOR", ""),
    )


# Singleton, imported by all other modules as:
#   from taskbot.config import settings
settings = _load_settings()
