"""Tests for taskbot.config — Settings validation."""

import pytest
from pydantic import ValidationError

from taskbot.config import Settings, settings


def test_defaults():
    s = Settings(TELEGRAM_BOT_TOKEN="t")
    assert s.DATABASE_PATH == "data/taskbot.db"
    assert s.TIMEZONE == "Asia/Kolkata"
    assert (s.MORNING_REMINDER_HOUR, s.EVENING_CHECKIN_HOUR, s.WEEKLY_REPORT_HOUR) == (9, 18, 10)
    assert s.COMMAND_PREFIX == "/"
    assert s.ADMIN_HANDLE == ""


def test_hours_parsed_from_strings():
    s = Settings(TELEGRAM_BOT_TOKEN="t", MORNING_REMINDER_HOUR="7")
    assert s.MORNING_REMINDER_HOUR == 7


def test_hour_out_of_range():
    with pytest.raises(ValidationError):
        Settings(TELEGRAM_BOT_TOKEN="t", EVENING_CHECKIN_HOUR="24")


def test_admin_handle_is_stripped():
    assert Settings(TELEGRAM_BOT_TOKEN="t", ADMIN_HANDLE=" 12345 ").ADMIN_HANDLE == "12345"
    assert Settings(TELEGRAM_BOT_TOKEN="t", ADMIN_HANDLE=12345).ADMIN_HANDLE == "12345"


def test_singleton_reads_environment():
    assert settings.TELEGRAM_BOT_TOKEN == "fake-token-for-tests"
    assert settings.ADMIN_HANDLE == "999"
