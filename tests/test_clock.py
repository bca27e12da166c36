"""Tests for daystreak/clock.py — date keys and calendar arithmetic."""

from zoneinfo import ZoneInfo

import pytest

from daystreak.clock import (
    date_prefix_matches,
    day_of_week,
    is_consecutive_day,
    parse_date_key,
    shift_day,
    today_key,
    week_days,
)


def test_day_of_week_is_monday_first():
    assert day_of_week("2024-01-01") == 0  # Monday
    assert day_of_week("2024-01-02") == 1
    assert day_of_week("2024-01-07") == 6  # Sunday


def test_parse_date_key_rejects_malformed():
    with pytest.raises(ValueError):
        parse_date_key("2024-1-1")
    with pytest.raises(ValueError):
        parse_date_key("2024-02-30")
    with pytest.raises(ValueError):
        parse_date_key(None)


def test_is_consecutive_day_either_order():
    assert is_consecutive_day("2024-01-10", "2024-01-11") is True
    assert is_consecutive_day("2024-01-11", "2024-01-10") is True
    assert is_consecutive_day("2024-01-10", "2024-01-12") is False
    assert is_consecutive_day("2024-01-10", "2024-01-10") is False


def test_is_consecutive_day_across_month_and_year():
    assert is_consecutive_day("2024-02-29", "2024-03-01") is True
    assert is_consecutive_day("2023-12-31", "2024-01-01") is True


def test_shift_day():
    assert shift_day("2024-03-01", -1) == "2024-02-29"
    assert shift_day("2024-12-31", 1) == "2025-01-01"


def test_week_days_monday_first():
    week = week_days("2024-03-01")  # Friday
    assert week[0] == "2024-02-26"
    assert week[-1] == "2024-03-03"
    assert len(week) == 7


def test_week_days_offset():
    assert week_days("2024-03-01", -1)[0] == "2024-02-19"
    assert week_days("2024-03-01", 1)[0] == "2024-03-04"


def test_date_prefix_matches():
    assert date_prefix_matches("2024-03-01T08:15:00Z", "2024-03-01") is True
    assert date_prefix_matches("2024-02-29T23:59:00Z", "2024-03-01") is False
    assert date_prefix_matches(None, "2024-03-01") is False
    assert date_prefix_matches(12345, "2024-03-01") is False


def test_today_key_format():
    key = today_key(ZoneInfo("UTC"))
    assert parse_date_key(key).isoformat() == key
