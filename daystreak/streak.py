"""Streak continuity for DayStreak.

A date is credited once, the first time every visible built-in item on it
is complete. Crediting the day after the last credited date extends the
streak; any other date restarts it at 1. Uncompleting a credited day leaves
the streak as it is.
"""

from __future__ import annotations

from collections.abc import Iterable

from daystreak.clock import is_consecutive_day
from daystreak.models import DailyProgress, GlobalProgressState


def core_all_done(day: DailyProgress, hidden: Iterable[str] = ()) -> bool:
    hidden = set(hidden)
    return all(i.completed for i in day.items if i.id not in hidden)


def update_streak(
    state: GlobalProgressState,
    date_key: str,
    day: DailyProgress,
) -> tuple[int, str | None]:
    """Return the (streak_count, last_completed_date) after *day* changed."""
    streak = state.streak_count
    last = state.last_completed_date

    if not core_all_done(day, state.hidden_default_items) or last == date_key:
        return streak, last

    try:
        continues = last is not None and is_consecutive_day(last, date_key)
    except ValueError:
        continues = False
    return (streak + 1 if continues else 1), date_key


def apply_streak(state: GlobalProgressState, date_key: str, day: DailyProgress) -> bool:
    """Update *state* in place. Returns True if the streak state changed."""
    streak, last = update_streak(state, date_key, day)
    if (streak, last) == (state.streak_count, state.last_completed_date):
        return False
    state.streak_count = streak
    state.last_completed_date = last
    return True
