"""Calendar and week aggregation over stored and not-yet-stored days.

Nothing here writes: days without a record are counted from the visible
built-ins plus the recurring templates that apply on that weekday.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from daystreak.checklist import DEFAULT_ITEMS
from daystreak.clock import day_of_week
from daystreak.injector import applies_on, effective_day
from daystreak.models import (
    TIMES_OF_DAY,
    DailyProgress,
    DateProgress,
    GlobalProgressState,
    WeekSummary,
)


def count_day(day: DailyProgress) -> DateProgress:
    """Completed/total over an already-effective (injected, filtered) day."""
    items = day.items + day.custom_items
    return DateProgress(
        completed=sum(1 for i in items if i.completed),
        total=len(items),
    )


def get_date_progress(
    days: Mapping[str, DailyProgress],
    state: GlobalProgressState,
    date_key: str,
) -> DateProgress:
    hidden = set(state.hidden_default_items)
    stored = days.get(date_key)
    if stored is None:
        weekday = day_of_week(date_key)
        visible = sum(1 for i in DEFAULT_ITEMS if i.id not in hidden)
        recurring = sum(1 for t in state.recurring_tasks if applies_on(t, weekday))
        return DateProgress(completed=0, total=visible + recurring)
    return count_day(effective_day(stored, state.recurring_tasks, hidden, date_key))


def has_tasks_for_date(
    days: Mapping[str, DailyProgress],
    state: GlobalProgressState,
    date_key: str,
) -> bool:
    stored = days.get(date_key)
    if stored is None:
        weekday = day_of_week(date_key)
        return any(applies_on(t, weekday) for t in state.recurring_tasks)
    return any(i.completed for i in stored.items) or bool(stored.custom_items)


def week_summary(
    days: Mapping[str, DailyProgress],
    state: GlobalProgressState,
    week: list[str],
    today: str,
) -> WeekSummary:
    """Totals over the week's days up to and including *today*.

    When *today* falls outside the week, every day of it is counted.
    """
    counted = week[: week.index(today) + 1] if today in week else list(week)
    summary = WeekSummary(days=counted)
    for date_key in counted:
        progress = get_date_progress(days, state, date_key)
        summary.completed += progress.completed
        summary.total += progress.total
        if progress.all_done:
            summary.days_fully_done += 1
    return summary


def group_by_time_of_day(day: DailyProgress) -> list[dict[str, Any]]:
    """Morning/afternoon/evening buckets of the day's built-ins and custom tasks."""
    return [
        {
            "timeOfDay": tod,
            "coreItems": [i for i in day.items if i.time_of_day == tod],
            "customItems": [t for t in day.custom_items if t.time_of_day == tod],
        }
        for tod in TIMES_OF_DAY
    ]
