"""Recurring task injection: the effective task list for one calendar day.

Pure functions, no I/O. Injected instances only reach storage when a
caller persists the projected day as part of a mutation.
"""

from __future__ import annotations

from collections.abc import Iterable

from daystreak.checklist import fresh_day
from daystreak.clock import day_of_week
from daystreak.models import CustomTask, DailyProgress


def applies_on(template: CustomTask, weekday: int) -> bool:
    """Empty active_days means every day."""
    return not template.active_days or weekday in template.active_days


def fresh_instance(template: CustomTask) -> CustomTask:
    """A day instance of *template*: not completed, every sub-item unchecked."""
    task = template.copy(completed_at=None)
    for sub in task.sub_checklist:
        sub.checked = False
    return task


def project(
    day: DailyProgress | None,
    registry: Iterable[CustomTask],
    date_key: str,
) -> DailyProgress:
    """Overlay the recurring registry onto *day* for *date_key*.

    Templates whose id is already among the day's custom items are skipped,
    so projecting twice never duplicates an instance. The input is not
    mutated; a new record is always returned.
    """
    base = day.copy() if day is not None else fresh_day(date_key)
    weekday = day_of_week(date_key)
    present = {t.id for t in base.custom_items}
    for template in registry:
        if template.id in present or not applies_on(template, weekday):
            continue
        base.custom_items.append(fresh_instance(template))
        present.add(template.id)
    return base


def filter_hidden(day: DailyProgress, hidden: Iterable[str]) -> DailyProgress:
    """Drop hidden built-ins from the view; stored completions are untouched."""
    hidden = set(hidden)
    view = day.copy()
    view.items = [i for i in view.items if i.id not in hidden]
    return view


def effective_day(
    day: DailyProgress | None,
    registry: Iterable[CustomTask],
    hidden: Iterable[str],
    date_key: str,
) -> DailyProgress:
    return filter_hidden(project(day, registry, date_key), hidden)
