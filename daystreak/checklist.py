"""Built-in checklist items, task validation and legacy store migration."""

from __future__ import annotations

import secrets
from typing import Any

from daystreak.models import (
    TIMES_OF_DAY,
    ChecklistItem,
    CustomTask,
    DailyProgress,
    GlobalProgressState,
)

# Process-wide; users can hide these but never create or delete them.
DEFAULT_ITEMS: tuple[ChecklistItem, ...] = (
    ChecklistItem(id="study_deck", label="Study a Deck", sublabel="Review your flashcards", time_of_day="morning"),
    ChecklistItem(id="grammar_quiz", label="Grammar Quiz", sublabel="Practice grammar rules", time_of_day="morning"),
    ChecklistItem(id="writing_test", label="Writing Practice", sublabel="Write in Danish", time_of_day="afternoon"),
    ChecklistItem(id="chat_session", label="Chat in Danish", sublabel="Have a conversation", time_of_day="afternoon"),
)

DEFAULT_ITEM_IDS = tuple(i.id for i in DEFAULT_ITEMS)

_DEFAULT_TIME_OF_DAY = {i.id: i.time_of_day for i in DEFAULT_ITEMS}


def fresh_items() -> list[ChecklistItem]:
    return [ChecklistItem(id=i.id, label=i.label, sublabel=i.sublabel, time_of_day=i.time_of_day)
            for i in DEFAULT_ITEMS]


def fresh_day(date_key: str) -> DailyProgress:
    """An uncompleted day with the built-ins and no custom tasks."""
    return DailyProgress(date=date_key, items=fresh_items(), custom_items=[])


def new_task_id() -> str:
    return secrets.token_hex(5)


# ── Validation ────────────────────────────────────────────────


def validate_custom_task(task: dict[str, Any]) -> list[str]:
    """Validate user input for a custom task and return errors (empty if valid)."""
    errors = []
    label = task.get("label")
    if "label" in task and (not isinstance(label, str) or not label.strip()):
        errors.append("label must be a non-empty string")
    if "timeOfDay" in task and task["timeOfDay"] not in TIMES_OF_DAY:
        errors.append(f"Invalid timeOfDay: {task['timeOfDay']}")
    days = task.get("activeDays")
    if days is not None:
        if not isinstance(days, list) or not all(isinstance(d, int) and 0 <= d <= 6 for d in days):
            errors.append("activeDays must be a list of weekday indices 0-6")
    subs = task.get("subChecklist")
    if subs is not None:
        if not isinstance(subs, list) or not all(isinstance(s, dict) and s.get("text") for s in subs):
            errors.append("subChecklist entries need a text field")
    return errors


# ── Migration ─────────────────────────────────────────────────


def _migrate_item(raw: dict[str, Any]) -> dict[str, Any]:
    if raw.get("timeOfDay"):
        return raw
    return {**raw, "timeOfDay": _DEFAULT_TIME_OF_DAY.get(raw.get("id", ""), "morning")}


def _migrate_task(raw: dict[str, Any]) -> dict[str, Any]:
    """Older stores count activeDays from Sunday = 0; shift to Monday = 0."""
    days = raw.get("activeDays")
    if not isinstance(days, list):
        return raw
    return {**raw, "activeDays": [(d + 6) % 7 for d in days if isinstance(d, int) and 0 <= d <= 6]}


def _migrate_day(date_key: str, raw: dict[str, Any]) -> DailyProgress:
    items = [_migrate_item(i) for i in (raw.get("items") or []) if isinstance(i, dict)]
    return DailyProgress.from_dict({
        "date": raw.get("date") or date_key,
        "items": items,
        "customItems": [_migrate_task(t) for t in (raw.get("customItems") or []) if isinstance(t, dict)],
    })


def migrate_store(raw: Any) -> tuple[GlobalProgressState, dict[str, DailyProgress]]:
    """Split an older single-blob store into the settings doc and per-day docs.

    Recognizes ``{days: {...}, streakCount, ...}`` and the oldest flat
    ``{date, items, streakCount, lastCompletedDate}`` shape. Anything else
    migrates to an empty store.
    """
    if not isinstance(raw, dict):
        return GlobalProgressState(), {}

    if isinstance(raw.get("days"), dict):
        days = {
            key: _migrate_day(key, day)
            for key, day in raw["days"].items()
            if isinstance(day, dict)
        }
        recurring = raw.get("recurringTasks")
        if isinstance(recurring, list):
            raw = {**raw, "recurringTasks": [_migrate_task(t) for t in recurring if isinstance(t, dict)]}
        return GlobalProgressState.from_dict(raw), days

    if raw.get("date") and isinstance(raw.get("items"), list):
        date_key = str(raw["date"])
        state = GlobalProgressState.from_dict({
            "streakCount": raw.get("streakCount"),
            "lastCompletedDate": raw.get("lastCompletedDate"),
        })
        return state, {date_key: _migrate_day(date_key, {"items": raw["items"]})}

    return GlobalProgressState(), {}
