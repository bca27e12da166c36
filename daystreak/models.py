"""Typed dataclasses for the DayStreak data model.

All models use from_dict/to_dict for JSON document serialization.
camelCase in documents is mapped to snake_case in Python.
Unknown keys are ignored; missing keys use defaults. Unset optional
fields are omitted from to_dict() output rather than written as null.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Any

TIMES_OF_DAY = ("morning", "afternoon", "evening")


def _opt_str(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def _weekdays(value: Any) -> list[int]:
    if not isinstance(value, list):
        return []
    out = []
    for v in value:
        try:
            day = int(v)
        except (TypeError, ValueError):
            continue
        if 0 <= day <= 6 and day not in out:
            out.append(day)
    return out


# ── Checklist items ───────────────────────────────────────────


@dataclass
class ChecklistItem:
    """A built-in task kind, possibly completed on a given day."""

    id: str = ""
    label: str = ""
    sublabel: str = ""
    time_of_day: str = "morning"
    completed_at: str | None = None

    @property
    def completed(self) -> bool:
        return self.completed_at is not None

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> ChecklistItem:
        if not d or not isinstance(d, dict):
            return cls()
        return cls(
            id=str(d.get("id", "")),
            label=str(d.get("label", "")),
            sublabel=str(d.get("sublabel", "") or ""),
            time_of_day=str(d.get("timeOfDay") or "morning"),
            completed_at=_opt_str(d.get("completedAt")),
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "label": self.label,
            "timeOfDay": self.time_of_day,
        }
        if self.sublabel:
            d["sublabel"] = self.sublabel
        if self.completed_at:
            d["completedAt"] = self.completed_at
        return d


@dataclass
class SubCheckItem:
    id: str = ""
    text: str = ""
    checked: bool = False

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> SubCheckItem:
        if not d or not isinstance(d, dict):
            return cls()
        return cls(
            id=str(d.get("id", "")),
            text=str(d.get("text", "")),
            checked=bool(d.get("checked", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "text": self.text, "checked": self.checked}


@dataclass
class CustomTask:
    """A user-authored task; with recurring=True it doubles as a registry template.

    Sub-items are informational: completion is tracked by completed_at alone.
    """

    id: str = ""
    label: str = ""
    sublabel: str = ""
    time_of_day: str = "morning"
    completed_at: str | None = None
    recurring: bool = False
    active_days: list[int] = field(default_factory=list)  # 0=Mon .. 6=Sun, empty = every day
    sub_checklist: list[SubCheckItem] = field(default_factory=list)

    @property
    def completed(self) -> bool:
        return self.completed_at is not None

    def copy(self, **changes: Any) -> CustomTask:
        """Deep-enough copy: the list fields are never shared with the original."""
        task = replace(self, **changes)
        return replace(
            task,
            active_days=list(task.active_days),
            sub_checklist=[replace(s) for s in task.sub_checklist],
        )

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> CustomTask:
        if not d or not isinstance(d, dict):
            return cls()
        subs = [SubCheckItem.from_dict(s) for s in (d.get("subChecklist") or []) if isinstance(s, dict)]
        return cls(
            id=str(d.get("id", "")),
            label=str(d.get("label", "")),
            sublabel=str(d.get("sublabel", "") or ""),
            time_of_day=str(d.get("timeOfDay") or "morning"),
            completed_at=_opt_str(d.get("completedAt")),
            recurring=bool(d.get("recurring", False)),
            active_days=_weekdays(d.get("activeDays")),
            sub_checklist=subs,
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "label": self.label,
            "timeOfDay": self.time_of_day,
        }
        if self.sublabel:
            d["sublabel"] = self.sublabel
        if self.completed_at:
            d["completedAt"] = self.completed_at
        if self.recurring:
            d["recurring"] = True
        if self.active_days:
            d["activeDays"] = list(self.active_days)
        if self.sub_checklist:
            d["subChecklist"] = [s.to_dict() for s in self.sub_checklist]
        return d


# ── Day record ────────────────────────────────────────────────


@dataclass
class DailyProgress:
    date: str = ""
    items: list[ChecklistItem] = field(default_factory=list)
    custom_items: list[CustomTask] = field(default_factory=list)

    def copy(self) -> DailyProgress:
        return DailyProgress(
            date=self.date,
            items=[replace(i) for i in self.items],
            custom_items=[t.copy() for t in self.custom_items],
        )

    def find_custom(self, task_id: str) -> CustomTask | None:
        for t in self.custom_items:
            if t.id == task_id:
                return t
        return None

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> DailyProgress:
        if not d or not isinstance(d, dict):
            return cls()
        return cls(
            date=str(d.get("date", "")),
            items=[ChecklistItem.from_dict(i) for i in (d.get("items") or []) if isinstance(i, dict)],
            custom_items=[CustomTask.from_dict(t) for t in (d.get("customItems") or []) if isinstance(t, dict)],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "items": [i.to_dict() for i in self.items],
            "customItems": [t.to_dict() for t in self.custom_items],
        }


# ── Settings ──────────────────────────────────────────────────


@dataclass
class GlobalProgressState:
    """Per-user settings document: streak, hidden built-ins, recurring registry."""

    streak_count: int = 0
    last_completed_date: str | None = None
    hidden_default_items: list[str] = field(default_factory=list)
    recurring_tasks: list[CustomTask] = field(default_factory=list)

    def copy(self) -> GlobalProgressState:
        return GlobalProgressState(
            streak_count=self.streak_count,
            last_completed_date=self.last_completed_date,
            hidden_default_items=list(self.hidden_default_items),
            recurring_tasks=[t.copy() for t in self.recurring_tasks],
        )

    @classmethod
    def from_dict(cls, d: dict[str, Any] | None) -> GlobalProgressState:
        if not d or not isinstance(d, dict):
            return cls()
        try:
            streak = max(0, int(d.get("streakCount", 0) or 0))
        except (TypeError, ValueError):
            streak = 0
        hidden = d.get("hiddenDefaultItems")
        recurring = d.get("recurringTasks")
        return cls(
            streak_count=streak,
            last_completed_date=_opt_str(d.get("lastCompletedDate")),
            hidden_default_items=[str(h) for h in hidden] if isinstance(hidden, list) else [],
            recurring_tasks=(
                [CustomTask.from_dict(t) for t in recurring if isinstance(t, dict)]
                if isinstance(recurring, list) else []
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "streakCount": self.streak_count,
            "hiddenDefaultItems": list(self.hidden_default_items),
            "recurringTasks": [t.to_dict() for t in self.recurring_tasks],
        }
        if self.last_completed_date:
            d["lastCompletedDate"] = self.last_completed_date
        return d


# ── Aggregates ────────────────────────────────────────────────


@dataclass
class DateProgress:
    completed: int = 0
    total: int = 0

    @property
    def all_done(self) -> bool:
        return self.total > 0 and self.completed == self.total

    def to_dict(self) -> dict[str, Any]:
        return {"completed": self.completed, "total": self.total}


@dataclass
class WeekSummary:
    days: list[str] = field(default_factory=list)
    completed: int = 0
    total: int = 0
    days_fully_done: int = 0

    @property
    def percent(self) -> int:
        if self.total <= 0:
            return 0
        # Half up, not banker's rounding: 1 of 8 is 13%.
        return math.floor(self.completed / self.total * 100 + 0.5)

    def to_dict(self) -> dict[str, Any]:
        return {
            "days": self.days,
            "completed": self.completed,
            "total": self.total,
            "percent": self.percent,
            "daysFullyDone": self.days_fully_done,
        }
