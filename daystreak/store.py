"""Progress store: live per-user state and the checklist mutations.

The store subscribes to the user's day collection and settings document,
keeps the latest full values locally and derives the effective view for
the selected date. Every mutation reads the raw day, applies a pure
change, updates local state, then replaces the whole day document (and
the settings document when streak, hidden items or the recurring registry
changed). Concurrent writers are last-write-wins.

Failed writes are kept in ``pending_writes`` and the optimistic local
state is preserved until ``retry_failed_writes`` succeeds.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any
from zoneinfo import ZoneInfo

from daystreak.aggregate import (
    count_day,
    get_date_progress,
    group_by_time_of_day,
    has_tasks_for_date,
    week_summary,
)
from daystreak.bridge import AutoCompletionBridge, apply_signals
from daystreak.checklist import (
    DEFAULT_ITEM_IDS,
    DEFAULT_ITEMS,
    migrate_store,
    new_task_id,
    validate_custom_task,
)
from daystreak.clock import now_iso, parse_date_key, week_days
from daystreak.documents import DocumentStore, Subscription, user_path
from daystreak.injector import effective_day, project
from daystreak.models import (
    ChecklistItem,
    CustomTask,
    DailyProgress,
    DateProgress,
    GlobalProgressState,
    SubCheckItem,
    WeekSummary,
)
from daystreak.streak import apply_streak, core_all_done

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = {"label", "sublabel", "time_of_day", "recurring", "sub_checklist", "active_days"}


@dataclass
class WriteFailure:
    path: str
    value: dict[str, Any]
    error: str

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "error": self.error}


def _sub_items(entries: list[Any] | None) -> list[SubCheckItem]:
    out = []
    for e in entries or []:
        if isinstance(e, SubCheckItem):
            out.append(e)
        elif isinstance(e, dict):
            sub = SubCheckItem.from_dict(e)
            sub.id = sub.id or new_task_id()
            out.append(sub)
    return out


def _as_input(fields: dict[str, Any]) -> dict[str, Any]:
    """snake_case task fields -> the camelCase shape validate_custom_task checks."""
    keys = {"time_of_day": "timeOfDay", "active_days": "activeDays", "sub_checklist": "subChecklist"}
    out = {}
    for k, v in fields.items():
        if k == "sub_checklist" and v is not None:
            v = [s.to_dict() if isinstance(s, SubCheckItem) else s for s in v]
        out[keys.get(k, k)] = v
    return out


class ProgressStore:
    def __init__(
        self,
        documents: DocumentStore,
        user_id: str | None = None,
        tz: ZoneInfo | None = None,
        bridge_factory: Callable[[DocumentStore, str], AutoCompletionBridge] | None = None,
        clock: Callable[[], str] | None = None,
    ) -> None:
        self.documents = documents
        self.tz = tz or ZoneInfo("UTC")
        self._bridge_factory = bridge_factory or AutoCompletionBridge.for_user
        self._clock = clock or (lambda: now_iso(self.tz))

        self.user_id: str | None = None
        self.days: dict[str, DailyProgress] = {}
        self.state = GlobalProgressState()
        self.selected_date = self.today()
        self.pending_writes: list[WriteFailure] = []

        self._subscriptions: list[Subscription] = []
        self._listeners: list[Callable[[], None]] = []
        self._days_loaded = False
        self._settings_loaded = False
        self._bridge_armed = False
        self._bridge: AutoCompletionBridge | None = None

        self.set_user(user_id)

    # ── Clock ──────────────────────────────────────────────────

    def now(self) -> str:
        return self._clock()

    def today(self) -> str:
        return self.now()[:10]

    # ── Identity & subscriptions ──────────────────────────────

    @property
    def loaded(self) -> bool:
        return self._days_loaded and self._settings_loaded

    def _days_path(self) -> str:
        return user_path(self.user_id, "progress")

    def _day_path(self, date_key: str) -> str:
        return user_path(self.user_id, "progress", date_key)

    def _settings_path(self) -> str:
        return user_path(self.user_id, "settings", "progress")

    def set_user(self, user_id: str | None) -> None:
        """Tear down the current subscriptions and rebuild them for *user_id*."""
        self.close()
        self.user_id = user_id
        self.days = {}
        self.state = GlobalProgressState()
        self.pending_writes = []
        self._days_loaded = self._settings_loaded = False
        if user_id is None:
            self._bridge = None
            self._emit()
            return
        self._bridge = self._bridge_factory(self.documents, user_id)
        self._bridge_armed = self.selected_date == self.today()
        self._subscriptions = [
            self.documents.subscribe(self._days_path(), self._on_days, self._on_days_error),
            self.documents.subscribe(self._settings_path(), self._on_settings, self._on_settings_error),
        ]

    def close(self) -> None:
        for sub in self._subscriptions:
            sub.unsubscribe()
        self._subscriptions = []

    def add_listener(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Call *callback* after every state change; returns a remover."""
        self._listeners.append(callback)
        return lambda: self._listeners.remove(callback) if callback in self._listeners else None

    def _emit(self) -> None:
        for callback in list(self._listeners):
            callback()

    def _on_days(self, value: Any) -> None:
        days = {}
        for key, doc in (value or {}).items():
            day = DailyProgress.from_dict(doc)
            day.date = day.date or key
            days[key] = day
        for failure in self.pending_writes:
            if failure.path.startswith(self._days_path() + "/"):
                day = DailyProgress.from_dict(failure.value)
                days[day.date] = day
        self.days = days
        self._days_loaded = True
        self._after_load()

    def _on_settings(self, value: Any) -> None:
        state = GlobalProgressState.from_dict(value)
        for failure in self.pending_writes:
            if failure.path == self._settings_path():
                state = GlobalProgressState.from_dict(failure.value)
        self.state = state
        self._settings_loaded = True
        self._after_load()

    def _on_days_error(self, error: Exception) -> None:
        logger.warning("Day progress listener failed for %s: %s", self.user_id, error)
        self._days_loaded = True
        self._after_load()

    def _on_settings_error(self, error: Exception) -> None:
        logger.warning("Settings listener failed for %s: %s", self.user_id, error)
        self._settings_loaded = True
        self._after_load()

    def _after_load(self) -> None:
        self._maybe_reconcile()
        self._emit()

    # ── Selected date & derived view ──────────────────────────

    def set_selected_date(self, date_key: str) -> None:
        parse_date_key(date_key)
        if date_key == self.selected_date:
            return
        self.selected_date = date_key
        if date_key == self.today():
            self._bridge_armed = True
            self._maybe_reconcile()
        self._emit()

    @property
    def day_progress(self) -> DailyProgress:
        """Effective view of the selected date: injected and hidden-filtered."""
        return effective_day(
            self.days.get(self.selected_date),
            self.state.recurring_tasks,
            self.state.hidden_default_items,
            self.selected_date,
        )

    @property
    def completed_count(self) -> int:
        return count_day(self.day_progress).completed

    @property
    def total_count(self) -> int:
        return count_day(self.day_progress).total

    @property
    def all_done(self) -> bool:
        return count_day(self.day_progress).all_done

    @property
    def all_core_done(self) -> bool:
        return core_all_done(self.day_progress)

    @property
    def streak_count(self) -> int:
        return self.state.streak_count

    @property
    def last_completed_date(self) -> str | None:
        return self.state.last_completed_date

    @property
    def hidden_default_items(self) -> list[str]:
        return list(self.state.hidden_default_items)

    @property
    def recurring_tasks(self) -> list[CustomTask]:
        return [t.copy() for t in self.state.recurring_tasks]

    @property
    def default_items(self) -> tuple[ChecklistItem, ...]:
        return DEFAULT_ITEMS

    def grouped(self) -> list[dict[str, Any]]:
        return group_by_time_of_day(self.day_progress)

    # ── Calendar ──────────────────────────────────────────────

    def get_date_progress(self, date_key: str) -> DateProgress:
        return get_date_progress(self.days, self.state, date_key)

    def has_tasks_for_date(self, date_key: str) -> bool:
        return has_tasks_for_date(self.days, self.state, date_key)

    def week(self, offset: int = 0) -> list[str]:
        return week_days(self.today(), offset)

    def week_summary(self, offset: int = 0) -> WeekSummary:
        return week_summary(self.days, self.state, self.week(offset), self.today())

    # ── Persistence ───────────────────────────────────────────

    def _signed_in(self) -> bool:
        if self.user_id is None:
            logger.warning("Ignoring checklist change while signed out")
            return False
        return True

    def _write(self, path: str, value: dict[str, Any]) -> None:
        self.pending_writes = [f for f in self.pending_writes if f.path != path]
        try:
            self.documents.write_document(path, value)
        except Exception as e:
            logger.error("Write to %s failed: %s", path, e)
            self.pending_writes.append(WriteFailure(path=path, value=value, error=str(e)))

    def _commit(
        self,
        date_key: str,
        day: DailyProgress | None,
        state: GlobalProgressState | None = None,
    ) -> None:
        """Apply locally, then write each changed document in full."""
        if day is not None:
            self.days[date_key] = day
        if state is not None:
            self.state = state
        if day is not None:
            self._write(self._day_path(date_key), day.to_dict())
        if state is not None:
            self._write(self._settings_path(), state.to_dict())
        self._emit()

    def retry_failed_writes(self) -> int:
        """Re-issue failed writes; returns how many still fail."""
        failures, self.pending_writes = self.pending_writes, []
        for failure in failures:
            self._write(failure.path, failure.value)
        self._emit()
        return len(self.pending_writes)

    def _raw_day(self, date_key: str) -> DailyProgress:
        """The stored day, or a synthesized one with recurring tasks injected."""
        stored = self.days.get(date_key)
        if stored is not None:
            return stored.copy()
        return project(None, self.state.recurring_tasks, date_key)

    def _projected_day(self, date_key: str) -> DailyProgress:
        return project(self.days.get(date_key), self.state.recurring_tasks, date_key)

    # ── Auto-completion ───────────────────────────────────────

    def _maybe_reconcile(self) -> None:
        today = self.today()
        if not (self.loaded and self._bridge_armed and self._bridge is not None):
            return
        if self.selected_date != today:
            return
        self._bridge_armed = False
        signals = self._bridge.reconcile(today)
        if not signals:
            return
        day, changed = apply_signals(self._raw_day(today), signals, self.now())
        if not changed:
            return
        logger.info("Auto-completed %s for %s", sorted(signals), today)
        state = self.state.copy()
        streak_changed = apply_streak(state, today, day)
        self._commit(today, day, state if streak_changed else None)

    # ── Built-in items ────────────────────────────────────────

    def complete_item(self, item_id: str) -> bool:
        if item_id not in DEFAULT_ITEM_IDS or not self._signed_in():
            return False
        date_key = self.selected_date
        day = self._raw_day(date_key)
        changed = False
        for item in day.items:
            if item.id == item_id and not item.completed:
                item.completed_at = self.now()
                changed = True
        state = self.state.copy()
        streak_changed = apply_streak(state, date_key, day)
        if not (changed or streak_changed):
            return False
        self._commit(date_key, day if changed else None, state if streak_changed else None)
        return True

    def uncomplete_item(self, item_id: str) -> bool:
        """Clear a built-in's completion. A credited streak is not taken back."""
        if item_id not in DEFAULT_ITEM_IDS or not self._signed_in():
            return False
        date_key = self.selected_date
        day = self._raw_day(date_key)
        changed = False
        for item in day.items:
            if item.id == item_id and item.completed:
                item.completed_at = None
                changed = True
        if changed:
            self._commit(date_key, day)
        return changed

    def toggle_default_item_visibility(self, item_id: str) -> bool:
        if item_id not in DEFAULT_ITEM_IDS or not self._signed_in():
            return False
        state = self.state.copy()
        if item_id in state.hidden_default_items:
            state.hidden_default_items.remove(item_id)
        else:
            state.hidden_default_items.append(item_id)
        self._commit(self.selected_date, None, state)
        return True

    # ── Custom tasks ──────────────────────────────────────────

    def add_custom_task(
        self,
        label: str,
        sublabel: str | None = None,
        time_of_day: str = "morning",
        recurring: bool = False,
        sub_checklist: list[Any] | None = None,
        active_days: list[int] | None = None,
    ) -> tuple[CustomTask | None, list[str]]:
        """Add a task to the selected day; recurring tasks also join the registry."""
        errors = validate_custom_task(_as_input({
            "label": label,
            "time_of_day": time_of_day,
            "active_days": active_days,
            "sub_checklist": sub_checklist,
        }))
        if errors:
            return None, errors
        if not self._signed_in():
            return None, ["Not signed in"]

        task = CustomTask(
            id=new_task_id(),
            label=label.strip(),
            sublabel=sublabel or "",
            time_of_day=time_of_day,
            recurring=bool(recurring),
            active_days=sorted(set(active_days)) if recurring and active_days else [],
            sub_checklist=_sub_items(sub_checklist),
        )
        date_key = self.selected_date
        day = self._raw_day(date_key)
        day.custom_items.append(task.copy())
        state = None
        if task.recurring:
            state = self.state.copy()
            state.recurring_tasks.append(task.copy())
        self._commit(date_key, day, state)
        return task, []

    def remove_custom_task(self, task_id: str) -> bool:
        """Remove the task from the selected day only; its template stays."""
        if not self._signed_in():
            return False
        date_key = self.selected_date
        day = self._raw_day(date_key)
        if day.find_custom(task_id) is None:
            return False
        day.custom_items = [t for t in day.custom_items if t.id != task_id]
        self._commit(date_key, day)
        return True

    def remove_recurring_task(self, task_id: str) -> bool:
        """Drop the template and the selected day's instance of it."""
        if not self._signed_in():
            return False
        date_key = self.selected_date
        state = self.state.copy()
        before = len(state.recurring_tasks)
        state.recurring_tasks = [t for t in state.recurring_tasks if t.id != task_id]
        stored = self.days.get(date_key)
        day = None
        if stored is not None and stored.find_custom(task_id) is not None:
            day = stored.copy()
            day.custom_items = [t for t in day.custom_items if t.id != task_id]
        if day is None and len(state.recurring_tasks) == before:
            return False
        self._commit(date_key, day, state if len(state.recurring_tasks) != before else None)
        return True

    def toggle_custom_task(self, task_id: str) -> bool:
        if not self._signed_in():
            return False
        date_key = self.selected_date
        day = self._projected_day(date_key)
        task = day.find_custom(task_id)
        if task is None:
            return False
        task.completed_at = None if task.completed else self.now()
        self._commit(date_key, day)
        return True

    def toggle_sub_check_item(self, task_id: str, sub_id: str) -> bool:
        """Flip a sub-item. The parent task's completion is not affected."""
        if not self._signed_in():
            return False
        date_key = self.selected_date
        day = self._projected_day(date_key)
        task = day.find_custom(task_id)
        if task is None:
            return False
        for sub in task.sub_checklist:
            if sub.id == sub_id:
                sub.checked = not sub.checked
                self._commit(date_key, day)
                return True
        return False

    def edit_custom_task(self, task_id: str, **updates: Any) -> tuple[CustomTask | None, list[str]]:
        """Patch the selected day's instance and, for recurring tasks, the template.

        Turning ``recurring`` on adds a template; turning it off removes it.
        """
        unknown = set(updates) - EDITABLE_FIELDS
        if unknown:
            return None, [f"Unknown field: {name}" for name in sorted(unknown)]
        errors = validate_custom_task(_as_input(updates))
        if errors:
            return None, errors
        if not self._signed_in():
            return None, ["Not signed in"]

        changes = dict(updates)
        if "label" in changes:
            changes["label"] = changes["label"].strip()
        if "sublabel" in changes:
            changes["sublabel"] = changes["sublabel"] or ""
        if "recurring" in changes:
            changes["recurring"] = bool(changes["recurring"])
        if "active_days" in changes:
            changes["active_days"] = sorted(set(changes["active_days"] or []))
        if "sub_checklist" in changes:
            changes["sub_checklist"] = _sub_items(changes["sub_checklist"])

        date_key = self.selected_date
        day = self._projected_day(date_key)
        current = day.find_custom(task_id)
        if current is None:
            return None, [f"Task not found: {task_id}"]
        updated = current.copy(**changes)
        day.custom_items = [updated if t.id == task_id else t for t in day.custom_items]

        # Only an explicit recurring=True creates a template; a removed one stays removed.
        state = self.state.copy()
        registry = state.recurring_tasks
        idx = next((i for i, t in enumerate(registry) if t.id == task_id), None)
        if changes.get("recurring") is False:
            state.recurring_tasks = [t for t in registry if t.id != task_id]
        elif idx is not None:
            registry[idx] = registry[idx].copy(**changes)
        elif changes.get("recurring") is True:
            registry.append(updated.copy(completed_at=None))
        if state.recurring_tasks == self.state.recurring_tasks:
            state = None
        self._commit(date_key, day, state)
        return updated, []


def import_legacy_store(documents: DocumentStore, user_id: str, raw: Any) -> int:
    """Write an older single-blob store as settings + per-day documents.

    Returns the number of day documents written.
    """
    state, days = migrate_store(raw)
    for date_key, day in sorted(days.items()):
        documents.write_document(user_path(user_id, "progress", date_key), day.to_dict())
    documents.write_document(user_path(user_id, "settings", "progress"), state.to_dict())
    logger.info("Imported %d legacy day(s) for %s", len(days), user_id)
    return len(days)
