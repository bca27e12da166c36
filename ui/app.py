from __future__ import annotations

import logging
import os
import secrets
import threading
from collections.abc import Iterator
from typing import Any

from fastapi import Body, Depends, FastAPI, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from daystreak import (
    FileDocumentStore,
    ProgressStore,
    configure_logging,
    get_user_timezone,
    group_by_time_of_day,
    parse_date_key,
    workspace_root,
)

logger = logging.getLogger(__name__)

configure_logging()

app = FastAPI(title="DayStreak API", version="0.1.0")

security = HTTPBasic(auto_error=False)

_documents: FileDocumentStore | None = None
_stores: dict[str, ProgressStore] = {}
_locks: dict[str, threading.Lock] = {}
_registry_lock = threading.Lock()


# ── Auth ──────────────────────────────────────────────────────


def get_current_user(credentials: HTTPBasicCredentials | None = Depends(security)) -> str:
    expected_username = os.environ.get("DAYSTREAK_USERNAME", "")
    expected_password = os.environ.get("DAYSTREAK_PASSWORD", "")

    if credentials is None:
        if not expected_username or not expected_password:
            return "guest"
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Basic"},
        )

    if "/" in credentials.username or credentials.username in (".", ".."):
        raise HTTPException(status_code=400, detail=f"Invalid username: {credentials.username}")

    if not expected_username or not expected_password:
        return credentials.username or "guest"

    correct_username = secrets.compare_digest(credentials.username.encode("utf-8"), expected_username.encode("utf-8"))
    correct_password = secrets.compare_digest(credentials.password.encode("utf-8"), expected_password.encode("utf-8"))

    if not (correct_username and correct_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Basic"},
        )

    return credentials.username


# ── Store wiring ──────────────────────────────────────────────


def get_store(username: str = Depends(get_current_user)) -> Iterator[ProgressStore]:
    """One live ProgressStore per signed-in user over the workspace documents.

    The store's selected date is shared state, so requests for the same user
    hold its lock from date selection until the response is built.
    """
    global _documents
    root = workspace_root()
    with _registry_lock:
        if _documents is None or _documents.root != root:
            _documents = FileDocumentStore(root)
            for store in _stores.values():
                store.close()
            _stores.clear()
            _locks.clear()
        store = _stores.get(username)
        if store is None:
            store = ProgressStore(_documents, username, tz=get_user_timezone(root))
            _stores[username] = store
            _locks[username] = threading.Lock()
        lock = _locks[username]
    with lock:
        yield store


def _select(store: ProgressStore, date: str | None) -> None:
    try:
        store.set_selected_date(date or store.today())
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid date: {date}")


def _day_response(store: ProgressStore) -> dict[str, Any]:
    day = store.day_progress
    return {
        "date": store.selected_date,
        "isToday": store.selected_date == store.today(),
        "day": day.to_dict(),
        "groups": [
            {
                "timeOfDay": g["timeOfDay"],
                "coreItems": [i.to_dict() for i in g["coreItems"]],
                "customItems": [t.to_dict() for t in g["customItems"]],
            }
            for g in group_by_time_of_day(day)
        ],
        "completedCount": store.completed_count,
        "totalCount": store.total_count,
        "allDone": store.all_done,
        "allCoreDone": store.all_core_done,
        "streakCount": store.streak_count,
        "pendingWrites": [f.to_dict() for f in store.pending_writes],
    }


def _errors(errors: list[str]) -> None:
    if errors:
        raise HTTPException(status_code=400, detail="; ".join(errors))


# ── Endpoints ─────────────────────────────────────────────────


@app.get("/healthz")
def healthz() -> dict[str, str]:
    return {"ok": "true"}


@app.get("/api/day")
def api_get_day(date: str | None = None, store: ProgressStore = Depends(get_store)) -> dict[str, Any]:
    """Effective checklist for a date (today by default)."""
    _select(store, date)
    return _day_response(store)


@app.get("/api/state")
def api_get_state(store: ProgressStore = Depends(get_store)) -> dict[str, Any]:
    return {
        "loaded": store.loaded,
        "streakCount": store.streak_count,
        "lastCompletedDate": store.last_completed_date,
        "hiddenDefaultItems": store.hidden_default_items,
        "recurringTasks": [t.to_dict() for t in store.recurring_tasks],
        "defaultItems": [i.to_dict() for i in store.default_items],
        "pendingWrites": [f.to_dict() for f in store.pending_writes],
    }


@app.get("/api/calendar/week")
def api_calendar_week(offset: int = 0, store: ProgressStore = Depends(get_store)) -> dict[str, Any]:
    """Per-day indicators and the summary for a Monday-first week."""
    days = []
    for date_key in store.week(offset):
        progress = store.get_date_progress(date_key)
        days.append({
            "date": date_key,
            **progress.to_dict(),
            "allDone": progress.all_done,
            "hasTasks": store.has_tasks_for_date(date_key),
        })
    return {"offset": offset, "days": days, "summary": store.week_summary(offset).to_dict()}


@app.get("/api/calendar/{date}")
def api_calendar_date(date: str, store: ProgressStore = Depends(get_store)) -> dict[str, Any]:
    try:
        parse_date_key(date)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid date: {date}")
    progress = store.get_date_progress(date)
    return {"date": date, **progress.to_dict(), "hasTasks": store.has_tasks_for_date(date)}


@app.post("/api/items/{item_id}/complete")
def api_complete_item(item_id: str, date: str | None = None, store: ProgressStore = Depends(get_store)) -> dict[str, Any]:
    _select(store, date)
    if item_id not in {i.id for i in store.default_items}:
        raise HTTPException(status_code=404, detail=f"Item not found: {item_id}")
    store.complete_item(item_id)
    return _day_response(store)


@app.post("/api/items/{item_id}/uncomplete")
def api_uncomplete_item(item_id: str, date: str | None = None, store: ProgressStore = Depends(get_store)) -> dict[str, Any]:
    _select(store, date)
    if item_id not in {i.id for i in store.default_items}:
        raise HTTPException(status_code=404, detail=f"Item not found: {item_id}")
    store.uncomplete_item(item_id)
    return _day_response(store)


@app.post("/api/items/{item_id}/visibility")
def api_toggle_visibility(item_id: str, store: ProgressStore = Depends(get_store)) -> dict[str, Any]:
    if not store.toggle_default_item_visibility(item_id):
        raise HTTPException(status_code=404, detail=f"Item not found: {item_id}")
    return {"ok": True, "hiddenDefaultItems": store.hidden_default_items}


@app.post("/api/tasks")
def api_add_task(payload: dict[str, Any] = Body(...), store: ProgressStore = Depends(get_store)) -> dict[str, Any]:
    """Add a custom task to the given (or today's) date."""
    _select(store, payload.get("date"))
    task, errors = store.add_custom_task(
        label=payload.get("label", ""),
        sublabel=payload.get("sublabel"),
        time_of_day=payload.get("timeOfDay", "morning"),
        recurring=bool(payload.get("recurring", False)),
        sub_checklist=payload.get("subChecklist"),
        active_days=payload.get("activeDays"),
    )
    _errors(errors)
    return {"ok": True, "task": task.to_dict(), **_day_response(store)}


@app.put("/api/tasks/{task_id}")
def api_edit_task(task_id: str, payload: dict[str, Any] = Body(...), store: ProgressStore = Depends(get_store)) -> dict[str, Any]:
    _select(store, payload.pop("date", None))
    keys = {
        "label": "label",
        "sublabel": "sublabel",
        "timeOfDay": "time_of_day",
        "recurring": "recurring",
        "subChecklist": "sub_checklist",
        "activeDays": "active_days",
    }
    unknown = set(payload) - set(keys)
    if unknown:
        raise HTTPException(status_code=400, detail=f"Unknown fields: {', '.join(sorted(unknown))}")
    if not payload:
        raise HTTPException(status_code=400, detail="Missing updates")
    task, errors = store.edit_custom_task(task_id, **{keys[k]: v for k, v in payload.items()})
    if errors and task is None and any(e.startswith("Task not found") for e in errors):
        raise HTTPException(status_code=404, detail="; ".join(errors))
    _errors(errors)
    return {"ok": True, "task": task.to_dict(), **_day_response(store)}


@app.delete("/api/tasks/{task_id}")
def api_delete_task(
    task_id: str,
    scope: str = "day",
    date: str | None = None,
    store: ProgressStore = Depends(get_store),
) -> dict[str, Any]:
    """Remove a task from the date only (scope=day) or stop it recurring (scope=recurring).

    scope=day on a recurring task only drops the stored instance: while its
    template applies to the date the task is shown again, reported as
    ``stillScheduled``. Use scope=recurring to stop it.
    """
    _select(store, date)
    if scope == "day":
        removed = store.remove_custom_task(task_id)
    elif scope == "recurring":
        removed = store.remove_recurring_task(task_id)
    else:
        raise HTTPException(status_code=400, detail=f"Invalid scope: {scope}")
    if not removed:
        raise HTTPException(status_code=404, detail=f"Task not found: {task_id}")
    still_scheduled = store.day_progress.find_custom(task_id) is not None
    return {"ok": True, "task_id": task_id, "stillScheduled": still_scheduled, **_day_response(store)}


@app.post("/api/tasks/{task_id}/toggle")
def api_toggle_task(task_id: str, date: str | None = None, store: ProgressStore = Depends(get_store)) -> dict[str, Any]:
    _select(store, date)
    if not store.toggle_custom_task(task_id):
        raise HTTPException(status_code=404, detail=f"Task not found: {task_id}")
    return _day_response(store)


@app.post("/api/tasks/{task_id}/sub/{sub_id}/toggle")
def api_toggle_sub_item(
    task_id: str,
    sub_id: str,
    date: str | None = None,
    store: ProgressStore = Depends(get_store),
) -> dict[str, Any]:
    _select(store, date)
    if not store.toggle_sub_check_item(task_id, sub_id):
        raise HTTPException(status_code=404, detail=f"Sub-item not found: {task_id}/{sub_id}")
    return _day_response(store)


@app.post("/api/writes/retry")
def api_retry_writes(store: ProgressStore = Depends(get_store)) -> dict[str, Any]:
    """Re-issue writes that failed earlier; reports what is still pending."""
    remaining = store.retry_failed_writes()
    if remaining:
        logger.warning("%d write(s) still failing for %s", remaining, store.user_id)
    return {"ok": remaining == 0, "pendingWrites": [f.to_dict() for f in store.pending_writes]}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=os.environ.get("DAYSTREAK_HOST", "127.0.0.1"),
        port=int(os.environ.get("DAYSTREAK_PORT", "8000")),
    )
