"""Tests for ui/app.py — HTTP API over a file-backed workspace."""

import threading

import pytest
from fastapi.testclient import TestClient

from ui import app as app_module

DATE = "2030-01-07"  # Monday


@pytest.fixture
def client(workspace, monkeypatch):
    monkeypatch.delenv("DAYSTREAK_USERNAME", raising=False)
    monkeypatch.delenv("DAYSTREAK_PASSWORD", raising=False)
    app_module._documents = None
    app_module._stores.clear()
    app_module._locks.clear()
    yield TestClient(app_module.app)
    for store in app_module._stores.values():
        store.close()
    app_module._stores.clear()
    app_module._locks.clear()
    app_module._documents = None


def test_healthz(client):
    assert client.get("/healthz").json() == {"ok": "true"}


def test_get_day_defaults(client):
    data = client.get("/api/day", params={"date": DATE}).json()
    assert data["date"] == DATE
    assert data["totalCount"] == 4
    assert data["completedCount"] == 0
    assert [g["timeOfDay"] for g in data["groups"]] == ["morning", "afternoon", "evening"]


def test_invalid_date(client):
    assert client.get("/api/day", params={"date": "tomorrow"}).status_code == 400
    assert client.get("/api/calendar/2030-13-01").status_code == 400


def test_complete_item_persists_document(client, workspace):
    r = client.post("/api/items/study_deck/complete", params={"date": DATE})
    assert r.status_code == 200
    assert r.json()["completedCount"] == 1
    assert (workspace / "users" / "guest" / "progress" / f"{DATE}.json").exists()

    r = client.post("/api/items/study_deck/uncomplete", params={"date": DATE})
    assert r.json()["completedCount"] == 0


def test_unknown_item_404(client):
    assert client.post("/api/items/nope/complete", params={"date": DATE}).status_code == 404
    assert client.post("/api/items/nope/visibility").status_code == 404


def test_visibility_toggle(client):
    r = client.post("/api/items/chat_session/visibility")
    assert r.json()["hiddenDefaultItems"] == ["chat_session"]
    assert client.get("/api/day", params={"date": DATE}).json()["totalCount"] == 3


def test_task_lifecycle(client):
    r = client.post("/api/tasks", json={
        "label": "Walk",
        "timeOfDay": "evening",
        "subChecklist": [{"text": "Shoes"}],
        "date": DATE,
    })
    assert r.status_code == 200
    task = r.json()["task"]
    assert r.json()["totalCount"] == 5

    sub_id = task["subChecklist"][0]["id"]
    r = client.post(f"/api/tasks/{task['id']}/sub/{sub_id}/toggle", params={"date": DATE})
    assert r.json()["completedCount"] == 0

    r = client.post(f"/api/tasks/{task['id']}/toggle", params={"date": DATE})
    assert r.json()["completedCount"] == 1

    r = client.put(f"/api/tasks/{task['id']}", json={"label": "Long walk", "date": DATE})
    assert r.json()["task"]["label"] == "Long walk"

    r = client.delete(f"/api/tasks/{task['id']}", params={"date": DATE})
    assert r.json()["totalCount"] == 4
    assert client.delete(f"/api/tasks/{task['id']}", params={"date": DATE}).status_code == 404


def test_add_task_validation(client):
    r = client.post("/api/tasks", json={"label": "", "date": DATE})
    assert r.status_code == 400
    r = client.post("/api/tasks", json={"label": "X", "timeOfDay": "midnight", "date": DATE})
    assert r.status_code == 400


def test_edit_task_errors(client):
    assert client.put("/api/tasks/missing", json={"label": "x", "date": DATE}).status_code == 404
    assert client.put("/api/tasks/missing", json={"colour": "red"}).status_code == 400
    assert client.put("/api/tasks/missing", json={}).status_code == 400


def test_recurring_task_in_calendar(client):
    client.post("/api/tasks", json={"label": "Stretch", "recurring": True, "activeDays": [0], "date": DATE})
    state = client.get("/api/state").json()
    assert [t["label"] for t in state["recurringTasks"]] == ["Stretch"]

    # The following Monday has no record yet but still shows the template.
    assert client.get("/api/calendar/2030-01-14").json() == {
        "date": "2030-01-14", "completed": 0, "total": 5, "hasTasks": True,
    }
    assert client.get("/api/calendar/2030-01-15").json()["hasTasks"] is False


def test_delete_recurring_scope(client):
    task = client.post("/api/tasks", json={"label": "Stretch", "recurring": True, "date": DATE}).json()["task"]
    assert client.delete(f"/api/tasks/{task['id']}", params={"scope": "bogus", "date": DATE}).status_code == 400
    r = client.delete(f"/api/tasks/{task['id']}", params={"scope": "recurring", "date": DATE})
    assert r.status_code == 200
    assert client.get("/api/state").json()["recurringTasks"] == []


def test_calendar_week(client):
    data = client.get("/api/calendar/week", params={"offset": -1}).json()
    assert len(data["days"]) == 7
    assert data["summary"]["total"] == 28


def test_retry_with_nothing_pending(client):
    assert client.post("/api/writes/retry").json() == {"ok": True, "pendingWrites": []}


def test_basic_auth_enforced(client, monkeypatch):
    monkeypatch.setenv("DAYSTREAK_USERNAME", "ann")
    monkeypatch.setenv("DAYSTREAK_PASSWORD", "secret")
    assert client.get("/api/state").status_code == 401
    assert client.get("/api/state", auth=("ann", "wrong")).status_code == 401
    assert client.get("/api/state", auth=("ann", "secret")).status_code == 200


def test_day_scope_delete_reports_recurring_instance(client):
    task = client.post("/api/tasks", json={"label": "Stretch", "recurring": True, "date": DATE}).json()["task"]
    r = client.delete(f"/api/tasks/{task['id']}", params={"date": DATE})
    assert r.status_code == 200
    assert r.json()["stillScheduled"] is True

    one_off = client.post("/api/tasks", json={"label": "Walk", "date": DATE}).json()["task"]
    r = client.delete(f"/api/tasks/{one_off['id']}", params={"date": DATE})
    assert r.json()["stillScheduled"] is False


def test_username_with_slash_rejected(client):
    assert client.get("/api/state", auth=("a/b", "pw")).status_code == 400


def test_requests_for_one_user_wait_for_each_other(client):
    client.get("/api/state")
    lock = app_module._locks["guest"]
    responses = []

    def complete():
        responses.append(client.post("/api/items/study_deck/complete", params={"date": DATE}))

    with lock:
        worker = threading.Thread(target=complete)
        worker.start()
        worker.join(timeout=0.5)
        # Blocked while another request for the same user holds the store.
        assert worker.is_alive()
        assert responses == []
        app_module._stores["guest"].set_selected_date("2030-01-09")
    worker.join(timeout=10)
    assert responses[0].status_code == 200
    assert responses[0].json()["date"] == DATE
    assert responses[0].json()["completedCount"] == 1
    assert not lock.locked()


def test_lock_released_after_error_response(client):
    assert client.post("/api/items/nope/complete", params={"date": DATE}).status_code == 404
    assert not app_module._locks["guest"].locked()
