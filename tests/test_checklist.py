"""Tests for daystreak/checklist.py — built-ins, validation, legacy migration."""

from daystreak.checklist import (
    DEFAULT_ITEM_IDS,
    fresh_day,
    migrate_store,
    validate_custom_task,
)
from daystreak.injector import project


def test_fresh_day_has_uncompleted_builtins():
    day = fresh_day("2024-03-01")
    assert [i.id for i in day.items] == list(DEFAULT_ITEM_IDS)
    assert all(i.completed_at is None for i in day.items)
    assert day.custom_items == []


def test_fresh_day_items_are_independent():
    a = fresh_day("2024-03-01")
    a.items[0].completed_at = "2024-03-01T08:00:00"
    assert fresh_day("2024-03-01").items[0].completed_at is None


def test_validate_custom_task_valid():
    assert validate_custom_task({"label": "Walk", "timeOfDay": "evening", "activeDays": [0, 6]}) == []


def test_validate_custom_task_empty_label():
    errors = validate_custom_task({"label": "  "})
    assert any("label" in e for e in errors)


def test_validate_custom_task_bad_time_of_day():
    errors = validate_custom_task({"label": "Walk", "timeOfDay": "night"})
    assert any("timeOfDay" in e for e in errors)


def test_validate_custom_task_bad_weekday():
    errors = validate_custom_task({"label": "Walk", "activeDays": [7]})
    assert any("activeDays" in e for e in errors)


def test_validate_custom_task_sub_items_need_text():
    errors = validate_custom_task({"label": "Walk", "subChecklist": [{"id": "a"}]})
    assert any("subChecklist" in e for e in errors)


def test_migrate_blob_store():
    raw = {
        "days": {
            "2024-03-01": {
                "date": "2024-03-01",
                "items": [{"id": "study_deck", "label": "Study a Deck", "completedAt": "2024-03-01T08:00:00"}],
                "customItems": [{"id": "t1", "label": "Walk"}],
            },
        },
        "streakCount": 4,
        "lastCompletedDate": "2024-02-29",
        "recurringTasks": [{"id": "r1", "label": "Water", "recurring": True}],
        "hiddenDefaultItems": ["chat_session"],
    }
    state, days = migrate_store(raw)
    assert state.streak_count == 4
    assert state.last_completed_date == "2024-02-29"
    assert state.hidden_default_items == ["chat_session"]
    assert state.recurring_tasks[0].time_of_day == "morning"
    day = days["2024-03-01"]
    assert day.items[0].time_of_day == "morning"
    assert day.items[0].completed is True
    assert day.custom_items[0].time_of_day == "morning"


def test_migrate_flat_store_fills_time_of_day_from_builtins():
    raw = {
        "date": "2024-01-05",
        "items": [{"id": "writing_test", "label": "Writing"}, {"id": "mystery", "label": "?"}],
        "streakCount": 2,
        "lastCompletedDate": "2024-01-04",
    }
    state, days = migrate_store(raw)
    assert state.streak_count == 2
    assert state.recurring_tasks == []
    items = days["2024-01-05"].items
    assert items[0].time_of_day == "afternoon"
    assert items[1].time_of_day == "morning"


def test_migrate_unknown_shape_is_empty():
    state, days = migrate_store("garbage")
    assert days == {}
    assert state.streak_count == 0
    state, days = migrate_store({"foo": 1})
    assert days == {}


def test_migrate_shifts_sunday_first_weekdays():
    raw = {
        "days": {
            "2024-01-01": {
                "items": [],
                "customItems": [{"id": "r", "label": "Run", "recurring": True, "activeDays": [0, 1]}],
            },
        },
        "recurringTasks": [{"id": "r", "label": "Run", "recurring": True, "activeDays": [1, 6]}],
    }
    state, days = migrate_store(raw)
    # Monday and Saturday in the older encoding
    assert state.recurring_tasks[0].active_days == [0, 5]
    # Sunday and Monday
    assert days["2024-01-01"].custom_items[0].active_days == [6, 0]

    monday = project(None, state.recurring_tasks, "2024-01-01")
    tuesday = project(None, state.recurring_tasks, "2024-01-02")
    assert [t.id for t in monday.custom_items] == ["r"]
    assert tuesday.custom_items == []
