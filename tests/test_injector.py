"""Tests for daystreak/injector.py — recurring task projection."""

from daystreak.checklist import fresh_day
from daystreak.injector import effective_day, fresh_instance, project
from daystreak.models import CustomTask, SubCheckItem


def _template(**kw) -> CustomTask:
    base = {"id": "r1", "label": "Stretch", "recurring": True}
    base.update(kw)
    return CustomTask(**base)


def test_project_without_record_starts_fresh():
    day = project(None, [_template()], "2024-03-01")
    assert day.date == "2024-03-01"
    assert len(day.items) == 4
    assert [t.id for t in day.custom_items] == ["r1"]


def test_project_is_idempotent():
    registry = [_template()]
    once = project(None, registry, "2024-03-01")
    twice = project(once, registry, "2024-03-01")
    assert [t.id for t in twice.custom_items] == ["r1"]


def test_project_respects_active_days():
    registry = [_template(active_days=[1, 3, 5])]  # Tue, Thu, Sat
    injected = {
        d for d in ("2024-01-01", "2024-01-02", "2024-01-03", "2024-01-04",
                    "2024-01-05", "2024-01-06", "2024-01-07")
        if project(None, registry, d).custom_items
    }
    assert injected == {"2024-01-02", "2024-01-04", "2024-01-06"}


def test_project_does_not_mutate_input():
    day = fresh_day("2024-03-01")
    project(day, [_template()], "2024-03-01")
    assert day.custom_items == []


def test_project_keeps_existing_instance_state():
    day = fresh_day("2024-03-01")
    day.custom_items.append(_template(completed_at="2024-03-01T07:00:00"))
    out = project(day, [_template()], "2024-03-01")
    assert len(out.custom_items) == 1
    assert out.custom_items[0].completed is True


def test_fresh_instance_resets_state():
    template = _template(
        completed_at="2024-02-01T07:00:00",
        sub_checklist=[SubCheckItem(id="s1", text="Neck", checked=True)],
    )
    task = fresh_instance(template)
    assert task.completed_at is None
    assert task.sub_checklist[0].checked is False
    assert template.sub_checklist[0].checked is True


def test_effective_day_hides_builtins_but_keeps_storage():
    day = fresh_day("2024-03-01")
    day.items[3].completed_at = "2024-03-01T10:00:00"
    view = effective_day(day, [], ["chat_session"], "2024-03-01")
    assert "chat_session" not in [i.id for i in view.items]
    assert day.items[3].completed_at == "2024-03-01T10:00:00"
