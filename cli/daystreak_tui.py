#!/usr/bin/env python3
"""DayStreak TUI — daily checklist and streak in the terminal, powered by Textual."""

from __future__ import annotations

import argparse
import getpass
import json
import sys
from pathlib import Path

from textual import on
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical, VerticalScroll
from textual.widgets import Checkbox, Footer, Header, Input, Label, Static

from daystreak import (
    FileDocumentStore,
    ProgressStore,
    configure_logging,
    get_user_timezone,
    group_by_time_of_day,
    import_legacy_store,
    init_workspace,
    shift_day,
    workspace_root,
)

CSS = """
Screen {
    layout: vertical;
}

#week-strip {
    height: 3;
    padding: 0 1;
    border-bottom: solid $primary-background;
}

#checklist {
    padding: 0 1;
}

.section-title {
    text-style: bold;
    color: $accent;
    margin-top: 1;
}

.todo-done {
    color: $text-muted;
}

.sub-item {
    padding-left: 4;
    color: $text-muted;
}

#add-task {
    dock: bottom;
    display: none;
}

#add-task.visible {
    display: block;
}
"""

DAY_NAMES = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


class ItemCheckbox(Checkbox):
    """Checkbox that remembers which built-in item or custom task it drives."""

    def __init__(self, label: str, value: bool, item_id: str, custom: bool) -> None:
        super().__init__(label, value=value)
        self.item_id = item_id
        self.custom = custom


class DayStreakApp(App):
    """DayStreak — interactive daily checklist."""

    TITLE = "DayStreak"
    CSS = CSS
    AUTO_FOCUS = None

    BINDINGS = [
        Binding("left", "prev_day", "Prev day"),
        Binding("right", "next_day", "Next day"),
        Binding("t", "go_today", "Today"),
        Binding("a", "add_task", "Add task"),
        Binding("escape", "cancel_add", "Cancel"),
        Binding("q", "quit_app", "Quit"),
    ]

    def __init__(self, store: ProgressStore) -> None:
        super().__init__()
        self.store = store
        self._unlisten = None

    def compose(self) -> ComposeResult:
        yield Header()
        yield Static(id="week-strip")
        yield VerticalScroll(Vertical(id="checklist-body"), id="checklist")
        yield Input(placeholder="New task for this day (Enter to add)…", id="add-task")
        yield Footer()

    def on_mount(self) -> None:
        self._unlisten = self.store.add_listener(self._refresh)
        self._refresh()

    def _refresh(self) -> None:
        if not self.is_mounted:
            return
        self._update_header()
        self._update_week_strip()
        self._rebuild_checklist()

    def _update_header(self) -> None:
        store = self.store
        label = "Today" if store.selected_date == store.today() else store.selected_date
        parts = [f"🔥 {store.streak_count}", label, f"{store.completed_count}/{store.total_count}"]
        if store.all_done:
            parts.append("all done!")
        if store.pending_writes:
            parts.append(f"({len(store.pending_writes)} unsaved)")
        self.sub_title = "  ".join(parts)

    def _update_week_strip(self) -> None:
        store = self.store
        cells = []
        for i, date_key in enumerate(store.week()):
            progress = store.get_date_progress(date_key)
            mark = "✓" if progress.all_done else ("•" if store.has_tasks_for_date(date_key) else " ")
            cell = f"{DAY_NAMES[i]} {progress.completed}/{progress.total}{mark}"
            if date_key == store.selected_date:
                cell = f"[reverse]{cell}[/reverse]"
            cells.append(cell)
        summary = store.week_summary()
        cells.append(f"  week {summary.percent}% ({summary.days_fully_done} full days)")
        self.query_one("#week-strip", Static).update("  ".join(cells))

    def _rebuild_checklist(self) -> None:
        body = self.query_one("#checklist-body", Vertical)
        body.remove_children()
        if not self.store.loaded:
            body.mount(Label("Loading…"))
            return
        for group in group_by_time_of_day(self.store.day_progress):
            if not group["coreItems"] and not group["customItems"]:
                continue
            body.mount(Label(group["timeOfDay"].capitalize(), classes="section-title"))
            for item in group["coreItems"]:
                cb = ItemCheckbox(f"{item.label} — {item.sublabel}", item.completed, item.id, custom=False)
                if item.completed:
                    cb.add_class("todo-done")
                body.mount(cb)
            for task in group["customItems"]:
                suffix = " ↻" if task.recurring else ""
                cb = ItemCheckbox(f"{task.label}{suffix}", task.completed, task.id, custom=True)
                if task.completed:
                    cb.add_class("todo-done")
                body.mount(cb)
                for sub in task.sub_checklist:
                    mark = "☑" if sub.checked else "☐"
                    body.mount(Label(f"{mark} {sub.text}", classes="sub-item"))

    # ── Events ─────────────────────────────────────────────────

    @on(Checkbox.Changed)
    def _on_checkbox_toggle(self, event: Checkbox.Changed) -> None:
        cb = event.checkbox
        if not isinstance(cb, ItemCheckbox):
            return
        if cb.custom:
            self.store.toggle_custom_task(cb.item_id)
        elif event.value:
            self.store.complete_item(cb.item_id)
        else:
            self.store.uncomplete_item(cb.item_id)

    @on(Input.Submitted, "#add-task")
    def _on_add_task(self, event: Input.Submitted) -> None:
        label = event.value.strip()
        event.input.value = ""
        event.input.remove_class("visible")
        if not label:
            return
        _task, errors = self.store.add_custom_task(label, time_of_day="evening")
        if errors:
            self.notify("; ".join(errors), severity="error")

    # ── Actions ────────────────────────────────────────────────

    def action_prev_day(self) -> None:
        self.store.set_selected_date(shift_day(self.store.selected_date, -1))

    def action_next_day(self) -> None:
        self.store.set_selected_date(shift_day(self.store.selected_date, 1))

    def action_go_today(self) -> None:
        self.store.set_selected_date(self.store.today())

    def action_add_task(self) -> None:
        box = self.query_one("#add-task", Input)
        box.add_class("visible")
        box.focus()

    def action_cancel_add(self) -> None:
        box = self.query_one("#add-task", Input)
        box.remove_class("visible")
        box.value = ""
        self.set_focus(None)

    def action_quit_app(self) -> None:
        if self._unlisten is not None:
            self._unlisten()
        self.store.close()
        self.exit()


# ── Entry point ────────────────────────────────────────────────


def main() -> None:
    parser = argparse.ArgumentParser(description="DayStreak daily checklist")
    parser.add_argument("--user", default=getpass.getuser(), help="user id whose checklist to open")
    parser.add_argument("--init", action="store_true", help="create the workspace if missing")
    parser.add_argument("--import-legacy", metavar="FILE", help="import an older single-file progress store")
    args = parser.parse_args()

    root = workspace_root()
    if args.init:
        init_workspace(root)
    if not root.exists():
        print(f"Workspace not found: {root}")
        print("Set DAYSTREAK_ROOT or run with --init first.")
        sys.exit(1)

    configure_logging(root)
    documents = FileDocumentStore(root)

    if args.import_legacy:
        raw = json.loads(Path(args.import_legacy).read_text(encoding="utf-8"))
        count = import_legacy_store(documents, args.user, raw)
        print(f"Imported {count} day(s) for {args.user}")
        return

    store = ProgressStore(documents, args.user, tz=get_user_timezone(root))
    DayStreakApp(store).run()


if __name__ == "__main__":
    main()
