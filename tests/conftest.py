"""Shared test fixtures for DayStreak tests."""

from __future__ import annotations

import os
from pathlib import Path

import pytest
import yaml

from daystreak.documents import MemoryDocumentStore
from daystreak.store import ProgressStore


class FakeClock:
    """Settable stand-in for the wall clock; returns ISO timestamps."""

    def __init__(self, now: str) -> None:
        self.now = now

    def set(self, now: str) -> None:
        self.now = now

    def __call__(self) -> str:
        return self.now


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Create a temporary workspace with settings.yaml."""
    root = tmp_path / "workspace"
    (root / "users").mkdir(parents=True)
    settings = {"timezone": "Europe/Copenhagen", "log_level": "DEBUG"}
    (root / "settings.yaml").write_text(
        yaml.dump(settings, default_flow_style=False), encoding="utf-8"
    )

    os.environ["DAYSTREAK_ROOT"] = str(root)
    yield root
    if "DAYSTREAK_ROOT" in os.environ:
        del os.environ["DAYSTREAK_ROOT"]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock("2024-03-01T09:00:00+00:00")


@pytest.fixture
def documents() -> MemoryDocumentStore:
    return MemoryDocumentStore()


@pytest.fixture
def make_store(documents, clock):
    """Build a ProgressStore for user 'ann' over the shared in-memory documents."""
    stores = []

    def _make(user_id: str | None = "ann", **kwargs) -> ProgressStore:
        store = ProgressStore(documents, user_id, clock=clock, **kwargs)
        stores.append(store)
        return store

    yield _make
    for store in stores:
        store.close()


@pytest.fixture
def water_registry() -> dict:
    """Settings document holding one every-day recurring template."""
    return {
        "streakCount": 0,
        "hiddenDefaultItems": [],
        "recurringTasks": [
            {"id": "water", "label": "Drink water", "timeOfDay": "morning", "recurring": True, "activeDays": []},
        ],
    }
