"""Auto-completion of built-in items from sibling feature activity.

Each signal source samples one sibling feature with a single read_once and
answers "did this happen today". A source that fails to read or returns
malformed data is skipped; the remaining signals still apply.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import Any

from daystreak.clock import date_prefix_matches
from daystreak.documents import DocumentStore, user_path
from daystreak.models import DailyProgress

logger = logging.getLogger(__name__)


class SignalSource:
    """Maps one sibling feature to the built-in item it completes."""

    item_id = ""

    def __init__(self, path: str) -> None:
        self.path = path

    def happened_on(self, value: Any, today: str) -> bool:
        raise NotImplementedError

    def sample(self, documents: DocumentStore, today: str) -> bool:
        return self.happened_on(documents.read_once(self.path), today)


class DeckStudySignal(SignalSource):
    """True if any deck in the collection was studied today."""

    item_id = "study_deck"

    def happened_on(self, value: Any, today: str) -> bool:
        if not isinstance(value, dict):
            return False
        return any(
            isinstance(deck, dict) and date_prefix_matches(deck.get("lastStudied"), today)
            for deck in value.values()
        )


class LastResultSignal(SignalSource):
    """True if a single last-result document was completed today."""

    def __init__(self, path: str, item_id: str) -> None:
        super().__init__(path)
        self.item_id = item_id

    def happened_on(self, value: Any, today: str) -> bool:
        if not isinstance(value, dict):
            return False
        return date_prefix_matches(value.get("completedAt"), today)


def default_sources(user_id: str) -> list[SignalSource]:
    return [
        DeckStudySignal(user_path(user_id, "decks")),
        LastResultSignal(user_path(user_id, "results", "grammar"), "grammar_quiz"),
        LastResultSignal(user_path(user_id, "results", "writing"), "writing_test"),
    ]


class AutoCompletionBridge:
    def __init__(self, documents: DocumentStore, sources: Sequence[SignalSource]) -> None:
        self.documents = documents
        self.sources = list(sources)

    @classmethod
    def for_user(cls, documents: DocumentStore, user_id: str) -> AutoCompletionBridge:
        return cls(documents, default_sources(user_id))

    def reconcile(self, today: str) -> set[str]:
        """Ids of built-in items whose sibling feature completed today."""
        signals = set()
        for source in self.sources:
            try:
                if source.sample(self.documents, today):
                    signals.add(source.item_id)
            except Exception as e:
                logger.warning("Skipping %s signal from %s: %s", source.item_id, source.path, e)
        return signals


def apply_signals(day: DailyProgress, signals: Iterable[str], now: str) -> tuple[DailyProgress, bool]:
    """Complete every signalled built-in that is still open.

    Returns the updated copy and whether anything changed.
    """
    signals = set(signals)
    updated = day.copy()
    changed = False
    for item in updated.items:
        if item.id in signals and not item.completed:
            item.completed_at = now
            changed = True
    return updated, changed
