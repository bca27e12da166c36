"""Per-user document store capability for DayStreak.

Paths follow the document/collection convention: an even number of
segments names a document (``users/ann/progress/2024-03-01``), an odd
number names a collection (``users/ann/progress``).

Subscribers receive the full current value on subscribe and again after
every write that touches the path: a document path delivers the document
(or None), a collection path delivers ``{doc_id: document}``. Delivery is
synchronous on the writer's call stack.
"""

from __future__ import annotations

import copy
import logging
from collections import defaultdict
from collections.abc import Callable
from pathlib import Path
from typing import Any

from daystreak.fileio import read_json, write_json_atomic

logger = logging.getLogger(__name__)

OnNext = Callable[[Any], None]
OnError = Callable[[Exception], None]


def sanitize(value: Any) -> Any:
    """Recursively drop None fields so documents never hold an absent sentinel."""
    if isinstance(value, list):
        return [sanitize(v) for v in value]
    if isinstance(value, dict):
        return {k: sanitize(v) for k, v in value.items() if v is not None}
    return value


def split_path(path: str) -> list[str]:
    parts = [p for p in path.strip("/").split("/")]
    if not parts or any(not p or p in (".", "..") for p in parts):
        raise ValueError(f"Invalid document path: {path!r}")
    return parts


def is_collection(path: str) -> bool:
    return len(split_path(path)) % 2 == 1


def user_path(user_id: str, *parts: str) -> str:
    if not user_id or "/" in user_id or user_id in (".", ".."):
        raise ValueError(f"Invalid user id: {user_id!r}")
    return "/".join(("users", user_id) + parts)


class Subscription:
    """Handle returned by subscribe(); call unsubscribe() to stop delivery."""

    def __init__(self, store: DocumentStore, path: str, on_next: OnNext, on_error: OnError | None) -> None:
        self.store = store
        self.path = path
        self.on_next = on_next
        self.on_error = on_error
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self.store._remove(self)


class DocumentStore:
    """Subscribe / write / read-once over documents and collections.

    Subclasses provide _get, _put and _list.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, list[Subscription]] = defaultdict(list)

    # ── Backend hooks ──────────────────────────────────────────

    def _get(self, path: str) -> dict[str, Any] | None:
        raise NotImplementedError

    def _put(self, path: str, value: dict[str, Any]) -> None:
        raise NotImplementedError

    def _list(self, path: str) -> dict[str, dict[str, Any]]:
        raise NotImplementedError

    # ── Public API ─────────────────────────────────────────────

    def read_once(self, path: str) -> Any:
        """Current value of a document (dict or None) or a collection (dict)."""
        if is_collection(path):
            return self._list(path)
        return self._get(path)

    def write_document(self, path: str, value: dict[str, Any]) -> None:
        """Replace the whole document at *path*. Raises on backend failure."""
        if is_collection(path):
            raise ValueError(f"Cannot write to a collection path: {path!r}")
        self._put(path, sanitize(value))
        parts = split_path(path)
        self._notify("/".join(parts))
        self._notify("/".join(parts[:-1]))

    def subscribe(self, path: str, on_next: OnNext, on_error: OnError | None = None) -> Subscription:
        path = "/".join(split_path(path))
        sub = Subscription(self, path, on_next, on_error)
        self._subscribers[path].append(sub)
        self._deliver(sub)
        return sub

    # ── Delivery ───────────────────────────────────────────────

    def _remove(self, sub: Subscription) -> None:
        subs = self._subscribers.get(sub.path, [])
        if sub in subs:
            subs.remove(sub)

    def _notify(self, path: str) -> None:
        for sub in list(self._subscribers.get(path, [])):
            if sub.active:
                self._deliver(sub)

    def _deliver(self, sub: Subscription) -> None:
        try:
            value = self.read_once(sub.path)
        except Exception as e:
            if sub.on_error is None:
                logger.warning("Listener for %s failed: %s", sub.path, e)
            else:
                sub.on_error(e)
            return
        sub.on_next(value)


class MemoryDocumentStore(DocumentStore):
    """In-process store; values are deep-copied on the way in and out."""

    def __init__(self, documents: dict[str, dict[str, Any]] | None = None) -> None:
        super().__init__()
        self._docs: dict[str, dict[str, Any]] = {}
        for path, value in (documents or {}).items():
            self._docs["/".join(split_path(path))] = copy.deepcopy(value)

    def _get(self, path: str) -> dict[str, Any] | None:
        value = self._docs.get("/".join(split_path(path)))
        return copy.deepcopy(value) if value is not None else None

    def _put(self, path: str, value: dict[str, Any]) -> None:
        self._docs["/".join(split_path(path))] = copy.deepcopy(value)

    def _list(self, path: str) -> dict[str, dict[str, Any]]:
        prefix = split_path(path)
        out = {}
        for key, value in self._docs.items():
            parts = key.split("/")
            if len(parts) == len(prefix) + 1 and parts[:-1] == prefix:
                out[parts[-1]] = copy.deepcopy(value)
        return out


class FileDocumentStore(DocumentStore):
    """One JSON file per document under *root*, written atomically."""

    def __init__(self, root: Path) -> None:
        super().__init__()
        self.root = Path(root)

    def _file(self, path: str) -> Path:
        parts = split_path(path)
        return self.root.joinpath(*parts[:-1]) / f"{parts[-1]}.json"

    def _get(self, path: str) -> dict[str, Any] | None:
        return read_json(self._file(path))

    def _put(self, path: str, value: dict[str, Any]) -> None:
        write_json_atomic(self._file(path), value)

    def _list(self, path: str) -> dict[str, dict[str, Any]]:
        folder = self.root.joinpath(*split_path(path))
        if not folder.is_dir():
            return {}
        out = {}
        for f in sorted(folder.glob("*.json")):
            if f.name.startswith("."):
                continue
            data = read_json(f)
            if data is not None:
                out[f.stem] = data
        return out
