"""Workspace root, settings.yaml, timezone and logging setup for DayStreak."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from daystreak.fileio import read_yaml, write_yaml_atomic

DEFAULT_LOG_LEVEL = "INFO"

logger = logging.getLogger(__name__)


def workspace_root() -> Path:
    """Get the workspace root directory (holds settings.yaml and users/)."""
    return Path(
        os.environ.get("DAYSTREAK_ROOT", str(Path.home() / "daystreak"))
    ).expanduser().resolve()


def settings_path(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "settings.yaml"


def documents_path(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "users"


def load_settings(root: Path | None = None) -> dict:
    """Read settings.yaml; a missing or unparsable file yields {}."""
    try:
        return read_yaml(settings_path(root))
    except Exception as e:
        logger.warning("Ignoring unreadable settings file: %s", e)
        return {}


def get_user_timezone(root: Path | None = None) -> ZoneInfo:
    """Get the configured timezone, defaulting to UTC."""
    name = load_settings(root).get("timezone")
    if name:
        try:
            return ZoneInfo(str(name))
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Unknown timezone %r, using UTC", name)
    return ZoneInfo("UTC")


def configure_logging(root: Path | None = None) -> None:
    """Apply log_level from settings.yaml to the root logger."""
    level = str(load_settings(root).get("log_level", DEFAULT_LOG_LEVEL)).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def init_workspace(root: Path | None = None, timezone: str = "UTC") -> Path:
    """Create the workspace with a default settings.yaml if none exists."""
    if root is None:
        root = workspace_root()
    documents_path(root).mkdir(parents=True, exist_ok=True)
    path = settings_path(root)
    if not path.exists():
        write_yaml_atomic(path, {"timezone": timezone, "log_level": DEFAULT_LOG_LEVEL})
    return root
