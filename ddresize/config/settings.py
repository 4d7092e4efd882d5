"""Settings storage for application configuration."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


SETTINGS_PATH = Path(
    os.environ.get(
        "DDRESIZE_SETTINGS_PATH",
        Path.home() / ".config" / "ddresize" / "settings.json",
    )
)

# Default values - use these constants instead of hardcoding values elsewhere
DEFAULT_CHUNK_SIZE_BYTES = 81920
# Raw disk handles only accept reads in whole sectors
SECTOR_SIZE_BYTES = 512
DEFAULT_PROGRESS_LOG_INTERVAL = 5.0
DEFAULT_PROGRESS_BAR_WIDTH = 30

DEFAULT_SETTINGS: dict[str, Any] = {
    "chunk_size_bytes": DEFAULT_CHUNK_SIZE_BYTES,
    "progress_log_interval_seconds": DEFAULT_PROGRESS_LOG_INTERVAL,
    "progress_bar_width": DEFAULT_PROGRESS_BAR_WIDTH,
}


@dataclass
class SettingsStore:
    values: dict[str, Any] = field(default_factory=dict)


settings_store = SettingsStore()


def load_settings() -> None:
    settings_store.values = dict(DEFAULT_SETTINGS)
    if not SETTINGS_PATH.exists():
        return
    try:
        data = json.loads(SETTINGS_PATH.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return
    if isinstance(data, dict):
        settings_store.values.update(data)


def get_setting(key: str, default: Any | None = None) -> Any:
    return settings_store.values.get(key, default)


def get_int(key: str, default: int = 0) -> int:
    """Return a positive integer setting, falling back to ``default``."""
    value = get_setting(key, default)
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def get_float(key: str, default: float = 0.0) -> float:
    value = get_setting(key, default)
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def get_chunk_size() -> int:
    """Return ``chunk_size_bytes`` if it is a whole number of sectors."""
    chunk_size = get_int("chunk_size_bytes", DEFAULT_CHUNK_SIZE_BYTES)
    if chunk_size % SECTOR_SIZE_BYTES:
        return DEFAULT_CHUNK_SIZE_BYTES
    return chunk_size


load_settings()
