"""Key-value persistence for the reminder scheduler.

Created: 2026-10-04

The scheduler only needs ``save(key, value)`` / ``load(key)`` on strings.
Two backends ship here:

- ``MemoryKeyValueStore`` - process-local dict (tests, ephemeral hosts)
- ``FileKeyValueStore`` - one ``<key>.json`` file per key

Storage layout (FileKeyValueStore):
~/.smartcal/store/
    scheduledReminders.json   # pending reminder snapshot
    reminderLogs.json         # durable log of fired reminders

Backends raise on I/O failure; the scheduler decides what to swallow.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class KeyValueStoreProtocol(Protocol):
    """Synchronous string key-value store."""

    def save(self, key: str, value: str) -> None:
        """Store *value* under *key*, replacing any previous value."""
        ...

    def load(self, key: str) -> str | None:
        """Return the value stored under *key*, or None."""
        ...


class MemoryKeyValueStore:
    """Dict-backed store. Nothing survives the process."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    def save(self, key: str, value: str) -> None:
        self._data[key] = value

    def load(self, key: str) -> str | None:
        return self._data.get(key)

    def clear(self) -> None:
        self._data.clear()


class FileKeyValueStore:
    """File-per-key store with atomic writes (temp file + rename)."""

    def __init__(self, base_path: Path | None = None):
        """Initialize the store.

        Args:
            base_path: Directory for storage files. Defaults to ~/.smartcal/store/
        """
        if base_path is None:
            base_path = Path.home() / ".smartcal" / "store"

        self.base_path = base_path
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _path_for(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise ValueError(f"Invalid store key: {key!r}")
        return self.base_path / f"{key}.json"

    def save(self, key: str, value: str) -> None:
        path = self._path_for(key)
        temp_path = path.with_suffix(".tmp")
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                f.write(value)
            temp_path.replace(path)
        except OSError:
            if temp_path.exists():
                temp_path.unlink()
            raise

    def load(self, key: str) -> str | None:
        path = self._path_for(key)
        if not path.exists():
            return None
        with open(path, encoding="utf-8") as f:
            return f.read()
