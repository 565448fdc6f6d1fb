"""Synchronous string key/value stores with change notification.

The session repository and the preferences read and write plain strings
through the ``KeyValueStore`` protocol. Two implementations are provided:

- ``InMemoryStore`` for tests and ephemeral use.
- ``FileStore`` which keeps every key in one JSON object on disk and replaces
  the file atomically on each write.

Listeners subscribed to a key are called with the new value whenever it
changes, either through ``set`` or, for ``FileStore``, when ``reload`` picks
up a write made by another process.
"""

import json
import logging
import os
from collections import defaultdict
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

ChangeListener = Callable[[str | None], None]
Unsubscribe = Callable[[], None]


class KeyValueStore(Protocol):
    """String key/value store consumed by the repository and preferences."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def subscribe(self, key: str, callback: ChangeListener) -> Unsubscribe: ...


class InMemoryStore:
    """Dictionary-backed store."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})
        self._listeners: dict[str, list[ChangeListener]] = defaultdict(list)

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value
        self._notify(key, value)

    def subscribe(self, key: str, callback: ChangeListener) -> Unsubscribe:
        """Register a listener for changes to ``key``.

        Returns:
            Callable that removes the listener again.
        """
        self._listeners[key].append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners[key]:
                self._listeners[key].remove(callback)

        return unsubscribe

    def _notify(self, key: str, value: str | None) -> None:
        for callback in list(self._listeners.get(key, ())):
            try:
                callback(value)
            except Exception:
                logger.exception(f"Change listener for '{key}' failed")


class FileStore(InMemoryStore):
    """Store persisted as a single JSON object file.

    Args:
        path: Location of the JSON file. Parent directories are created on
            first write.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        super().__init__(self._read())

    def set(self, key: str, value: str) -> None:
        self._data[key] = value
        self._write()
        self._notify(key, value)

    def reload(self) -> list[str]:
        """Re-read the file and notify listeners of keys changed elsewhere.

        Returns:
            Keys whose values differ from the previously loaded data.
        """
        fresh = self._read()
        changed = [
            key
            for key in set(fresh) | set(self._data)
            if fresh.get(key) != self._data.get(key)
        ]
        self._data = fresh
        for key in changed:
            self._notify(key, fresh.get(key))
        return changed

    def _read(self) -> dict[str, str]:
        try:
            with open(self.path, encoding="utf-8") as handle:
                data = json.load(handle)
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring unreadable store file {self.path}: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Ignoring store file {self.path}: expected a JSON object")
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _write(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(f"{self.path.suffix}.tmp")
        with open(tmp_path, "w", encoding="utf-8") as handle:
            json.dump(self._data, handle, indent=2, sort_keys=True)
        os.replace(tmp_path, self.path)
