"""
Key-value storage substrate for backups, history and templates.

The engine only needs a synchronous, string-keyed get/set/remove store.
Two implementations are provided: an in-memory store (tests, embedding) and
a directory of JSON files written atomically.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from codereel.core.errors import StorageError
from codereel.core.timestamps import to_jsonable

logger = logging.getLogger(__name__)

# Dedicated keys
BACKUPS_KEY = "codereel-backups"
IMPORT_HISTORY_KEY = "codereel-import-history"
EXPORT_HISTORY_KEY = "codereel-export-history"
TEMPLATES_KEY = "codereel-templates"
CURRENT_PROJECT_KEY = "codereel-project"

_SAFE_KEY = re.compile(r"^[A-Za-z0-9._-]+$")


@runtime_checkable
class KeyValueStore(Protocol):
    """Minimal byte/string store keyed by string."""

    def get(self, key: str) -> str | None:
        """Return the stored value, or None when absent."""
        ...

    def set(self, key: str, value: str) -> None:
        """Store *value* under *key*, replacing any previous value."""
        ...

    def remove(self, key: str) -> None:
        """Delete *key* if present."""
        ...


class MemoryStore:
    """In-process store backed by a dict."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._data)


class JsonFileStore:
    """Store that keeps one file per key inside a directory.

    Writes go to a temporary file in the same directory and are then moved
    over the target, so a crash never leaves a half-written value behind.
    """

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def _path_for(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise StorageError(f"Invalid storage key: {key!r}")
        return self.directory / f"{key}.json"

    def get(self, key: str) -> str | None:
        path = self._path_for(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}") from e

    def set(self, key: str, value: str) -> None:
        path = self._path_for(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to create {self.directory}: {e}") from e

        temp_fd, temp_path = tempfile.mkstemp(
            suffix=".json",
            prefix=f".{path.name}.",
            dir=self.directory,
            text=True,
        )
        try:
            with os.fdopen(temp_fd, "w", encoding="utf-8") as f:
                f.write(value)
                f.flush()
                os.fsync(f.fileno())
            Path(temp_path).replace(path)
        except Exception as e:
            with contextlib.suppress(OSError):
                Path(temp_path).unlink()
            raise StorageError(f"Failed to write {path}: {e}") from e

    def remove(self, key: str) -> None:
        path = self._path_for(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to remove {path}: {e}") from e


def read_json_list(store: KeyValueStore, key: str) -> list[Any]:
    """Read a JSON array from the store.

    Missing keys, corrupt JSON, non-list values and store failures all
    degrade to an empty list.
    """
    try:
        raw = store.get(key)
    except Exception as e:
        logger.warning("Failed to read %s from storage: %s", key, e)
        return []
    if not raw:
        return []
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError) as e:
        logger.warning("Ignoring corrupt data under %s: %s", key, e)
        return []
    if not isinstance(parsed, list):
        logger.warning("Ignoring non-list data under %s", key)
        return []
    return parsed


def write_json(store: KeyValueStore, key: str, value: Any) -> None:
    """Serialize *value* as JSON and store it.

    Raises:
        StorageError: If serialization or the underlying write fails.
    """
    try:
        payload = json.dumps(to_jsonable(value), ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise StorageError(f"Cannot serialize data for {key}: {e}") from e
    try:
        store.set(key, payload)
    except StorageError:
        raise
    except Exception as e:
        raise StorageError(f"Storage write failed for {key}: {e}") from e
