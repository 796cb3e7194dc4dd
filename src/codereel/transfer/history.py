"""Bounded import/export history persisted in the key-value store."""

from __future__ import annotations

import logging
import random
import string
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from codereel.core.errors import StorageError
from codereel.core.storage import KeyValueStore, read_json_list, write_json
from codereel.core.timestamps import epoch_millis, parse_datetime, utcnow

logger = logging.getLogger(__name__)


def generate_id(prefix: str | None = None) -> str:
    """``<ms>-<rand9>``, optionally prefixed (``op-<ms>-<rand9>``)."""
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    base = f"{epoch_millis()}-{suffix}"
    return f"{prefix}-{base}" if prefix else base


@dataclass
class HistoryItem:
    """One completed (or failed) import or export."""

    filename: str
    format: str | None
    data_type: str
    result: dict[str, Any]
    options: dict[str, Any]
    id: str = field(default_factory=generate_id)
    timestamp: datetime = field(default_factory=utcnow)

    @property
    def success(self) -> bool:
        return bool(self.result.get("success"))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "filename": self.filename,
            "format": self.format,
            "dataType": self.data_type,
            "result": self.result,
            "options": self.options,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HistoryItem:
        timestamp = parse_datetime(data.get("timestamp"))
        if timestamp is None:
            raise ValueError(f"History entry {data.get('id')!r} has no valid timestamp")
        return cls(
            id=str(data["id"]),
            timestamp=timestamp,
            filename=str(data.get("filename", "")),
            format=data.get("format"),
            data_type=str(data.get("dataType", "")),
            result=dict(data.get("result") or {}),
            options=dict(data.get("options") or {}),
        )


class HistoryLog:
    """Newest-first ring of history items under one store key."""

    def __init__(self, store: KeyValueStore, key: str, limit: int = 100):
        self.store = store
        self.key = key
        self.limit = limit

    def entries(self) -> list[HistoryItem]:
        """All entries sorted by timestamp, newest first."""
        items = []
        for entry in read_json_list(self.store, self.key):
            try:
                items.append(HistoryItem.from_dict(entry))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed history entry: %s", e)
        return sorted(items, key=lambda item: item.timestamp, reverse=True)

    def add(self, item: HistoryItem) -> None:
        items = [item, *self.entries()][: self.limit]
        self._save(items)

    def clear(self) -> None:
        self._save([])

    def _save(self, items: list[HistoryItem]) -> None:
        try:
            write_json(self.store, self.key, [i.to_dict() for i in items])
        except StorageError as e:
            logger.warning("Failed to save history %s: %s", self.key, e)
