"""
Conflict detection between incoming and existing project data.

Both sides are compared in their JSON-ready wire form, so a datetime on one
side and the equivalent ISO string on the other do not count as a change.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any

from codereel.conflicts.models import (
    ConflictDifference,
    ConflictItem,
    ConflictType,
    DifferenceType,
)
from codereel.core.timestamps import to_jsonable
from codereel.project.models import DataType

logger = logging.getLogger(__name__)

_MISSING = object()

ExistingSource = Callable[[], "dict[str, Any] | None"]
ConflictObserver = Callable[[list[ConflictItem]], None]


def _kind(value: Any) -> str:
    """Coarse runtime type used to tell a type change from a value change."""
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    return "object"


def find_differences(
    existing: dict[str, Any] | None,
    incoming: dict[str, Any] | None,
    exclude: Iterable[str] = (),
) -> list[ConflictDifference]:
    """List every top-level field whose value differs between two records.

    Each differing field appears exactly once, classified as an addition
    (absent from existing), deletion (absent from incoming), type change or
    value change.
    """
    existing = existing or {}
    incoming = incoming or {}
    excluded = set(exclude)

    differences = []
    fields = list(existing) + [key for key in incoming if key not in existing]
    for name in fields:
        if name in excluded:
            continue
        old = existing.get(name, _MISSING)
        new = incoming.get(name, _MISSING)

        if old is _MISSING:
            kind = DifferenceType.ADDITION
        elif new is _MISSING:
            kind = DifferenceType.DELETION
        elif old == new and _kind(old) == _kind(new):
            continue
        elif _kind(old) != _kind(new):
            kind = DifferenceType.TYPE_CHANGE
        else:
            kind = DifferenceType.VALUE_CHANGE

        differences.append(
            ConflictDifference(
                field=name,
                existing_value=None if old is _MISSING else old,
                incoming_value=None if new is _MISSING else new,
                type=kind,
            )
        )
    return differences


def _keyed_conflicts(
    existing_items: list[Any],
    incoming_items: list[Any],
    data_type: DataType,
) -> list[ConflictItem]:
    by_id = {item.get("id"): item for item in existing_items if isinstance(item, dict)}
    conflicts = []
    for incoming in incoming_items:
        if not isinstance(incoming, dict) or incoming.get("id") not in by_id:
            continue
        existing = by_id[incoming["id"]]
        differences = find_differences(existing, incoming)
        if differences:
            conflicts.append(
                ConflictItem(
                    id=str(incoming["id"]),
                    type=data_type,
                    conflict_type=ConflictType.ID_COLLISION,
                    existing_item=existing,
                    incoming_item=incoming,
                    differences=differences,
                )
            )
    return conflicts


class ConflictDetector:
    """Finds per-entity conflicts against the data already present.

    Args:
        existing_source: Returns the current project in wire form, or None
            when there is nothing to conflict with
        on_conflict_detected: Called with every non-empty conflict list
    """

    def __init__(
        self,
        existing_source: ExistingSource | None = None,
        on_conflict_detected: ConflictObserver | None = None,
    ):
        self.existing_source = existing_source
        self.on_conflict_detected = on_conflict_detected

    def detect_conflicts(self, incoming: dict[str, Any]) -> list[ConflictItem]:
        existing = self.existing_source() if self.existing_source else None
        if not existing:
            return []

        existing = to_jsonable(existing)
        incoming = to_jsonable(incoming)
        conflicts: list[ConflictItem] = []

        old_meta, new_meta = existing.get("metadata"), incoming.get("metadata")
        if isinstance(old_meta, dict) and isinstance(new_meta, dict):
            if old_meta.get("id") == new_meta.get("id"):
                differences = find_differences(old_meta, new_meta)
                if differences:
                    conflicts.append(
                        ConflictItem(
                            id=str(old_meta.get("id")),
                            type=DataType.PROJECT,
                            conflict_type=ConflictType.ID_COLLISION,
                            existing_item=old_meta,
                            incoming_item=new_meta,
                            differences=differences,
                        )
                    )

        old_doc, new_doc = existing.get("document"), incoming.get("document")
        if isinstance(old_doc, dict) and isinstance(new_doc, dict):
            differences = find_differences(old_doc, new_doc, exclude=["snapshots"])
            if differences:
                conflicts.append(
                    ConflictItem(
                        id="document",
                        type=DataType.DOCUMENT,
                        conflict_type=ConflictType.DATA_MISMATCH,
                        existing_item=old_doc,
                        incoming_item=new_doc,
                        differences=differences,
                    )
                )
            if isinstance(old_doc.get("snapshots"), list) and isinstance(new_doc.get("snapshots"), list):
                conflicts.extend(
                    _keyed_conflicts(old_doc["snapshots"], new_doc["snapshots"], DataType.SNAPSHOTS)
                )

        for section, data_type in (("themes", DataType.THEMES), ("presets", DataType.PRESETS)):
            old_items, new_items = existing.get(section), incoming.get(section)
            if isinstance(old_items, list) and isinstance(new_items, list):
                conflicts.extend(_keyed_conflicts(old_items, new_items, data_type))

        if conflicts:
            logger.debug("Detected %d conflict(s)", len(conflicts))
            if self.on_conflict_detected:
                self.on_conflict_detected(conflicts)
        return conflicts
