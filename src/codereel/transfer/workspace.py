"""
Caller-owned state for transfer operations.

``ProjectWorkspace`` holds the project currently open and is the only place
an import commits to. ``TransferContext`` bundles the workspace with the
store, settings and observers so that nothing in the engine is a
module-level singleton.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from codereel.backup.manager import BackupItem
from codereel.conflicts.models import ConflictItem
from codereel.conflicts.resolver import resolved_value
from codereel.core.config import Settings, get_paths, load_settings
from codereel.core.storage import (
    CURRENT_PROJECT_KEY,
    JsonFileStore,
    KeyValueStore,
    MemoryStore,
    write_json,
)
from codereel.core.timestamps import utcnow
from codereel.project.models import DataType, Document, ProjectData, create_metadata
from codereel.transfer.results import ExportProgress, ImportProgress

logger = logging.getLogger(__name__)


def _keyed_merge(
    existing: list[Any],
    incoming: list[Any],
    chosen: dict[tuple[DataType, str], Any],
    data_type: DataType,
) -> list[Any]:
    """Fold incoming id-keyed items into an existing list.

    New ids are appended. A colliding id takes the value its conflict
    resolved to; a resolved copy under a fresh id is appended instead.
    """
    merged = list(existing)
    positions = {
        str(item.get("id")): i for i, item in enumerate(merged) if isinstance(item, dict)
    }
    for item in incoming:
        if not isinstance(item, dict):
            continue
        item_id = str(item.get("id"))
        if item_id not in positions:
            merged.append(item)
            positions[item_id] = len(merged) - 1
            continue
        key = (data_type, item_id)
        if key not in chosen:
            continue
        value = chosen[key]
        if isinstance(value, dict) and str(value.get("id")) != item_id:
            merged.append(value)
        else:
            merged[positions[item_id]] = value
    return merged


def _resolve_in_place(
    incoming: list[Any],
    existing: list[Any],
    chosen: dict[tuple[DataType, str], Any],
    data_type: DataType,
) -> list[Any]:
    """Resolve colliding ids inside an incoming list that replaces an existing one.

    A colliding item takes the value its conflict resolved to. A resolved
    copy under a fresh id keeps the existing item and adds the copy after it.
    """
    old = {str(item.get("id")): item for item in existing if isinstance(item, dict)}
    resolved: list[Any] = []
    for item in incoming:
        item_id = str(item.get("id")) if isinstance(item, dict) else None
        key = (data_type, item_id)
        if item_id is None or key not in chosen:
            resolved.append(item)
            continue
        value = chosen[key]
        if isinstance(value, dict) and str(value.get("id")) != item_id:
            resolved.append(old.get(item_id, item))
        resolved.append(value)
    return resolved


class ProjectWorkspace:
    """Holds the current project, optionally persisted in a store.

    Args:
        project: Initial project
        store: When given, the project is loaded from and saved to it
    """

    def __init__(self, project: ProjectData | None = None, store: KeyValueStore | None = None):
        self.store = store
        self._project = project
        self._loaded = project is not None or store is None

    @property
    def current(self) -> ProjectData | None:
        if not self._loaded:
            self._project = self._load()
            self._loaded = True
        return self._project

    def _load(self) -> ProjectData | None:
        raw = self.store.get(CURRENT_PROJECT_KEY) if self.store else None
        if not raw:
            return None
        try:
            return ProjectData.from_dict(json.loads(raw))
        except (TypeError, ValueError) as e:
            logger.warning("Ignoring unreadable current project: %s", e)
            return None

    def current_wire(self) -> dict[str, Any] | None:
        """The current project in JSON-ready form, for conflict detection."""
        project = self.current
        return project.to_json_dict() if project else None

    def replace(self, project: ProjectData | None) -> None:
        self._project = project
        self._loaded = True
        if self.store is None:
            return
        if project is None:
            self.store.remove(CURRENT_PROJECT_KEY)
        else:
            write_json(self.store, CURRENT_PROJECT_KEY, project.to_json_dict())

    def commit(
        self,
        incoming: dict[str, Any],
        conflicts: Iterable[ConflictItem] = (),
        name_hint: str | None = None,
    ) -> ProjectData:
        """Apply imported data to the workspace and return the new project.

        With no current project, or when the incoming metadata names a
        different project, the incoming data becomes the current project.
        Otherwise it is folded into the current project. Either way every
        conflicting entity takes the value its resolution chose, so a kept
        existing snapshot survives a replacing import.

        Raises:
            ValueError: If the result is not a complete project
        """
        chosen: dict[tuple[DataType, str], Any] = {}
        for conflict in conflicts:
            if conflict.resolution is None:
                continue
            value = resolved_value(conflict, conflict.resolution)
            if value is not None:
                chosen[(conflict.type, conflict.id)] = value

        existing = self.current
        incoming_meta = incoming.get("metadata")
        same_project = (
            existing is not None
            and (not isinstance(incoming_meta, dict) or incoming_meta.get("id") == existing.metadata.id)
        )

        if same_project:
            project = self._fold(existing.to_json_dict(), incoming, chosen)
        else:
            base = existing.to_json_dict() if existing is not None else {}
            project = self._from_incoming(incoming, base, chosen, name_hint)

        project.metadata.updated_at = utcnow()
        project.refresh_derived()
        self.replace(project)
        logger.debug("Committed project %s", project.metadata.id)
        return project

    def _from_incoming(
        self,
        incoming: dict[str, Any],
        base: dict[str, Any],
        chosen: dict[tuple[DataType, str], Any],
        name_hint: str | None,
    ) -> ProjectData:
        data = dict(incoming)
        doc = data.get("document")
        if not isinstance(doc, dict):
            raise ValueError("Imported data has no document")

        base_doc = base.get("document") or {}
        fields = chosen.get((DataType.DOCUMENT, "document"), doc)
        new_doc = {**doc, **{k: v for k, v in fields.items() if k != "snapshots"}}
        new_doc["snapshots"] = _resolve_in_place(
            doc.get("snapshots") or [], base_doc.get("snapshots") or [], chosen, DataType.SNAPSHOTS
        )
        data["document"] = new_doc
        for section, data_type in (("themes", DataType.THEMES), ("presets", DataType.PRESETS)):
            if isinstance(data.get(section), list):
                data[section] = _resolve_in_place(data[section], base.get(section) or [], chosen, data_type)

        if not isinstance(data.get("metadata"), dict):
            document = Document.from_dict(data["document"])
            data["metadata"] = create_metadata(document, name=name_hint or "Untitled Project").to_dict()
        return ProjectData.from_dict(data)

    def _fold(
        self,
        base: dict[str, Any],
        incoming: dict[str, Any],
        chosen: dict[tuple[DataType, str], Any],
    ) -> ProjectData:
        result = dict(base)

        meta = incoming.get("metadata")
        if isinstance(meta, dict):
            result["metadata"] = chosen.get((DataType.PROJECT, str(meta.get("id"))), meta)

        doc = incoming.get("document")
        if isinstance(doc, dict):
            base_doc = base["document"]
            fields = chosen.get((DataType.DOCUMENT, "document"), doc)
            new_doc = {**base_doc, **{k: v for k, v in fields.items() if k != "snapshots"}}
            new_doc["snapshots"] = _keyed_merge(
                base_doc.get("snapshots") or [],
                doc.get("snapshots") or [],
                chosen,
                DataType.SNAPSHOTS,
            )
            result["document"] = new_doc

        for section, data_type in (("themes", DataType.THEMES), ("presets", DataType.PRESETS)):
            items = incoming.get(section)
            if isinstance(items, list):
                result[section] = _keyed_merge(base.get(section) or [], items, chosen, data_type)

        if isinstance(incoming.get("exportSettings"), dict):
            result["exportSettings"] = incoming["exportSettings"]

        return ProjectData.from_dict(result)


@dataclass
class TransferContext:
    """Everything a transfer manager needs, owned by the caller."""

    store: KeyValueStore = field(default_factory=MemoryStore)
    workspace: ProjectWorkspace = field(default_factory=ProjectWorkspace)
    settings: Settings = field(default_factory=Settings)
    on_import_progress: Callable[[ImportProgress], None] | None = None
    on_export_progress: Callable[[ExportProgress], None] | None = None
    on_conflict_detected: Callable[[list[ConflictItem]], None] | None = None
    on_backup_created: Callable[[BackupItem], None] | None = None


def open_workspace_context(root: Path | None = None, **observers: Any) -> TransferContext:
    """Build a context over the on-disk store of a codereel workspace.

    Raises:
        FileNotFoundError: If no workspace can be found
    """
    paths = get_paths(root)
    store = JsonFileStore(paths.store_dir)
    return TransferContext(
        store=store,
        workspace=ProjectWorkspace(store=store),
        settings=load_settings(paths.root),
        **observers,
    )
