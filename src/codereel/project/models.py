"""
Project data model.

A project is the unit of import, export and backup: metadata, one document
(an ordered sequence of code snapshots plus rendering parameters) and
optional themes, presets, export settings and version history.

``to_dict`` emits the camelCase wire form used by every format codec;
``from_dict`` parses it back, accepting ISO strings for timestamps.
"""

from __future__ import annotations

import dataclasses
import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from codereel.core.timestamps import parse_datetime, to_jsonable, utcnow

APP_VERSION = "1.0.0"

KNOWN_LANGUAGES = (
    "javascript",
    "jsx",
    "typescript",
    "tsx",
    "python",
    "java",
    "c",
    "cpp",
    "csharp",
    "go",
    "rust",
    "ruby",
    "php",
    "swift",
    "kotlin",
    "html",
    "css",
    "json",
    "markdown",
    "sql",
    "shell",
    "yaml",
)


class DataType(Enum):
    """Logical entity kinds handled by import/export."""

    PROJECT = "project"
    DOCUMENT = "document"
    SNAPSHOTS = "snapshots"
    THEMES = "themes"
    PRESETS = "presets"
    SETTINGS = "settings"


class BackupReason(Enum):
    """Why a backup was taken."""

    BEFORE_IMPORT = "before_import"
    MANUAL = "manual"
    AUTO = "auto"
    BEFORE_UPDATE = "before_update"


def _require_datetime(value: Any, name: str) -> datetime:
    parsed = parse_datetime(value)
    if parsed is None:
        raise ValueError(f"{name} must be a valid date, got {value!r}")
    return parsed


@dataclass(frozen=True)
class Padding:
    """Canvas padding."""

    top: float = 10
    left: float = 10
    bottom: float = 10

    def to_dict(self) -> dict[str, Any]:
        return {"top": self.top, "left": self.left, "bottom": self.bottom}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Padding:
        return cls(
            top=data.get("top", 10),
            left=data.get("left", 10),
            bottom=data.get("bottom", 10),
        )


@dataclass(frozen=True)
class Snapshot:
    """One code state with its display duration and transition time."""

    id: str
    code: str
    duration: float = 1000
    transition_time: float = 500
    transition_config: dict[str, Any] | None = None

    def replace(self, **changes: Any) -> Snapshot:
        """Return a copy with the given fields replaced."""
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "code": self.code,
            "duration": self.duration,
            "transitionTime": self.transition_time,
        }
        if self.transition_config is not None:
            data["transitionConfig"] = dict(self.transition_config)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Snapshot:
        if "id" not in data:
            raise ValueError("Snapshot requires an id")
        config = data.get("transitionConfig")
        return cls(
            id=str(data["id"]),
            code=str(data.get("code", "")),
            duration=data.get("duration", 1000),
            transition_time=data.get("transitionTime", 500),
            transition_config=dict(config) if isinstance(config, dict) else None,
        )


@dataclass(frozen=True)
class Document:
    """Animated-code document: language, rendering parameters, snapshots."""

    snapshots: tuple[Snapshot, ...]
    language: str = "javascript"
    font_size: float = 14
    line_height: float = 20
    width: float = 800
    height: float = 600
    theme: str = "default"
    padding: Padding = field(default_factory=Padding)

    @property
    def total_duration(self) -> float:
        return sum(s.duration for s in self.snapshots)

    def get_snapshot(self, snapshot_id: str) -> Snapshot | None:
        for snapshot in self.snapshots:
            if snapshot.id == snapshot_id:
                return snapshot
        return None

    def index_of(self, snapshot_id: str) -> int:
        for i, snapshot in enumerate(self.snapshots):
            if snapshot.id == snapshot_id:
                return i
        raise KeyError(f"Snapshot not found: {snapshot_id}")

    def with_snapshots(self, snapshots: list[Snapshot] | tuple[Snapshot, ...]) -> Document:
        return dataclasses.replace(self, snapshots=tuple(snapshots))

    def move_snapshot(self, from_index: int, to_index: int) -> Document:
        """Return a document with one snapshot moved to a new position."""
        items = list(self.snapshots)
        if not 0 <= from_index < len(items) or not 0 <= to_index < len(items):
            raise IndexError(f"Cannot move snapshot {from_index} -> {to_index} in {len(items)} snapshots")
        items.insert(to_index, items.pop(from_index))
        return self.with_snapshots(items)

    def replace_snapshot(self, snapshot_id: str, **changes: Any) -> Document:
        index = self.index_of(snapshot_id)
        items = list(self.snapshots)
        items[index] = items[index].replace(**changes)
        return self.with_snapshots(items)

    def duplicate_snapshot(self, snapshot_id: str, new_id: str | None = None) -> Document:
        """Insert a copy of a snapshot right after the original."""
        index = self.index_of(snapshot_id)
        items = list(self.snapshots)
        copy = items[index].replace(id=new_id or f"{snapshot_id}-copy-{uuid.uuid4().hex[:6]}")
        items.insert(index + 1, copy)
        return self.with_snapshots(items)

    def remove_snapshot(self, snapshot_id: str) -> Document:
        index = self.index_of(snapshot_id)
        items = list(self.snapshots)
        del items[index]
        return self.with_snapshots(items)

    def to_dict(self) -> dict[str, Any]:
        return {
            "language": self.language,
            "snapshots": [s.to_dict() for s in self.snapshots],
            "fontSize": self.font_size,
            "lineHeight": self.line_height,
            "width": self.width,
            "height": self.height,
            "theme": self.theme,
            "padding": self.padding.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Document:
        snapshots = data.get("snapshots") or []
        padding = data.get("padding")
        return cls(
            snapshots=tuple(Snapshot.from_dict(s) for s in snapshots),
            language=str(data.get("language", "javascript")),
            font_size=data.get("fontSize", 14),
            line_height=data.get("lineHeight", 20),
            width=data.get("width", 800),
            height=data.get("height", 600),
            theme=str(data.get("theme", "default")),
            padding=Padding.from_dict(padding) if isinstance(padding, dict) else Padding(),
        )


def default_document_dict(snapshots: list[Any]) -> dict[str, Any]:
    """Wire-form document wrapping a bare snapshot sequence."""
    return {
        "language": "javascript",
        "snapshots": snapshots,
        "fontSize": 14,
        "lineHeight": 20,
        "width": 800,
        "height": 600,
        "theme": "default",
        "padding": {"top": 10, "left": 10, "bottom": 10},
    }


@dataclass
class ProjectMetadata:
    """Identity, provenance and derived technical fields of a project."""

    id: str
    name: str
    version: str = "1.0.0"
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    description: str | None = None
    author: str | None = None
    tags: list[str] = field(default_factory=list)
    category: str | None = None
    license: str | None = None
    app_version: str = APP_VERSION
    file_size: int = 0
    snapshot_count: int = 0
    total_duration: float = 0
    custom_fields: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "version": self.version,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "tags": list(self.tags),
            "appVersion": self.app_version,
            "fileSize": self.file_size,
            "snapshotCount": self.snapshot_count,
            "totalDuration": self.total_duration,
        }
        optional = {
            "description": self.description,
            "author": self.author,
            "category": self.category,
            "license": self.license,
            "customFields": self.custom_fields,
        }
        data.update({key: value for key, value in optional.items() if value is not None})
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProjectMetadata:
        for key in ("id", "name"):
            if not data.get(key):
                raise ValueError(f"Metadata requires {key}")
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            version=str(data.get("version", "1.0.0")),
            created_at=_require_datetime(data.get("createdAt", utcnow()), "createdAt"),
            updated_at=_require_datetime(data.get("updatedAt", utcnow()), "updatedAt"),
            description=data.get("description"),
            author=data.get("author"),
            tags=list(data.get("tags") or []),
            category=data.get("category"),
            license=data.get("license"),
            app_version=str(data.get("appVersion", APP_VERSION)),
            file_size=data.get("fileSize", 0),
            snapshot_count=data.get("snapshotCount", 0),
            total_duration=data.get("totalDuration", 0),
            custom_fields=data.get("customFields"),
        )


@dataclass
class ProjectVersion:
    """One entry of a project's version history."""

    id: str
    version: str
    timestamp: datetime
    author: str | None = None
    message: str | None = None
    changes: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "version": self.version,
            "timestamp": self.timestamp,
            "changes": list(self.changes),
        }
        if self.author is not None:
            data["author"] = self.author
        if self.message is not None:
            data["message"] = self.message
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProjectVersion:
        return cls(
            id=str(data["id"]),
            version=str(data["version"]),
            timestamp=_require_datetime(data.get("timestamp"), "timestamp"),
            author=data.get("author"),
            message=data.get("message"),
            changes=list(data.get("changes") or []),
        )


@dataclass
class BackupInfo:
    """Provenance of a project that was restored from a backup."""

    created_at: datetime
    backup_reason: BackupReason
    restorable: bool = True
    original_path: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "createdAt": self.created_at,
            "backupReason": self.backup_reason.value,
            "restorable": self.restorable,
        }
        if self.original_path is not None:
            data["originalPath"] = self.original_path
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BackupInfo:
        return cls(
            created_at=_require_datetime(data.get("createdAt"), "createdAt"),
            backup_reason=BackupReason(data.get("backupReason", "manual")),
            restorable=bool(data.get("restorable", True)),
            original_path=data.get("originalPath"),
        )


@dataclass
class ProjectData:
    """Root unit for import, export and backup."""

    metadata: ProjectMetadata
    document: Document
    themes: list[dict[str, Any]] | None = None
    presets: list[dict[str, Any]] | None = None
    export_settings: dict[str, Any] | None = None
    version_history: list[ProjectVersion] | None = None
    backup_info: BackupInfo | None = None

    def to_dict(self) -> dict[str, Any]:
        """Wire form with datetimes left as datetime objects."""
        data: dict[str, Any] = {
            "metadata": self.metadata.to_dict(),
            "document": self.document.to_dict(),
        }
        if self.themes is not None:
            data["themes"] = [dict(t) for t in self.themes]
        if self.presets is not None:
            data["presets"] = [dict(p) for p in self.presets]
        if self.export_settings is not None:
            data["exportSettings"] = dict(self.export_settings)
        if self.version_history is not None:
            data["versionHistory"] = [v.to_dict() for v in self.version_history]
        if self.backup_info is not None:
            data["backupInfo"] = self.backup_info.to_dict()
        return data

    def to_json_dict(self) -> dict[str, Any]:
        """Wire form with datetimes rendered as ISO strings."""
        result: dict[str, Any] = to_jsonable(self.to_dict())
        return result

    def serialized_size(self) -> int:
        """Size in bytes of the compact JSON rendering."""
        return len(json.dumps(self.to_json_dict(), separators=(",", ":")).encode("utf-8"))

    def refresh_derived(self) -> ProjectData:
        """Recompute snapshotCount, totalDuration and fileSize in place."""
        self.metadata.snapshot_count = len(self.document.snapshots)
        self.metadata.total_duration = self.document.total_duration
        # fileSize is part of what it measures; settle on a self-consistent value
        self.metadata.file_size = 0
        for _ in range(5):
            size = self.serialized_size()
            if size == self.metadata.file_size:
                break
            self.metadata.file_size = size
        return self

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProjectData:
        metadata = data.get("metadata")
        document = data.get("document")
        if not isinstance(metadata, dict):
            raise ValueError("Project data requires metadata")
        if not isinstance(document, dict):
            raise ValueError("Project data requires a document")

        history = data.get("versionHistory")
        backup_info = data.get("backupInfo")
        return cls(
            metadata=ProjectMetadata.from_dict(metadata),
            document=Document.from_dict(document),
            themes=[dict(t) for t in data["themes"]] if data.get("themes") is not None else None,
            presets=[dict(p) for p in data["presets"]] if data.get("presets") is not None else None,
            export_settings=dict(data["exportSettings"]) if data.get("exportSettings") is not None else None,
            version_history=[ProjectVersion.from_dict(v) for v in history] if history is not None else None,
            backup_info=BackupInfo.from_dict(backup_info) if isinstance(backup_info, dict) else None,
        )


def new_project_id() -> str:
    """Generate a fresh project identifier."""
    return f"project-{uuid.uuid4().hex[:12]}"


def create_metadata(
    document: Document,
    name: str = "Untitled Project",
    project_id: str | None = None,
    **extra: Any,
) -> ProjectMetadata:
    """Build metadata for a document that arrived without any."""
    now = utcnow()
    return ProjectMetadata(
        id=project_id or new_project_id(),
        name=name,
        created_at=now,
        updated_at=now,
        snapshot_count=len(document.snapshots),
        total_duration=document.total_duration,
        **extra,
    )
