"""
Outcome records for import and export operations.

Results are frozen once built: the importer and exporter accumulate into
plain lists while running and only construct the record at the end.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from codereel.core.errors import ErrorType
from codereel.core.timestamps import isoformat, utcnow
from codereel.formats.base import ImportExportFormat
from codereel.formats.files import get_mime_type
from codereel.project.models import DataType


class ImportStage(Enum):
    INITIALIZING = "initializing"
    READING_FILE = "reading_file"
    PARSING_DATA = "parsing_data"
    VALIDATING = "validating"
    DETECTING_CONFLICTS = "detecting_conflicts"
    RESOLVING_CONFLICTS = "resolving_conflicts"
    IMPORTING = "importing"
    COMPLETED = "completed"


class ExportStage(Enum):
    INITIALIZING = "initializing"
    COLLECTING_DATA = "collecting_data"
    FILTERING = "filtering"
    FORMATTING = "formatting"
    GENERATING_FILE = "generating_file"
    COMPLETED = "completed"


class ImportAction(Enum):
    CREATED = "created"
    UPDATED = "updated"
    MERGED = "merged"
    REPLACED = "replaced"


class WarningType(Enum):
    DATA_LOSS = "data_loss"
    COMPATIBILITY = "compatibility"
    PERFORMANCE = "performance"
    DEPRECATED = "deprecated"


def empty_counts() -> dict[str, int]:
    return {data_type.value: 0 for data_type in DataType}


@dataclass(frozen=True)
class ImportProgress:
    current: int
    total: int
    stage: ImportStage
    message: str

    @property
    def percentage(self) -> float:
        return (self.current / self.total) * 100 if self.total else 0.0


@dataclass(frozen=True)
class ExportProgress:
    current: int
    total: int
    stage: ExportStage
    message: str

    @property
    def percentage(self) -> float:
        return (self.current / self.total) * 100 if self.total else 0.0


@dataclass(frozen=True)
class ItemRef:
    type: DataType
    id: str
    name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type.value, "id": self.id, "name": self.name}


@dataclass(frozen=True)
class ErrorRecord:
    """A structured error; never recoverable once recorded."""

    type: ErrorType
    message: str
    details: str | None = None
    item: ItemRef | None = None
    recoverable: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "message": self.message,
            "details": self.details,
            "item": self.item.to_dict() if self.item else None,
            "recoverable": self.recoverable,
        }


@dataclass(frozen=True)
class WarningRecord:
    type: WarningType | ErrorType
    message: str
    details: str | None = None
    item: ItemRef | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "message": self.message,
            "details": self.details,
            "item": self.item.to_dict() if self.item else None,
        }


@dataclass(frozen=True)
class ImportedItem:
    type: DataType
    id: str
    action: ImportAction
    imported_data: Any
    name: str | None = None
    original_data: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "id": self.id,
            "name": self.name,
            "action": self.action.value,
        }


@dataclass(frozen=True)
class SkippedItem:
    type: DataType
    id: str
    reason: str
    original_data: Any = None
    name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "id": self.id,
            "name": self.name,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class ImportStats:
    total_items: int = 0
    imported_items: int = 0
    skipped_items: int = 0
    error_count: int = 0
    warning_count: int = 0
    items_by_type: dict[str, int] = field(default_factory=empty_counts)
    processing_time: float = 0.0
    average_item_time: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalItems": self.total_items,
            "importedItems": self.imported_items,
            "skippedItems": self.skipped_items,
            "errorCount": self.error_count,
            "warningCount": self.warning_count,
            "itemsByType": dict(self.items_by_type),
            "processingTime": self.processing_time,
            "averageItemTime": self.average_item_time,
        }


@dataclass(frozen=True)
class ImportResult:
    """Outcome of one import. Durations are in milliseconds."""

    success: bool
    start_time: datetime
    end_time: datetime
    imported_items: tuple[ImportedItem, ...] = ()
    skipped_items: tuple[SkippedItem, ...] = ()
    errors: tuple[ErrorRecord, ...] = ()
    warnings: tuple[WarningRecord, ...] = ()
    stats: ImportStats = field(default_factory=ImportStats)
    backup_id: str | None = None

    @property
    def duration(self) -> float:
        return (self.end_time - self.start_time).total_seconds() * 1000

    @classmethod
    def failure(
        cls,
        message: str,
        error_type: ErrorType = ErrorType.SYSTEM_ERROR,
        start_time: datetime | None = None,
    ) -> ImportResult:
        """A failure-shaped result carrying a single error."""
        end = utcnow()
        return cls(
            success=False,
            start_time=start_time or end,
            end_time=end,
            errors=(ErrorRecord(error_type, message),),
            stats=ImportStats(error_count=1),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "importedItems": [i.to_dict() for i in self.imported_items],
            "skippedItems": [i.to_dict() for i in self.skipped_items],
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
            "stats": self.stats.to_dict(),
            "backupId": self.backup_id,
            "startTime": isoformat(self.start_time),
            "endTime": isoformat(self.end_time),
            "duration": self.duration,
        }


@dataclass(frozen=True)
class ExportedItem:
    type: DataType
    id: str
    size: int
    name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type.value, "id": self.id, "name": self.name, "size": self.size}


@dataclass(frozen=True)
class ExportStats:
    total_items: int = 0
    exported_items: int = 0
    total_size: int = 0
    items_by_type: dict[str, int] = field(default_factory=empty_counts)
    processing_time: float = 0.0
    average_item_time: float = 0.0
    compression_ratio: float | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "totalItems": self.total_items,
            "exportedItems": self.exported_items,
            "totalSize": self.total_size,
            "itemsByType": dict(self.items_by_type),
            "processingTime": self.processing_time,
            "averageItemTime": self.average_item_time,
        }
        if self.compression_ratio is not None:
            data["compressionRatio"] = self.compression_ratio
        return data


@dataclass(frozen=True)
class ExportResult:
    """Outcome of one export; ``content`` holds the generated file."""

    success: bool
    content: bytes
    filename: str
    format: ImportExportFormat
    start_time: datetime
    end_time: datetime
    stats: ExportStats = field(default_factory=ExportStats)
    exported_items: tuple[ExportedItem, ...] = ()
    warnings: tuple[WarningRecord, ...] = ()
    errors: tuple[ErrorRecord, ...] = ()

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def mime_type(self) -> str:
        return get_mime_type(self.format)

    @property
    def duration(self) -> float:
        return (self.end_time - self.start_time).total_seconds() * 1000

    @classmethod
    def failure(
        cls,
        filename: str,
        fmt: ImportExportFormat,
        message: str,
        error_type: ErrorType = ErrorType.SYSTEM_ERROR,
    ) -> ExportResult:
        now = utcnow()
        return cls(
            success=False,
            content=b"",
            filename=filename,
            format=fmt,
            start_time=now,
            end_time=now,
            errors=(ErrorRecord(error_type, message),),
        )

    def to_dict(self) -> dict[str, Any]:
        """Summary without the file content."""
        return {
            "success": self.success,
            "filename": self.filename,
            "format": self.format.value,
            "mimeType": self.mime_type,
            "size": self.size,
            "stats": self.stats.to_dict(),
            "exportedItems": [i.to_dict() for i in self.exported_items],
            "warnings": [w.to_dict() for w in self.warnings],
            "errors": [e.to_dict() for e in self.errors],
            "startTime": isoformat(self.start_time),
            "endTime": isoformat(self.end_time),
            "duration": self.duration,
        }
