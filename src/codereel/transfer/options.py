"""
Import and export options.

Callers may pass a ready options object, a dict of overrides, or nothing;
``import_options``/``export_options`` merge overrides onto the defaults and
normalize enum-valued fields given as strings.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from typing import Any

from codereel.conflicts.models import ConflictResolutionStrategy
from codereel.conflicts.resolver import coerce_strategy
from codereel.core.timestamps import isoformat
from codereel.formats.base import (
    CsvOptions,
    ImportExportFormat,
    JsonOptions,
    SerializeOptions,
    XmlOptions,
)
from codereel.project.models import DataType

DEFAULT_EXPORT_PREFIX = "codereel-export"


@dataclass
class ExportFilters:
    """Restrict what an export collects.

    Themes, presets and export settings are only included when their flag
    is set. The language, tag and author filters exclude the whole project
    when it does not match.
    """

    snapshot_indices: list[int] | None = None
    date_range: tuple[datetime, datetime] | None = None
    include_themes: bool = False
    include_presets: bool = False
    include_settings: bool = False
    language_filter: list[str] | None = None
    tag_filter: list[str] | None = None
    author_filter: list[str] | None = None


@dataclass
class FieldSelection:
    """Per-section field switches; a field mapped to False is dropped."""

    metadata: dict[str, bool] = field(default_factory=dict)
    document: dict[str, bool] = field(default_factory=dict)
    snapshots: dict[str, bool] = field(default_factory=dict)


@dataclass
class ImportOptions:
    format: ImportExportFormat | None = None
    data_type: DataType = DataType.PROJECT
    conflict_resolution: ConflictResolutionStrategy = ConflictResolutionStrategy.INTERACTIVE
    validate_data: bool = True
    create_backup: bool = True
    csv: CsvOptions = field(default_factory=CsvOptions)

    def __post_init__(self) -> None:
        if self.format is not None:
            self.format = ImportExportFormat(self.format)
        self.data_type = DataType(self.data_type)
        self.conflict_resolution = coerce_strategy(self.conflict_resolution)

    def to_dict(self) -> dict[str, Any]:
        return {
            "format": self.format.value if self.format else None,
            "dataType": self.data_type.value,
            "conflictResolution": self.conflict_resolution.value,
            "validateData": self.validate_data,
            "createBackup": self.create_backup,
        }


@dataclass
class ExportOptions:
    format: ImportExportFormat = ImportExportFormat.JSON
    data_type: DataType = DataType.PROJECT
    include_metadata: bool = True
    compression: bool = True
    filters: ExportFilters | None = None
    field_selection: FieldSelection | None = None
    csv: CsvOptions = field(default_factory=CsvOptions)
    xml: XmlOptions = field(default_factory=XmlOptions)
    json: JsonOptions = field(default_factory=JsonOptions)
    filename_prefix: str = DEFAULT_EXPORT_PREFIX

    def __post_init__(self) -> None:
        self.format = ImportExportFormat(self.format)
        self.data_type = DataType(self.data_type)

    def serialize_options(self) -> SerializeOptions:
        return SerializeOptions(csv=self.csv, xml=self.xml, json=self.json, compression=self.compression)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "format": self.format.value,
            "dataType": self.data_type.value,
            "includeMetadata": self.include_metadata,
            "compression": self.compression,
        }
        if self.filters is not None:
            filters = self.filters
            data["filters"] = {
                "snapshotIndices": filters.snapshot_indices,
                "dateRange": [isoformat(d) for d in filters.date_range] if filters.date_range else None,
                "includeThemes": filters.include_themes,
                "includePresets": filters.include_presets,
                "includeSettings": filters.include_settings,
            }
        return data


def _merge(defaults: Any, overrides: dict[str, Any]) -> Any:
    known = {f.name for f in fields(defaults)}
    unknown = set(overrides) - known
    if unknown:
        raise ValueError(f"Unknown option(s): {', '.join(sorted(unknown))}")
    return replace(defaults, **overrides)


def import_options(options: ImportOptions | dict[str, Any] | None = None) -> ImportOptions:
    """Merge caller options onto the import defaults."""
    if isinstance(options, ImportOptions):
        return options
    return _merge(ImportOptions(), options or {})


def export_options(options: ExportOptions | dict[str, Any] | None = None) -> ExportOptions:
    """Merge caller options onto the export defaults."""
    if isinstance(options, ExportOptions):
        return options
    return _merge(ExportOptions(), options or {})
