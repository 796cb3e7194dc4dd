"""
Data validation for imported content.

Structural checks (required fields, types, ranges) produce blocking errors;
business-rule checks (sizes, durations, readability) produce advisory
warnings. Field requirements come from the entity schemas in
``codereel.core.fields``; limits come from ``Settings``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from codereel.core.config import Settings
from codereel.core.fields import (
    CATALOG_ITEM_SCHEMA,
    DOCUMENT_SCHEMA,
    EXPECTED_TYPE_NAMES,
    METADATA_SCHEMA,
    PADDING_SCHEMA,
    SNAPSHOT_SCHEMA,
    VERSION_SCHEMA,
    FieldDef,
    FieldType,
    below_minimum,
    is_number,
    matches_type,
)
from codereel.project.models import KNOWN_LANGUAGES, DataType

logger = logging.getLogger(__name__)

MAX_SNAPSHOT_DURATION = 60000
MAX_CODE_LENGTH = 10000
MAX_LINE_LENGTH = 200
MAX_TOTAL_DURATION = 300000
MIN_TOTAL_DURATION = 1000
MIN_ASPECT_RATIO = 0.5
MAX_ASPECT_RATIO = 3
MIN_FONT_SIZE = 8
MAX_FONT_SIZE = 72


@dataclass(frozen=True)
class ValidationError:
    """A blocking problem with the data."""

    field: str
    message: str
    value: Any = None
    expected_type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "field": self.field,
            "message": self.message,
            "value": self.value,
            "expectedType": self.expected_type,
        }


@dataclass(frozen=True)
class ValidationWarning:
    """An advisory finding that never blocks an import."""

    field: str
    message: str
    value: Any = None
    suggestion: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "field": self.field,
            "message": self.message,
            "value": self.value,
            "suggestion": self.suggestion,
        }


@dataclass
class ValidationResult:
    valid: bool
    errors: list[ValidationError] = field(default_factory=list)
    warnings: list[ValidationWarning] = field(default_factory=list)


def _is_object(value: Any) -> bool:
    return isinstance(value, dict)


def _is_missing(value: Any, empty_is_missing: bool) -> bool:
    if value is None:
        return True
    return empty_is_missing and isinstance(value, str) and not value


class DataValidator:
    """Validates projects, documents, snapshot sequences and catalogues."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or Settings()

    def validate(self, data: Any, data_type: DataType | str) -> ValidationResult:
        """Validate data declared as the given type.

        Unexpected failures inside a check are reported as an error on
        field ``general`` instead of being raised.
        """
        errors: list[ValidationError] = []
        warnings: list[ValidationWarning] = []

        try:
            kind = DataType(data_type)
        except ValueError:
            errors.append(ValidationError("dataType", f"Unsupported data type: {data_type}"))
            return ValidationResult(valid=False, errors=errors, warnings=warnings)

        checks = {
            DataType.PROJECT: self._validate_project,
            DataType.DOCUMENT: self._validate_document,
            DataType.SNAPSHOTS: self._validate_snapshots,
            DataType.THEMES: self._validate_themes,
            DataType.PRESETS: self._validate_presets,
            DataType.SETTINGS: self._validate_settings,
        }
        try:
            checks[kind](data, errors, warnings)
        except Exception as e:
            logger.debug("Validator raised on %s data", kind.value, exc_info=True)
            errors.append(ValidationError("general", f"Validation failed: {e}"))

        return ValidationResult(valid=not errors, errors=errors, warnings=warnings)

    # -- schema helpers ---------------------------------------------------

    def _check_fields(
        self,
        record: dict[str, Any],
        schema: dict[str, FieldDef],
        prefix: str,
        errors: list[ValidationError],
        noun: str = "",
        empty_is_missing: bool = False,
    ) -> None:
        for name, field_def in schema.items():
            path = f"{prefix}.{name}"
            subject = f"{name}{noun}"
            value = record.get(name)

            if _is_missing(value, empty_is_missing):
                if field_def.required:
                    errors.append(ValidationError(path, f"{subject} is required"))
                continue

            expected = EXPECTED_TYPE_NAMES[field_def.field_type]
            if field_def.field_type == FieldType.DATE:
                if not matches_type(value, FieldType.DATE):
                    errors.append(ValidationError(path, f"{subject} must be a valid date", value))
                continue

            if field_def.field_type in (FieldType.NUMBER, FieldType.INT) and field_def.min_val is not None:
                if not is_number(value) or below_minimum(value, field_def):
                    qualifier = "positive" if field_def.exclusive_min else "non-negative"
                    errors.append(
                        ValidationError(path, f"{subject} must be a {qualifier} number", value, expected)
                    )
                continue

            if field_def.field_type == FieldType.STRING_LIST and isinstance(value, list):
                for i, item in enumerate(value):
                    if not isinstance(item, str):
                        errors.append(ValidationError(f"{path}[{i}]", "Item must be a string", item, "string"))
                continue

            if not matches_type(value, field_def.field_type):
                article = "an" if expected[0] in "aeiou" else "a"
                errors.append(
                    ValidationError(path, f"{subject} must be {article} {expected}", value, expected)
                )

    # -- project ----------------------------------------------------------

    def _validate_project(
        self, data: Any, errors: list[ValidationError], warnings: list[ValidationWarning]
    ) -> None:
        if not _is_object(data):
            errors.append(ValidationError("project", "Project data must be an object", data, "object"))
            return

        if data.get("metadata") is None:
            errors.append(ValidationError("metadata", "Project metadata is required"))
        else:
            self._validate_metadata(data["metadata"], errors, warnings)

        if data.get("document") is None:
            errors.append(ValidationError("document", "Project document is required"))
        else:
            self._validate_document(data["document"], errors, warnings)

        if data.get("themes") is not None:
            self._validate_themes(data["themes"], errors, warnings)
        if data.get("presets") is not None:
            self._validate_presets(data["presets"], errors, warnings)
        if data.get("exportSettings") is not None:
            self._validate_settings(data["exportSettings"], errors, warnings)
        if data.get("versionHistory") is not None:
            self._validate_version_history(data["versionHistory"], errors, warnings)

    def _validate_metadata(
        self, metadata: Any, errors: list[ValidationError], warnings: list[ValidationWarning]
    ) -> None:
        if not _is_object(metadata):
            errors.append(ValidationError("metadata", "Metadata must be an object", metadata, "object"))
            return

        self._check_fields(metadata, METADATA_SCHEMA, "metadata", errors, empty_is_missing=True)

        file_size = metadata.get("fileSize")
        if is_number(file_size) and file_size > self.settings.max_file_size:
            warnings.append(
                ValidationWarning(
                    "metadata.fileSize",
                    f"File size ({file_size}) exceeds recommended maximum ({self.settings.max_file_size})",
                    file_size,
                    "Consider reducing file size or splitting into multiple files",
                )
            )

        snapshot_count = metadata.get("snapshotCount")
        if is_number(snapshot_count) and snapshot_count > self.settings.max_snapshots:
            warnings.append(
                ValidationWarning(
                    "metadata.snapshotCount",
                    f"Snapshot count ({snapshot_count}) exceeds recommended maximum "
                    f"({self.settings.max_snapshots})",
                    snapshot_count,
                    "Consider reducing the number of snapshots for better performance",
                )
            )

    # -- document ---------------------------------------------------------

    def _validate_document(
        self, data: Any, errors: list[ValidationError], warnings: list[ValidationWarning]
    ) -> None:
        if not _is_object(data):
            errors.append(ValidationError("document", "Document must be an object", data, "object"))
            return

        # Padding and snapshots get their own dedicated checks below
        top_level = {k: v for k, v in DOCUMENT_SCHEMA.items() if k not in ("padding", "snapshots")}
        self._check_fields(data, top_level, "document", errors)
        for name in ("snapshots", "padding"):
            if data.get(name) is None:
                errors.append(ValidationError(f"document.{name}", f"{name} is required"))

        language = data.get("language")
        if isinstance(language, str) and language not in KNOWN_LANGUAGES:
            warnings.append(
                ValidationWarning(
                    "document.language",
                    f"Unknown language: {language}",
                    language,
                    f"Supported languages: {', '.join(KNOWN_LANGUAGES)}",
                )
            )

        if data.get("padding") is not None:
            self._validate_padding(data["padding"], errors)

        if data.get("snapshots") is not None:
            self._validate_snapshots(data["snapshots"], errors, warnings)

        width, height = data.get("width"), data.get("height")
        if is_number(width) and is_number(height) and width > 0 and height > 0:
            aspect_ratio = width / height
            if aspect_ratio < MIN_ASPECT_RATIO or aspect_ratio > MAX_ASPECT_RATIO:
                warnings.append(
                    ValidationWarning(
                        "document.dimensions",
                        f"Unusual aspect ratio: {aspect_ratio:.2f}",
                        suggestion="Consider using standard video dimensions (16:9, 4:3, etc.)",
                    )
                )

        font_size = data.get("fontSize")
        if is_number(font_size) and font_size > 0 and not MIN_FONT_SIZE <= font_size <= MAX_FONT_SIZE:
            warnings.append(
                ValidationWarning(
                    "document.fontSize",
                    f"Font size {font_size} may not be optimal for video",
                    font_size,
                    "Recommended font size range: 12-48px",
                )
            )

    def _validate_padding(self, padding: Any, errors: list[ValidationError]) -> None:
        if not _is_object(padding):
            errors.append(ValidationError("document.padding", "Padding must be an object", padding, "object"))
            return
        self._check_fields(padding, PADDING_SCHEMA, "document.padding", errors, noun=" padding")

    # -- snapshots --------------------------------------------------------

    def _validate_snapshots(
        self, data: Any, errors: list[ValidationError], warnings: list[ValidationWarning]
    ) -> None:
        if not isinstance(data, list):
            errors.append(ValidationError("snapshots", "Snapshots must be an array", data, "array"))
            return

        if not data:
            errors.append(ValidationError("snapshots", "At least one snapshot is required"))
            return

        if len(data) > self.settings.max_snapshots:
            warnings.append(
                ValidationWarning(
                    "snapshots",
                    f"Too many snapshots ({len(data)}), may impact performance",
                    len(data),
                    f"Consider reducing to under {self.settings.max_snapshots} snapshots",
                )
            )

        for index, snapshot in enumerate(data):
            self._validate_snapshot(snapshot, index, errors, warnings)

        self._validate_sequence(data, errors, warnings)

    def _validate_snapshot(
        self,
        data: Any,
        index: int,
        errors: list[ValidationError],
        warnings: list[ValidationWarning],
    ) -> None:
        prefix = f"snapshots[{index}]"
        if not _is_object(data):
            errors.append(ValidationError(prefix, "Snapshot must be an object", data, "object"))
            return

        self._check_fields(data, SNAPSHOT_SCHEMA, prefix, errors)

        duration = data.get("duration")
        transition_time = data.get("transitionTime")
        if is_number(duration) and duration > MAX_SNAPSHOT_DURATION:
            warnings.append(
                ValidationWarning(
                    f"{prefix}.duration",
                    f"Long duration ({duration}ms) for snapshot",
                    duration,
                    "Consider breaking long snapshots into smaller ones",
                )
            )

        if is_number(duration) and is_number(transition_time) and transition_time > duration:
            errors.append(
                ValidationError(
                    f"{prefix}.transitionTime",
                    "Transition time cannot exceed duration",
                    transition_time,
                )
            )

        code = data.get("code")
        if isinstance(code, str) and code:
            self._check_code(code, prefix, warnings)

    def _check_code(self, code: str, prefix: str, warnings: list[ValidationWarning]) -> None:
        for line_number, line in enumerate(code.split("\n"), 1):
            if len(line) > MAX_LINE_LENGTH:
                warnings.append(
                    ValidationWarning(
                        f"{prefix}.code",
                        f"Long line ({len(line)} chars) at line {line_number}",
                        suggestion="Consider breaking long lines for better readability",
                    )
                )

        if len(code) > MAX_CODE_LENGTH:
            warnings.append(
                ValidationWarning(
                    f"{prefix}.code",
                    f"Large code block ({len(code)} chars)",
                    len(code),
                    "Consider splitting large code blocks",
                )
            )

        if not code.strip():
            warnings.append(
                ValidationWarning(
                    f"{prefix}.code",
                    "Empty code snapshot",
                    suggestion="Consider removing empty snapshots or adding placeholder content",
                )
            )

    def _validate_sequence(
        self, snapshots: list[Any], errors: list[ValidationError], warnings: list[ValidationWarning]
    ) -> None:
        seen: set[str] = set()
        total_duration: float = 0
        for index, snapshot in enumerate(snapshots):
            if not _is_object(snapshot):
                continue
            snapshot_id = snapshot.get("id")
            if isinstance(snapshot_id, str) and snapshot_id:
                if snapshot_id in seen:
                    errors.append(
                        ValidationError(
                            f"snapshots[{index}].id",
                            f"Duplicate snapshot ID: {snapshot_id}",
                            snapshot_id,
                        )
                    )
                else:
                    seen.add(snapshot_id)
            if is_number(snapshot.get("duration")):
                total_duration += snapshot["duration"]

        if total_duration > MAX_TOTAL_DURATION:
            warnings.append(
                ValidationWarning(
                    "snapshots",
                    f"Very long total duration: {total_duration}ms",
                    total_duration,
                    "Consider breaking into multiple projects",
                )
            )
        elif total_duration < MIN_TOTAL_DURATION:
            warnings.append(
                ValidationWarning(
                    "snapshots",
                    f"Very short total duration: {total_duration}ms",
                    total_duration,
                    "Consider increasing snapshot durations",
                )
            )

    # -- catalogues and settings ------------------------------------------

    def _validate_catalog(
        self, data: Any, section: str, noun: str, errors: list[ValidationError]
    ) -> None:
        if not isinstance(data, list):
            errors.append(ValidationError(section, f"{section.capitalize()} must be an array", data, "array"))
            return

        seen: set[str] = set()
        for index, item in enumerate(data):
            prefix = f"{section}[{index}]"
            if not _is_object(item):
                errors.append(ValidationError(prefix, f"{noun} must be an object", item, "object"))
                continue
            self._check_fields(item, CATALOG_ITEM_SCHEMA, prefix, errors, empty_is_missing=True)
            item_id = item.get("id")
            if isinstance(item_id, str) and item_id:
                if item_id in seen:
                    errors.append(
                        ValidationError(f"{prefix}.id", f"Duplicate {noun.lower()} ID: {item_id}", item_id)
                    )
                seen.add(item_id)

    def _validate_themes(
        self, data: Any, errors: list[ValidationError], warnings: list[ValidationWarning]
    ) -> None:
        self._validate_catalog(data, "themes", "Theme", errors)

    def _validate_presets(
        self, data: Any, errors: list[ValidationError], warnings: list[ValidationWarning]
    ) -> None:
        self._validate_catalog(data, "presets", "Preset", errors)

    def _validate_settings(
        self, data: Any, errors: list[ValidationError], warnings: list[ValidationWarning]
    ) -> None:
        if not _is_object(data):
            errors.append(ValidationError("settings", "Settings must be an object", data, "object"))

    def _validate_version_history(
        self, data: Any, errors: list[ValidationError], warnings: list[ValidationWarning]
    ) -> None:
        if not isinstance(data, list):
            errors.append(
                ValidationError("versionHistory", "Version history must be an array", data, "array")
            )
            return
        for index, entry in enumerate(data):
            prefix = f"versionHistory[{index}]"
            if not _is_object(entry):
                errors.append(ValidationError(prefix, "Version entry must be an object", entry, "object"))
                continue
            self._check_fields(entry, VERSION_SCHEMA, prefix, errors)
