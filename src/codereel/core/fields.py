"""Shared field schema, type checks and coercion for project entities.

Each entity of a project (metadata, document, snapshot, padding, theme or
preset entries) is described by a schema -- a mapping of field name to
FieldDef. The validator uses the schemas for required-field and type checks,
the per-entity mergers use them to know which fields are lists, nested
records or scalars.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any

from codereel.core.timestamps import parse_datetime


class FieldType(Enum):
    """Supported field types for entity schemas."""

    STRING = "string"
    INT = "int"
    NUMBER = "number"
    BOOL = "bool"
    DATE = "date"
    STRING_LIST = "string_list"
    LIST = "list"
    DICT = "dict"


# Name used in error messages for each type
EXPECTED_TYPE_NAMES = {
    FieldType.STRING: "string",
    FieldType.INT: "number",
    FieldType.NUMBER: "number",
    FieldType.BOOL: "boolean",
    FieldType.DATE: "date",
    FieldType.STRING_LIST: "array",
    FieldType.LIST: "array",
    FieldType.DICT: "object",
}


@dataclass(frozen=True)
class FieldDef:
    """Schema definition for a single field."""

    field_type: FieldType
    description: str
    required: bool = False
    min_val: float | None = None
    exclusive_min: bool = False
    choices: tuple[str, ...] | None = None


METADATA_SCHEMA: dict[str, FieldDef] = {
    "id": FieldDef(FieldType.STRING, "Project identifier", required=True),
    "name": FieldDef(FieldType.STRING, "Project name", required=True),
    "description": FieldDef(FieldType.STRING, "Free-text description"),
    "version": FieldDef(FieldType.STRING, "Project version", required=True),
    "author": FieldDef(FieldType.STRING, "Author name"),
    "createdAt": FieldDef(FieldType.DATE, "Creation timestamp", required=True),
    "updatedAt": FieldDef(FieldType.DATE, "Last update timestamp", required=True),
    "tags": FieldDef(FieldType.STRING_LIST, "Descriptive tags"),
    "category": FieldDef(FieldType.STRING, "Category"),
    "license": FieldDef(FieldType.STRING, "License identifier"),
    "appVersion": FieldDef(FieldType.STRING, "Version of the app that wrote the project"),
    "fileSize": FieldDef(FieldType.NUMBER, "Serialized size in bytes", min_val=0),
    "snapshotCount": FieldDef(FieldType.NUMBER, "Number of snapshots", min_val=0),
    "totalDuration": FieldDef(FieldType.NUMBER, "Sum of snapshot durations", min_val=0),
    "customFields": FieldDef(FieldType.DICT, "Free-form custom metadata"),
}

PADDING_SCHEMA: dict[str, FieldDef] = {
    "top": FieldDef(FieldType.NUMBER, "Top padding", required=True, min_val=0),
    "left": FieldDef(FieldType.NUMBER, "Left padding", required=True, min_val=0),
    "bottom": FieldDef(FieldType.NUMBER, "Bottom padding", required=True, min_val=0),
}

DOCUMENT_SCHEMA: dict[str, FieldDef] = {
    "language": FieldDef(FieldType.STRING, "Language tag", required=True),
    "snapshots": FieldDef(FieldType.LIST, "Ordered snapshots", required=True),
    "fontSize": FieldDef(FieldType.NUMBER, "Font size", required=True, min_val=0, exclusive_min=True),
    "lineHeight": FieldDef(FieldType.NUMBER, "Line height", required=True, min_val=0, exclusive_min=True),
    "width": FieldDef(FieldType.NUMBER, "Canvas width", required=True, min_val=0, exclusive_min=True),
    "height": FieldDef(FieldType.NUMBER, "Canvas height", required=True, min_val=0, exclusive_min=True),
    "theme": FieldDef(FieldType.STRING, "Theme identifier", required=True),
    "padding": FieldDef(FieldType.DICT, "Padding record", required=True),
}

SNAPSHOT_SCHEMA: dict[str, FieldDef] = {
    "id": FieldDef(FieldType.STRING, "Snapshot identifier", required=True),
    "code": FieldDef(FieldType.STRING, "Code text", required=True),
    "duration": FieldDef(FieldType.NUMBER, "Display duration", required=True, min_val=0, exclusive_min=True),
    "transitionTime": FieldDef(FieldType.NUMBER, "Transition time", required=True, min_val=0),
    "transitionConfig": FieldDef(FieldType.DICT, "Transition configuration"),
}

CATALOG_ITEM_SCHEMA: dict[str, FieldDef] = {
    "id": FieldDef(FieldType.STRING, "Item identifier", required=True),
    "name": FieldDef(FieldType.STRING, "Display name", required=True),
    "description": FieldDef(FieldType.STRING, "Description"),
    "tags": FieldDef(FieldType.STRING_LIST, "Tags"),
}

VERSION_SCHEMA: dict[str, FieldDef] = {
    "id": FieldDef(FieldType.STRING, "Version identifier", required=True),
    "version": FieldDef(FieldType.STRING, "Version label", required=True),
    "timestamp": FieldDef(FieldType.DATE, "When the version was recorded", required=True),
    "changes": FieldDef(FieldType.STRING_LIST, "Change descriptions"),
}


def is_number(value: Any) -> bool:
    """True for int/float values (bool excluded)."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def matches_type(value: Any, field_type: FieldType) -> bool:
    """Check a value against a field type without coercing it."""
    if field_type == FieldType.STRING:
        return isinstance(value, str)
    if field_type == FieldType.INT:
        return isinstance(value, int) and not isinstance(value, bool)
    if field_type == FieldType.NUMBER:
        return is_number(value)
    if field_type == FieldType.BOOL:
        return isinstance(value, bool)
    if field_type == FieldType.DATE:
        return parse_datetime(value) is not None
    if field_type == FieldType.STRING_LIST:
        return isinstance(value, list) and all(isinstance(item, str) for item in value)
    if field_type == FieldType.LIST:
        return isinstance(value, list)
    if field_type == FieldType.DICT:
        return isinstance(value, dict)
    raise ValueError(f"Unknown field type: {field_type}")


def below_minimum(value: Any, field_def: FieldDef) -> bool:
    """True when a numeric value violates the field's lower bound."""
    if field_def.min_val is None or not is_number(value):
        return False
    if field_def.exclusive_min:
        return bool(value <= field_def.min_val)
    return bool(value < field_def.min_val)


def coerce_value(value_str: str, field_def: FieldDef) -> Any:
    """Coerce a string value to the field's expected type.

    Args:
        value_str: Raw string from CLI input.
        field_def: Schema definition for the target field.

    Raises:
        ValueError: If the value cannot be coerced.
    """
    ft = field_def.field_type

    if ft in (FieldType.STRING, FieldType.DATE):
        return value_str

    if ft == FieldType.INT:
        try:
            return int(value_str)
        except ValueError as e:
            raise ValueError(f"Expected integer, got: {value_str!r}") from e

    if ft == FieldType.NUMBER:
        try:
            number = float(value_str)
        except ValueError as e:
            raise ValueError(f"Expected number, got: {value_str!r}") from e
        return int(number) if number.is_integer() else number

    if ft == FieldType.BOOL:
        lower = value_str.lower()
        if lower in ("true", "yes", "1", "on"):
            return True
        if lower in ("false", "no", "0", "off"):
            return False
        raise ValueError(f"Expected boolean (true/false/yes/no/1/0/on/off), got: {value_str!r}")

    if ft in (FieldType.STRING_LIST, FieldType.LIST):
        stripped = value_str.strip()
        if stripped.startswith("["):
            try:
                parsed = json.loads(stripped)
                if isinstance(parsed, list):
                    return parsed
            except json.JSONDecodeError:
                pass
        return [item.strip() for item in value_str.split(",") if item.strip()]

    if ft == FieldType.DICT:
        try:
            parsed = json.loads(value_str.strip())
            if isinstance(parsed, dict):
                return parsed
        except json.JSONDecodeError:
            pass
        raise ValueError(f"Expected JSON object, got: {value_str!r}")

    raise ValueError(f"Unknown field type: {ft}")
