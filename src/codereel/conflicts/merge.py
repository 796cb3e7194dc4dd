"""
Per-entity structural merge.

Each merger knows its entity's field schema: list fields merge as a
value-equality union (existing order kept, novel incoming items appended),
record fields recurse, scalars prefer the incoming value. Keys outside the
schema fall back to the same rules chosen by runtime type.

Array de-duplication compares full values pairwise, which is quadratic in
the array length.
"""

from __future__ import annotations

import json
from typing import Any

from codereel.core.fields import (
    CATALOG_ITEM_SCHEMA,
    DOCUMENT_SCHEMA,
    METADATA_SCHEMA,
    PADDING_SCHEMA,
    SNAPSHOT_SCHEMA,
    FieldDef,
    FieldType,
)
from codereel.project.models import DataType


class MergeError(ValueError):
    """The two values cannot be merged structurally."""


def _identity(value: Any) -> str:
    return json.dumps(value, sort_keys=True, default=str)


def merge_arrays(existing: list[Any], incoming: list[Any]) -> list[Any]:
    """Union by full-value equality, keeping existing order."""
    merged = list(existing)
    seen = [_identity(item) for item in merged]
    for item in incoming:
        key = _identity(item)
        if key not in seen:
            merged.append(item)
            seen.append(key)
    return merged


def merge_values(existing: Any, incoming: Any) -> Any:
    """Generic merge used for keys no schema describes."""
    if isinstance(existing, dict) and isinstance(incoming, dict):
        merged = dict(existing)
        for key, value in incoming.items():
            if key in existing:
                merged[key] = _merge_field(existing[key], value)
            else:
                merged[key] = value
        return merged

    if isinstance(existing, dict) != isinstance(incoming, dict):
        raise MergeError(
            f"Cannot merge incompatible types: {type(existing).__name__} and {type(incoming).__name__}"
        )
    return incoming


def _merge_field(existing: Any, incoming: Any) -> Any:
    if isinstance(existing, dict) and isinstance(incoming, dict):
        return merge_values(existing, incoming)
    if isinstance(existing, list) and isinstance(incoming, list):
        return merge_arrays(existing, incoming)
    return incoming


class RecordMerger:
    """Merges two records of one entity type using its field schema."""

    entity = "record"

    def __init__(self, schema: dict[str, FieldDef], nested: dict[str, RecordMerger] | None = None):
        self.schema = schema
        self.nested = nested or {}

    def merge(self, existing: Any, incoming: Any) -> dict[str, Any]:
        """Merge incoming into existing.

        Raises:
            MergeError: If either side is not a record
        """
        if not isinstance(existing, dict) or not isinstance(incoming, dict):
            raise MergeError(
                f"Cannot merge incompatible types: {type(existing).__name__} and {type(incoming).__name__}"
            )

        merged = dict(existing)
        for key, value in incoming.items():
            if key not in existing:
                merged[key] = value
                continue
            merged[key] = self._merge_known(key, existing[key], value)
        return merged

    def _merge_known(self, key: str, existing: Any, incoming: Any) -> Any:
        field_def = self.schema.get(key)
        if field_def is None:
            return _merge_field(existing, incoming)

        if field_def.field_type in (FieldType.LIST, FieldType.STRING_LIST):
            if isinstance(existing, list) and isinstance(incoming, list):
                return merge_arrays(existing, incoming)
            return incoming

        if field_def.field_type == FieldType.DICT:
            if isinstance(existing, dict) and isinstance(incoming, dict):
                if key in self.nested:
                    return self.nested[key].merge(existing, incoming)
                return merge_values(existing, incoming)
            return incoming

        return incoming


class MetadataMerger(RecordMerger):
    entity = "metadata"

    def __init__(self) -> None:
        super().__init__(METADATA_SCHEMA)


class DocumentMerger(RecordMerger):
    entity = "document"

    def __init__(self) -> None:
        super().__init__(DOCUMENT_SCHEMA, nested={"padding": RecordMerger(PADDING_SCHEMA)})


class SnapshotMerger(RecordMerger):
    entity = "snapshot"

    def __init__(self) -> None:
        super().__init__(SNAPSHOT_SCHEMA)


class CatalogItemMerger(RecordMerger):
    """Themes and presets."""

    entity = "catalog item"

    def __init__(self) -> None:
        super().__init__(CATALOG_ITEM_SCHEMA)


def merger_for(data_type: DataType) -> RecordMerger:
    if data_type == DataType.PROJECT:
        return MetadataMerger()
    if data_type == DataType.DOCUMENT:
        return DocumentMerger()
    if data_type == DataType.SNAPSHOTS:
        return SnapshotMerger()
    if data_type in (DataType.THEMES, DataType.PRESETS):
        return CatalogItemMerger()
    raise ValueError(f"No merger for {data_type.value}")
