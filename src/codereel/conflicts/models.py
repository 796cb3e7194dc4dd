"""Conflict records and the enums that classify them."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from codereel.project.models import DataType


class ConflictResolutionStrategy(Enum):
    OVERWRITE = "overwrite"
    MERGE = "merge"
    SKIP = "skip"
    INTERACTIVE = "interactive"
    CREATE_NEW = "create_new"


class ConflictType(Enum):
    ID_COLLISION = "id_collision"
    NAME_COLLISION = "name_collision"
    DATA_MISMATCH = "data_mismatch"
    VERSION_CONFLICT = "version_conflict"
    DEPENDENCY_CONFLICT = "dependency_conflict"


class DifferenceType(Enum):
    VALUE_CHANGE = "value_change"
    TYPE_CHANGE = "type_change"
    ADDITION = "addition"
    DELETION = "deletion"


class ResolutionAction(Enum):
    KEEP_EXISTING = "keep_existing"
    USE_INCOMING = "use_incoming"
    MERGE_DATA = "merge_data"
    CREATE_COPY = "create_copy"
    SKIP_ITEM = "skip_item"


@dataclass(frozen=True)
class ConflictDifference:
    """One differing field between the existing and incoming values."""

    field: str
    existing_value: Any
    incoming_value: Any
    type: DifferenceType

    def to_dict(self) -> dict[str, Any]:
        return {
            "field": self.field,
            "existingValue": self.existing_value,
            "incomingValue": self.incoming_value,
            "type": self.type.value,
        }


@dataclass(frozen=True)
class ConflictResolution:
    strategy: ConflictResolutionStrategy
    action: ResolutionAction
    merged_data: Any = None
    notes: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "strategy": self.strategy.value,
            "action": self.action.value,
            "mergedData": self.merged_data,
            "notes": self.notes,
        }


@dataclass
class ConflictItem:
    """An entity present on both sides with differing content."""

    id: str
    type: DataType
    conflict_type: ConflictType
    existing_item: Any
    incoming_item: Any
    differences: list[ConflictDifference] = field(default_factory=list)
    resolved: bool = False
    resolution: ConflictResolution | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "conflictType": self.conflict_type.value,
            "existingItem": self.existing_item,
            "incomingItem": self.incoming_item,
            "differences": [d.to_dict() for d in self.differences],
            "resolved": self.resolved,
            "resolution": self.resolution.to_dict() if self.resolution else None,
        }
