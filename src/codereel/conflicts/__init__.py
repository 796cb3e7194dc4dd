"""Conflict detection, per-entity merge and resolution."""

from codereel.conflicts.detector import ConflictDetector, find_differences
from codereel.conflicts.merge import (
    CatalogItemMerger,
    DocumentMerger,
    MergeError,
    MetadataMerger,
    SnapshotMerger,
)
from codereel.conflicts.models import (
    ConflictDifference,
    ConflictItem,
    ConflictResolution,
    ConflictResolutionStrategy,
    ConflictType,
    DifferenceType,
    ResolutionAction,
)
from codereel.conflicts.resolver import ConflictResolver, coerce_strategy, resolved_value

__all__ = [
    "ConflictDetector",
    "find_differences",
    "CatalogItemMerger",
    "DocumentMerger",
    "MergeError",
    "MetadataMerger",
    "SnapshotMerger",
    "ConflictDifference",
    "ConflictItem",
    "ConflictResolution",
    "ConflictResolutionStrategy",
    "ConflictType",
    "DifferenceType",
    "ResolutionAction",
    "ConflictResolver",
    "coerce_strategy",
    "resolved_value",
]
