"""Tests for codereel.conflicts.resolver module."""

import pytest

from codereel.conflicts.models import (
    ConflictItem,
    ConflictResolution,
    ConflictResolutionStrategy,
    ConflictType,
    ResolutionAction,
)
from codereel.conflicts.resolver import (
    ConflictResolver,
    coerce_strategy,
    create_modified_copy,
    resolved_value,
)
from codereel.core.errors import ConflictError
from codereel.project.models import DataType


def _metadata_conflict(existing=None, incoming=None):
    return ConflictItem(
        id="p1",
        type=DataType.PROJECT,
        conflict_type=ConflictType.ID_COLLISION,
        existing_item=existing or {"id": "p1", "name": "A", "author": "ann"},
        incoming_item=incoming or {"id": "p1", "name": "B", "license": "MIT"},
    )


def _snapshot_conflict(snapshot_id="s1"):
    return ConflictItem(
        id=snapshot_id,
        type=DataType.SNAPSHOTS,
        conflict_type=ConflictType.ID_COLLISION,
        existing_item={"id": snapshot_id, "code": "old"},
        incoming_item={"id": snapshot_id, "code": "new"},
    )


class TestCoerceStrategy:

    def test_accepts_enum_and_string(self):
        assert coerce_strategy(ConflictResolutionStrategy.SKIP) == ConflictResolutionStrategy.SKIP
        assert coerce_strategy("create_new") == ConflictResolutionStrategy.CREATE_NEW

    def test_unknown_strategy(self):
        with pytest.raises(ConflictError, match="Unsupported conflict resolution strategy: replace"):
            coerce_strategy("replace")


class TestResolveConflicts:

    def test_overwrite_uses_incoming(self):
        resolved = ConflictResolver().resolve_conflicts([_metadata_conflict()], "overwrite")
        assert resolved["metadata"]["name"] == "B"

    def test_skip_keeps_existing(self):
        resolved = ConflictResolver().resolve_conflicts([_metadata_conflict()], "skip")
        assert resolved["metadata"]["name"] == "A"

    def test_merge_prefers_incoming_and_keeps_one_sided_fields(self):
        resolved = ConflictResolver().resolve_conflicts([_metadata_conflict()], "merge")
        assert resolved["metadata"] == {"id": "p1", "name": "B", "author": "ann", "license": "MIT"}

    def test_marks_conflicts_resolved(self):
        conflict = _metadata_conflict()
        ConflictResolver().resolve_conflicts([conflict], "skip")
        assert conflict.resolved
        assert conflict.resolution.action == ResolutionAction.KEEP_EXISTING

    def test_create_new_copies_with_new_id(self):
        conflict = _metadata_conflict()
        resolved = ConflictResolver().resolve_conflicts([conflict], "create_new")
        copy = resolved["metadata"]
        assert copy["id"].startswith("p1-imported-")
        assert copy["name"] == "B (Imported)"
        assert conflict.incoming_item["id"] == "p1"

    def test_snapshots_collected_as_list(self):
        conflicts = [_snapshot_conflict("s1"), _snapshot_conflict("s2")]
        resolved = ConflictResolver().resolve_conflicts(conflicts, "overwrite")
        assert [s["id"] for s in resolved["snapshots"]] == ["s1", "s2"]

    def test_catalogue_items_collected_by_section(self):
        conflict = ConflictItem(
            id="t1",
            type=DataType.THEMES,
            conflict_type=ConflictType.ID_COLLISION,
            existing_item={"id": "t1", "name": "Dark"},
            incoming_item={"id": "t1", "name": "Darker"},
        )
        resolved = ConflictResolver().resolve_conflicts([conflict], "overwrite")
        assert resolved == {"themes": [{"id": "t1", "name": "Darker"}]}

    def test_unsupported_strategy(self):
        with pytest.raises(ConflictError):
            ConflictResolver().resolve_conflicts([_metadata_conflict()], "replace")

    def test_failed_merge_keeps_existing(self):
        conflict = _metadata_conflict(incoming=["not", "a", "record"])
        resolution = ConflictResolver().resolve_conflict(conflict, "merge")
        assert resolution.action == ResolutionAction.KEEP_EXISTING
        assert resolution.notes.startswith("Merge failed")


class TestInteractive:

    def test_handler_picks_strategy(self):
        picked = []

        def handler(conflict):
            picked.append(conflict.id)
            return ConflictResolutionStrategy.OVERWRITE

        resolution = ConflictResolver(handler).resolve_conflict(_metadata_conflict(), "interactive")
        assert picked == ["p1"]
        assert resolution.strategy == ConflictResolutionStrategy.OVERWRITE
        assert resolution.action == ResolutionAction.USE_INCOMING

    def test_without_handler_merges(self):
        resolution = ConflictResolver().resolve_conflict(_metadata_conflict(), "interactive")
        assert resolution.action == ResolutionAction.MERGE_DATA

    def test_handler_returning_interactive_merges(self):
        resolver = ConflictResolver(lambda c: "interactive")
        assert resolver.resolve_conflict(_metadata_conflict(), "interactive").action == ResolutionAction.MERGE_DATA


class TestResolvedValue:

    def test_skip_item_is_none(self):
        resolution = ConflictResolution(ConflictResolutionStrategy.SKIP, ResolutionAction.SKIP_ITEM)
        assert resolved_value(_metadata_conflict(), resolution) is None

    def test_empty_merge_falls_back_to_existing(self):
        resolution = ConflictResolution(ConflictResolutionStrategy.MERGE, ResolutionAction.MERGE_DATA)
        assert resolved_value(_metadata_conflict(), resolution)["name"] == "A"


def test_create_modified_copy_passes_non_records_through():
    assert create_modified_copy("plain", "x") == "plain"
