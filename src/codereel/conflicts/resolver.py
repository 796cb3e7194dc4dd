"""
Conflict resolution.

Each conflict is resolved under a strategy into a ``ConflictResolution``,
and the chosen value is written into a partial project keyed by entity:
project -> ``metadata``, document -> ``document``, snapshots ->
``snapshots`` (list), themes/presets -> appended to their list.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from codereel.conflicts.merge import MergeError, merger_for
from codereel.conflicts.models import (
    ConflictItem,
    ConflictResolution,
    ConflictResolutionStrategy,
    ResolutionAction,
)
from codereel.core.errors import ConflictError
from codereel.core.timestamps import epoch_millis
from codereel.project.models import DataType

logger = logging.getLogger(__name__)

InteractiveHandler = Callable[[ConflictItem], ConflictResolutionStrategy]


def coerce_strategy(strategy: ConflictResolutionStrategy | str) -> ConflictResolutionStrategy:
    """Normalize a strategy value, failing fast on anything unknown.

    Raises:
        ConflictError: If the value is not a recognized strategy
    """
    if isinstance(strategy, ConflictResolutionStrategy):
        return strategy
    try:
        return ConflictResolutionStrategy(strategy)
    except ValueError:
        raise ConflictError(f"Unsupported conflict resolution strategy: {strategy}") from None


def create_modified_copy(item: Any, original_id: str) -> Any:
    """Copy an item under a derived id, marking its name as imported."""
    if not isinstance(item, dict):
        return item
    copy = dict(item)
    if "id" in copy:
        copy["id"] = f"{original_id}-imported-{epoch_millis()}"
    if isinstance(copy.get("name"), str):
        copy["name"] = f"{copy['name']} (Imported)"
    return copy


def resolved_value(conflict: ConflictItem, resolution: ConflictResolution) -> Any:
    """The value a resolution selects for its conflict, or None for SKIP_ITEM."""
    action = resolution.action
    if action == ResolutionAction.USE_INCOMING:
        return conflict.incoming_item
    if action == ResolutionAction.KEEP_EXISTING:
        return conflict.existing_item
    if action == ResolutionAction.MERGE_DATA:
        return resolution.merged_data if resolution.merged_data else conflict.existing_item
    if action == ResolutionAction.CREATE_COPY:
        return create_modified_copy(conflict.incoming_item, conflict.id)
    return None


class ConflictResolver:
    """Applies resolution strategies to detected conflicts.

    Args:
        interactive_handler: Called per conflict under the INTERACTIVE
            strategy to pick a concrete strategy. Without one, INTERACTIVE
            behaves as MERGE.
    """

    def __init__(self, interactive_handler: InteractiveHandler | None = None):
        self.interactive_handler = interactive_handler

    def resolve_conflicts(
        self,
        conflicts: list[ConflictItem],
        strategy: ConflictResolutionStrategy | str,
    ) -> dict[str, Any]:
        """Resolve every conflict and collect the chosen values.

        Marks each conflict resolved and records its resolution.

        Raises:
            ConflictError: On an unsupported strategy
        """
        chosen = coerce_strategy(strategy)
        resolved: dict[str, Any] = {}
        for conflict in conflicts:
            resolution = self.resolve_conflict(conflict, chosen)
            conflict.resolution = resolution
            conflict.resolved = True
            self._apply(resolved, conflict, resolution)
        return resolved

    def resolve_conflict(
        self,
        conflict: ConflictItem,
        strategy: ConflictResolutionStrategy | str,
    ) -> ConflictResolution:
        strategy = coerce_strategy(strategy)

        if strategy == ConflictResolutionStrategy.INTERACTIVE and self.interactive_handler:
            picked = coerce_strategy(self.interactive_handler(conflict))
            if picked != ConflictResolutionStrategy.INTERACTIVE:
                return self.resolve_conflict(conflict, picked)

        if strategy == ConflictResolutionStrategy.OVERWRITE:
            return ConflictResolution(
                strategy,
                ResolutionAction.USE_INCOMING,
                notes="Overwriting existing data with incoming data",
            )
        if strategy == ConflictResolutionStrategy.SKIP:
            return ConflictResolution(
                strategy,
                ResolutionAction.KEEP_EXISTING,
                notes="Keeping existing data, skipping incoming data",
            )
        if strategy == ConflictResolutionStrategy.CREATE_NEW:
            return ConflictResolution(
                strategy,
                ResolutionAction.CREATE_COPY,
                notes="Creating new item with modified ID",
            )
        # MERGE, and INTERACTIVE without a handler
        return self._attempt_merge(conflict)

    def _attempt_merge(self, conflict: ConflictItem) -> ConflictResolution:
        try:
            merged = merger_for(conflict.type).merge(conflict.existing_item, conflict.incoming_item)
        except MergeError as e:
            logger.debug("Merge of %s %s failed: %s", conflict.type.value, conflict.id, e)
            return ConflictResolution(
                ConflictResolutionStrategy.MERGE,
                ResolutionAction.KEEP_EXISTING,
                notes=f"Merge failed: {e}",
            )
        return ConflictResolution(
            ConflictResolutionStrategy.MERGE,
            ResolutionAction.MERGE_DATA,
            merged_data=merged,
            notes="Successfully merged conflicting data",
        )

    def _apply(
        self,
        resolved: dict[str, Any],
        conflict: ConflictItem,
        resolution: ConflictResolution,
    ) -> None:
        value = resolved_value(conflict, resolution)
        if value is None:
            return

        if conflict.type == DataType.PROJECT:
            resolved["metadata"] = value
        elif conflict.type == DataType.DOCUMENT:
            resolved["document"] = value
        elif conflict.type == DataType.SNAPSHOTS:
            resolved.setdefault("snapshots", []).append(value)
        elif conflict.type in (DataType.THEMES, DataType.PRESETS):
            resolved.setdefault(conflict.type.value, []).append(value)
