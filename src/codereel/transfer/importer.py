"""
Import pipeline.

Stages run strictly in order; the cancellation token is checked after each
one and nothing is committed before the IMPORTING stage:

    INITIALIZING -> READING_FILE -> PARSING_DATA -> VALIDATING
        -> DETECTING_CONFLICTS -> RESOLVING_CONFLICTS (only with conflicts)
        -> IMPORTING -> COMPLETED

Every failure, including cancellation, ends the run with a failure-shaped
``ImportResult`` instead of an exception.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any

from codereel.conflicts.detector import ConflictDetector
from codereel.conflicts.models import ConflictItem, ResolutionAction
from codereel.conflicts.resolver import ConflictResolver, InteractiveHandler
from codereel.core.config import Settings
from codereel.core.errors import CodereelError, ErrorType, FileReadError
from codereel.core.timestamps import utcnow
from codereel.formats.base import ParsedPayload, PayloadShape
from codereel.formats.codec import parse
from codereel.formats.files import FileSource, detect_format, format_file_size
from codereel.project.models import DataType
from codereel.transfer.cancellation import CancellationToken
from codereel.transfer.options import ImportOptions, import_options
from codereel.transfer.results import (
    ErrorRecord,
    ImportAction,
    ImportedItem,
    ImportProgress,
    ImportResult,
    ImportStage,
    ImportStats,
    SkippedItem,
    WarningRecord,
    WarningType,
    empty_counts,
)
from codereel.transfer.workspace import ProjectWorkspace
from codereel.validation.validator import DataValidator

logger = logging.getLogger(__name__)

_ACTIONS = {
    ResolutionAction.USE_INCOMING: ImportAction.REPLACED,
    ResolutionAction.MERGE_DATA: ImportAction.MERGED,
    ResolutionAction.CREATE_COPY: ImportAction.CREATED,
}


async def read_source(source: FileSource | Path) -> FileSource:
    """Load a path into memory off the event loop.

    Raises:
        FileReadError: If the file cannot be read
    """
    if isinstance(source, FileSource):
        return source
    try:
        return await asyncio.to_thread(FileSource.from_path, Path(source))
    except OSError as e:
        raise FileReadError(f"Failed to read file: {e}") from e


def validation_target(payload: ParsedPayload, data_type: DataType) -> tuple[Any, DataType]:
    """Select the part of a payload the validator checks for a data type.

    A document or bare snapshot list imported as a project is validated as
    a document, since its metadata is only created at commit time.
    """
    data = payload.data
    if data_type == DataType.PROJECT:
        if payload.shape != PayloadShape.PROJECT:
            return payload.document, DataType.DOCUMENT
        return data, DataType.PROJECT
    if data_type == DataType.DOCUMENT:
        return payload.document, data_type
    if data_type == DataType.SNAPSHOTS:
        return payload.snapshots, data_type
    if data_type == DataType.THEMES:
        return data.get("themes"), data_type
    if data_type == DataType.PRESETS:
        return data.get("presets"), data_type
    return data.get("exportSettings"), data_type


class _Tally:
    """Mutable accumulator turned into a frozen ImportResult at the end."""

    def __init__(self) -> None:
        self.imported: list[ImportedItem] = []
        self.skipped: list[SkippedItem] = []
        self.errors: list[ErrorRecord] = []
        self.warnings: list[WarningRecord] = []
        self.counts = empty_counts()

    def add(self, item: ImportedItem) -> None:
        self.imported.append(item)
        self.counts[item.type.value] += 1

    def skip(self, item: SkippedItem) -> None:
        self.skipped.append(item)


class DocumentImporter:
    """Runs the import pipeline for one file at a time.

    Args:
        workspace: Holder of the current project; the commit target
        settings: Validation limits
        on_progress: Receives an ImportProgress at every stage
        on_conflict_detected: Receives every non-empty conflict list
        interactive_handler: Picks a strategy per conflict under INTERACTIVE
    """

    def __init__(
        self,
        workspace: ProjectWorkspace,
        settings: Settings | None = None,
        on_progress: Callable[[ImportProgress], None] | None = None,
        on_conflict_detected: Callable[[list[ConflictItem]], None] | None = None,
        interactive_handler: InteractiveHandler | None = None,
    ):
        self.workspace = workspace
        self.settings = settings or Settings()
        self.on_progress = on_progress
        self.validator = DataValidator(self.settings)
        self.detector = ConflictDetector(workspace.current_wire, on_conflict_detected)
        self.resolver = ConflictResolver(interactive_handler)

    def _progress(self, current: int, stage: ImportStage, message: str) -> None:
        logger.debug("import %s: %s", stage.value, message)
        if self.on_progress:
            self.on_progress(ImportProgress(current, 100, stage, message))

    async def parse_source(
        self,
        source: FileSource | Path,
        options: ImportOptions,
    ) -> tuple[FileSource, ParsedPayload]:
        """Read and parse a source without validating or committing it."""
        source = await read_source(source)
        fmt = options.format or detect_format(source)
        return source, parse(source.content, fmt, options.csv)

    async def import_file(
        self,
        source: FileSource | Path,
        options: ImportOptions | dict[str, Any] | None = None,
        token: CancellationToken | None = None,
    ) -> ImportResult:
        options = import_options(options)
        token = token or CancellationToken("Import")
        start = utcnow()
        tally = _Tally()
        success = False

        try:
            self._progress(0, ImportStage.INITIALIZING, "Starting import...")
            await token.checkpoint(ImportStage.INITIALIZING.value)

            self._progress(10, ImportStage.READING_FILE, "Reading file...")
            source = await read_source(source)
            if source.size > self.settings.max_file_size:
                tally.warnings.append(
                    WarningRecord(
                        WarningType.PERFORMANCE,
                        f"File size ({format_file_size(source.size)}) exceeds recommended maximum "
                        f"({format_file_size(self.settings.max_file_size)})",
                        details=source.name,
                    )
                )
            await token.checkpoint(ImportStage.READING_FILE.value)

            self._progress(20, ImportStage.PARSING_DATA, "Parsing data...")
            fmt = options.format or detect_format(source)
            payload = parse(source.content, fmt, options.csv)
            await token.checkpoint(ImportStage.PARSING_DATA.value)

            self._progress(40, ImportStage.VALIDATING, "Validating data...")
            target, target_type = validation_target(payload, options.data_type)
            validation = self.validator.validate(target, target_type)
            if not validation.valid and options.validate_data:
                tally.errors.extend(
                    ErrorRecord(ErrorType.VALIDATION_ERROR, e.message, details=e.field)
                    for e in validation.errors
                )
                return self._finish(tally, start, success=False)
            tally.warnings.extend(
                WarningRecord(WarningType.COMPATIBILITY, w.message, details=w.field)
                for w in validation.warnings
            )
            await token.checkpoint(ImportStage.VALIDATING.value)

            self._progress(60, ImportStage.DETECTING_CONFLICTS, "Detecting conflicts...")
            existing = self.workspace.current_wire()
            conflicts = self.detector.detect_conflicts(payload.data)
            await token.checkpoint(ImportStage.DETECTING_CONFLICTS.value)

            if conflicts:
                self._progress(70, ImportStage.RESOLVING_CONFLICTS, "Resolving conflicts...")
                self.resolver.resolve_conflicts(conflicts, options.conflict_resolution)
                await token.checkpoint(ImportStage.RESOLVING_CONFLICTS.value)

            self._progress(90, ImportStage.IMPORTING, "Importing data...")
            self.workspace.commit(payload.data, conflicts, name_hint=Path(source.name).stem)
            self._record_items(payload.data, existing, conflicts, tally)

            self._progress(100, ImportStage.COMPLETED, "Import completed")
            success = True
        except CodereelError as e:
            logger.debug("Import failed: %s", e)
            tally.errors.append(ErrorRecord(e.error_type, str(e)))
        except Exception as e:
            logger.debug("Import failed unexpectedly", exc_info=True)
            tally.errors.append(ErrorRecord(ErrorType.SYSTEM_ERROR, str(e) or type(e).__name__))

        return self._finish(tally, start, success)

    def _record_items(
        self,
        incoming: dict[str, Any],
        existing: dict[str, Any] | None,
        conflicts: list[ConflictItem],
        tally: _Tally,
    ) -> None:
        by_key = {(c.type, c.id): c for c in conflicts}
        existing = existing or {}

        def record(
            data_type: DataType, item_id: str, name: str | None, data: Any, existed: bool
        ) -> None:
            conflict = by_key.get((data_type, item_id))
            if conflict is None or conflict.resolution is None:
                action = ImportAction.UPDATED if existed else ImportAction.CREATED
                tally.add(ImportedItem(data_type, item_id, action, data, name=name))
                return
            resolution = conflict.resolution
            if resolution.action in _ACTIONS:
                tally.add(
                    ImportedItem(
                        data_type,
                        item_id,
                        _ACTIONS[resolution.action],
                        data,
                        name=name,
                        original_data=conflict.existing_item,
                    )
                )
            else:
                tally.skip(
                    SkippedItem(
                        data_type,
                        item_id,
                        resolution.notes or "Kept existing data",
                        original_data=data,
                        name=name,
                    )
                )

        old_meta = existing.get("metadata") or {}
        meta = incoming.get("metadata")
        same_project = bool(old_meta) and (
            not isinstance(meta, dict) or meta.get("id") == old_meta.get("id")
        )
        if isinstance(meta, dict):
            record(DataType.PROJECT, str(meta.get("id")), meta.get("name"), meta, same_project)

        document = incoming.get("document")
        if isinstance(document, dict):
            record(DataType.DOCUMENT, "document", "Document", document, same_project)
            old_ids = set()
            if same_project:
                old_snapshots = existing["document"].get("snapshots") or []
                old_ids = {str(s.get("id")) for s in old_snapshots if isinstance(s, dict)}
            for snapshot in document.get("snapshots") or []:
                if isinstance(snapshot, dict):
                    snapshot_id = str(snapshot.get("id"))
                    record(DataType.SNAPSHOTS, snapshot_id, None, snapshot, snapshot_id in old_ids)

        for section, data_type in (("themes", DataType.THEMES), ("presets", DataType.PRESETS)):
            old_ids = {str(i.get("id")) for i in existing.get(section) or [] if isinstance(i, dict)}
            for item in incoming.get(section) or []:
                if isinstance(item, dict):
                    item_id = str(item.get("id"))
                    existed = same_project and item_id in old_ids
                    record(data_type, item_id, item.get("name"), item, existed)

        if isinstance(incoming.get("exportSettings"), dict):
            record(
                DataType.SETTINGS,
                "exportSettings",
                "Export settings",
                incoming["exportSettings"],
                same_project and "exportSettings" in existing,
            )

    def _finish(self, tally: _Tally, start: datetime, success: bool) -> ImportResult:
        end = utcnow()
        duration = (end - start).total_seconds() * 1000
        total = len(tally.imported) + len(tally.skipped)
        stats = ImportStats(
            total_items=total,
            imported_items=len(tally.imported),
            skipped_items=len(tally.skipped),
            error_count=len(tally.errors),
            warning_count=len(tally.warnings),
            items_by_type=tally.counts,
            processing_time=duration,
            average_item_time=duration / total if total else 0.0,
        )
        return ImportResult(
            success=success and not tally.errors,
            start_time=start,
            end_time=end,
            imported_items=tuple(tally.imported),
            skipped_items=tuple(tally.skipped),
            errors=tuple(tally.errors),
            warnings=tuple(tally.warnings),
            stats=stats,
        )
