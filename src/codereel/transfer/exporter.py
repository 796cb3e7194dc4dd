"""
Export pipeline.

    INITIALIZING -> COLLECTING_DATA -> FILTERING -> FORMATTING
        -> GENERATING_FILE -> COMPLETED

The pipeline raises ``ExportError`` on failure; the manager turns that into
a failure-shaped ``ExportResult``.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from typing import Any

from codereel.core.errors import ExportError
from codereel.core.timestamps import parse_datetime, to_jsonable, utcnow
from codereel.formats.base import ImportExportFormat
from codereel.formats.codec import serialize
from codereel.formats.files import generate_timestamped_filename
from codereel.project.models import DataType, ProjectData
from codereel.transfer.cancellation import CancellationToken
from codereel.transfer.options import ExportFilters, ExportOptions, FieldSelection, export_options
from codereel.transfer.results import (
    ExportedItem,
    ExportProgress,
    ExportResult,
    ExportStage,
    ExportStats,
    empty_counts,
)

logger = logging.getLogger(__name__)

_DOCUMENT_TYPES = (DataType.PROJECT, DataType.DOCUMENT, DataType.SNAPSHOTS)


def _matches_content_filters(project: dict[str, Any], filters: ExportFilters) -> bool:
    metadata = project.get("metadata") or {}
    document = project.get("document") or {}
    if filters.language_filter and document.get("language") not in filters.language_filter:
        return False
    if filters.tag_filter and not set(metadata.get("tags") or []) & set(filters.tag_filter):
        return False
    if filters.author_filter and metadata.get("author") not in filters.author_filter:
        return False
    return True


def collect_data(project: dict[str, Any], options: ExportOptions) -> dict[str, Any]:
    """Pick the sections an export includes and apply its filters.

    Returns an empty dict when the project falls outside a date range or
    content filter.
    """
    result: dict[str, Any] = {}
    if options.include_metadata and "metadata" in project:
        result["metadata"] = project["metadata"]
    if options.data_type in _DOCUMENT_TYPES and "document" in project:
        result["document"] = project["document"]

    filters = options.filters
    if filters is None:
        for key in ("themes", "presets", "exportSettings"):
            if project.get(key) is not None:
                result[key] = project[key]
        return result

    if "document" in result and filters.snapshot_indices is not None:
        snapshots = result["document"].get("snapshots") or []
        picked = [snapshots[i] for i in filters.snapshot_indices if 0 <= i < len(snapshots)]
        result["document"] = {**result["document"], "snapshots": picked}

    if filters.date_range and "metadata" in result:
        created = parse_datetime(result["metadata"].get("createdAt"))
        start, end = (parse_datetime(bound) for bound in filters.date_range)
        if created is None or created < start or created > end:
            return {}

    if not _matches_content_filters(project, filters):
        return {}

    if filters.include_themes and project.get("themes") is not None:
        result["themes"] = project["themes"]
    if filters.include_presets and project.get("presets") is not None:
        result["presets"] = project["presets"]
    if filters.include_settings and project.get("exportSettings") is not None:
        result["exportSettings"] = project["exportSettings"]
    return result


def _drop_deselected(record: dict[str, Any], selection: dict[str, bool]) -> dict[str, Any]:
    return {key: value for key, value in record.items() if selection.get(key, True) is not False}


def apply_field_selection(data: dict[str, Any], selection: FieldSelection | None) -> dict[str, Any]:
    """Remove fields switched off in the selection; other sections pass through."""
    if selection is None:
        return data
    result = dict(data)
    if "metadata" in result and selection.metadata:
        result["metadata"] = _drop_deselected(result["metadata"], selection.metadata)
    if "document" in result:
        document = dict(result["document"])
        if selection.document:
            document = _drop_deselected(document, {**selection.document, "snapshots": True})
        if selection.snapshots and isinstance(document.get("snapshots"), list):
            document["snapshots"] = [
                _drop_deselected(s, selection.snapshots) if isinstance(s, dict) else s
                for s in document["snapshots"]
            ]
        result["document"] = document
    return result


def exported_items(data: dict[str, Any]) -> list[ExportedItem]:
    items = []
    metadata = data.get("metadata")
    if metadata:
        items.append(
            ExportedItem(
                DataType.PROJECT,
                str(metadata.get("id", "")),
                size=len(json.dumps(metadata)),
                name=metadata.get("name"),
            )
        )
    document = data.get("document")
    if document:
        items.append(
            ExportedItem(DataType.DOCUMENT, "document", size=len(json.dumps(document)), name="Document")
        )
    return items


def export_stats(data: dict[str, Any], total_size: int, duration: float) -> ExportStats:
    counts = empty_counts()
    if data.get("metadata"):
        counts[DataType.PROJECT.value] = 1
    document = data.get("document")
    if document:
        counts[DataType.DOCUMENT.value] = 1
        counts[DataType.SNAPSHOTS.value] = len(document.get("snapshots") or [])
    counts[DataType.THEMES.value] = len(data.get("themes") or [])
    counts[DataType.PRESETS.value] = len(data.get("presets") or [])
    if data.get("exportSettings"):
        counts[DataType.SETTINGS.value] = 1

    total = sum(counts.values())
    processing_time = max(duration, 1.0)
    return ExportStats(
        total_items=total,
        exported_items=total,
        total_size=total_size,
        items_by_type=counts,
        processing_time=processing_time,
        average_item_time=processing_time / total if total else 0.0,
    )


class DocumentExporter:
    """Serializes a project to one of the supported formats."""

    def __init__(self, on_progress: Callable[[ExportProgress], None] | None = None):
        self.on_progress = on_progress

    def _progress(self, current: int, stage: ExportStage, message: str) -> None:
        logger.debug("export %s: %s", stage.value, message)
        if self.on_progress:
            self.on_progress(ExportProgress(current, 100, stage, message))

    async def export(
        self,
        project: ProjectData | dict[str, Any],
        options: ExportOptions | dict[str, Any] | None = None,
        token: CancellationToken | None = None,
    ) -> ExportResult:
        """Run the export pipeline.

        Args:
            project: Project to export (typed or wire form)
            options: Export options or overrides of the defaults
            token: Cancellation token checked after every stage

        Returns:
            ExportResult with the generated file content

        Raises:
            ExportError: On any failure, cancellation included
        """
        options = export_options(options)
        token = token or CancellationToken("Export")
        start = utcnow()

        try:
            wire = project.to_json_dict() if isinstance(project, ProjectData) else to_jsonable(project)

            self._progress(0, ExportStage.INITIALIZING, "Starting export...")
            await token.checkpoint(ExportStage.INITIALIZING.value)

            self._progress(10, ExportStage.COLLECTING_DATA, "Collecting data...")
            collected = collect_data(wire, options)
            await token.checkpoint(ExportStage.COLLECTING_DATA.value)

            self._progress(30, ExportStage.FILTERING, "Applying filters...")
            selected = apply_field_selection(collected, options.field_selection)
            await token.checkpoint(ExportStage.FILTERING.value)

            self._progress(50, ExportStage.FORMATTING, "Formatting data...")
            formatted = serialize(selected, options.format, options.serialize_options())
            await token.checkpoint(ExportStage.FORMATTING.value)

            self._progress(80, ExportStage.GENERATING_FILE, "Generating file...")
            if isinstance(formatted, str):
                encoding = options.csv.encoding if options.format == ImportExportFormat.CSV else "utf-8"
                content = formatted.encode(encoding)
            else:
                content = formatted
            filename = generate_timestamped_filename(options.filename_prefix, options.format.extension)
            await token.checkpoint(ExportStage.GENERATING_FILE.value)

            self._progress(100, ExportStage.COMPLETED, "Export completed")
        except Exception as e:
            raise ExportError(f"Export failed: {e}") from e

        end = utcnow()
        duration = (end - start).total_seconds() * 1000
        return ExportResult(
            success=True,
            content=content,
            filename=filename,
            format=options.format,
            start_time=start,
            end_time=end,
            stats=export_stats(selected, len(content), duration),
            exported_items=tuple(exported_items(selected)),
        )
