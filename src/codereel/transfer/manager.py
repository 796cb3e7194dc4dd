"""
Import/export orchestration.

``ProjectImportExportManager`` wires the importer, exporter, backup manager,
template library and history logs to one caller-owned ``TransferContext``.
Every pipeline outcome comes back as a result object; only requests the
manager cannot accept at all (it has been closed, or there is nothing to
export) raise, and they raise before any stage starts.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from codereel.backup.manager import BackupItem, BackupManager
from codereel.conflicts.models import ConflictItem
from codereel.conflicts.resolver import InteractiveHandler
from codereel.core.errors import CodereelError, ExportError, ManagerStateError
from codereel.core.storage import EXPORT_HISTORY_KEY, IMPORT_HISTORY_KEY
from codereel.formats.files import FileSource
from codereel.project.models import BackupReason, ProjectData
from codereel.project.templates import (
    ProjectTemplate,
    TemplateCategory,
    TemplateDifficulty,
    TemplateLibrary,
    create_project_from_template,
    template_from_project,
)
from codereel.transfer.cancellation import CancellationToken
from codereel.transfer.exporter import DocumentExporter
from codereel.transfer.history import HistoryItem, HistoryLog, generate_id
from codereel.transfer.importer import DocumentImporter, validation_target
from codereel.transfer.options import ExportOptions, ImportOptions, export_options, import_options
from codereel.transfer.results import (
    ExportProgress,
    ExportResult,
    ExportStage,
    ImportProgress,
    ImportResult,
    ImportStage,
    WarningRecord,
    WarningType,
)
from codereel.transfer.workspace import TransferContext
from codereel.validation.validator import ValidationError, ValidationWarning

logger = logging.getLogger(__name__)


@dataclass
class ImportPreview:
    """What an import would do, without committing anything."""

    valid: bool
    conflicts: list[ConflictItem] = field(default_factory=list)
    preview: dict[str, Any] = field(default_factory=dict)
    errors: list[ValidationError] = field(default_factory=list)
    warnings: list[ValidationWarning] = field(default_factory=list)


def _source_name(source: FileSource | Path) -> str:
    return source.name if isinstance(source, FileSource) else Path(source).name


class ProjectImportExportManager:
    """Coordinates import, export, backup and template operations.

    Args:
        context: Store, workspace, settings and observers for this manager
        interactive_handler: Picks a strategy per conflict when imports run
            with the INTERACTIVE strategy
    """

    def __init__(
        self,
        context: TransferContext | None = None,
        interactive_handler: InteractiveHandler | None = None,
    ):
        self.context = context or TransferContext()
        settings = self.context.settings
        workspace = self.context.workspace

        self.importer = DocumentImporter(
            workspace,
            settings,
            on_progress=self.context.on_import_progress,
            on_conflict_detected=self.context.on_conflict_detected,
            interactive_handler=interactive_handler,
        )
        self.exporter = DocumentExporter(on_progress=self.context.on_export_progress)
        self.backups = BackupManager(
            self.context.store,
            current_project=lambda: workspace.current,
            settings=settings,
            on_backup_created=self.context.on_backup_created,
        )
        self.templates = TemplateLibrary(self.context.store)
        self.import_history = HistoryLog(self.context.store, IMPORT_HISTORY_KEY, settings.history_limit)
        self.export_history = HistoryLog(self.context.store, EXPORT_HISTORY_KEY, settings.history_limit)

        self._active_imports: dict[str, CancellationToken] = {}
        self._active_exports: dict[str, CancellationToken] = {}
        self._closed = False

    # Lifecycle

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Cancel everything in flight and refuse further operations."""
        self.cancel_import()
        self.cancel_export()
        self._closed = True

    async def __aenter__(self) -> ProjectImportExportManager:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.close()

    def _ensure_open(self) -> None:
        if self._closed:
            raise ManagerStateError("Import/export manager has been closed")

    # Import

    async def import_project(
        self,
        source: FileSource | Path,
        options: ImportOptions | dict[str, Any] | None = None,
    ) -> ImportResult:
        """Import one file into the workspace.

        Creates a before-import backup first when requested. The outcome is
        recorded in the import history whether or not it succeeded.

        Raises:
            ManagerStateError: If the manager has been closed
        """
        self._ensure_open()
        options = import_options(options)
        filename = _source_name(source)
        operation_id = generate_id("op")
        token = CancellationToken("Import")
        self._active_imports[operation_id] = token

        try:
            backup_id = None
            extra_warnings: tuple[WarningRecord, ...] = ()
            if options.create_backup:
                if self.context.workspace.current is None:
                    logger.warning("No current project, skipping pre-import backup")
                    extra_warnings = (
                        WarningRecord(
                            WarningType.DATA_LOSS,
                            "No current project to back up; pre-import backup skipped",
                        ),
                    )
                else:
                    try:
                        backup = self.backups.create_backup(
                            BackupReason.BEFORE_IMPORT, original_filename=filename
                        )
                    except CodereelError as e:
                        result = ImportResult.failure(str(e))
                        self._record_import(filename, options, result)
                        return result
                    backup_id = backup.id

            result = await self.importer.import_file(source, options, token)
            result = dataclasses.replace(
                result,
                backup_id=backup_id,
                warnings=extra_warnings + result.warnings,
            )
            self._record_import(filename, options, result)
            return result
        finally:
            self._active_imports.pop(operation_id, None)

    async def import_batch(
        self,
        sources: Sequence[FileSource | Path],
        options: ImportOptions | dict[str, Any] | None = None,
    ) -> list[ImportResult]:
        """Import files one after another, one result per file."""
        self._ensure_open()
        options = import_options(options)
        results = []
        total = len(sources)
        for i, source in enumerate(sources):
            try:
                results.append(await self.import_project(source, options))
            except Exception as e:
                logger.warning("Import of %s failed: %s", _source_name(source), e)
                results.append(ImportResult.failure(str(e)))
            if self.context.on_import_progress:
                self.context.on_import_progress(
                    ImportProgress(
                        i + 1, total, ImportStage.IMPORTING, f"Imported {i + 1} of {total} files"
                    )
                )
        return results

    async def preview_import(
        self,
        source: FileSource | Path,
        options: ImportOptions | dict[str, Any] | None = None,
    ) -> ImportPreview:
        """Parse, validate and detect conflicts without committing."""
        self._ensure_open()
        options = import_options(options)
        try:
            _, payload = await self.importer.parse_source(source, options)
            target, target_type = validation_target(payload, options.data_type)
            validation = self.importer.validator.validate(target, target_type)
            conflicts = self.importer.detector.detect_conflicts(payload.data)
        except Exception as e:
            logger.debug("Preview of %s failed", _source_name(source), exc_info=True)
            return ImportPreview(valid=False, errors=[ValidationError("file", str(e))])
        return ImportPreview(
            valid=validation.valid,
            conflicts=conflicts,
            preview=payload.data,
            errors=list(validation.errors),
            warnings=list(validation.warnings),
        )

    def _record_import(self, filename: str, options: ImportOptions, result: ImportResult) -> None:
        self.import_history.add(
            HistoryItem(
                filename=filename,
                format=options.format.value if options.format else None,
                data_type=options.data_type.value,
                result=result.to_dict(),
                options=options.to_dict(),
            )
        )

    # Export

    async def export_project(
        self,
        project: ProjectData | None = None,
        options: ExportOptions | dict[str, Any] | None = None,
    ) -> ExportResult:
        """Export a project, by default the workspace's current one.

        A pipeline failure, cancellation included, comes back as a
        failure-shaped result and is recorded in the export history.

        Raises:
            ManagerStateError: If the manager is closed or there is no project
        """
        self._ensure_open()
        options = export_options(options)
        if project is None:
            project = self.context.workspace.current
        if project is None:
            raise ManagerStateError("No project to export")

        operation_id = generate_id("op")
        token = CancellationToken("Export")
        self._active_exports[operation_id] = token
        try:
            result = await self.exporter.export(project, options, token)
        except ExportError as e:
            cause = e.__cause__
            error_type = cause.error_type if isinstance(cause, CodereelError) else e.error_type
            result = ExportResult.failure("", options.format, str(e), error_type)
        finally:
            self._active_exports.pop(operation_id, None)

        self._record_export(options, result)
        return result

    async def export_batch(
        self,
        projects: Sequence[ProjectData],
        options: ExportOptions | dict[str, Any] | None = None,
    ) -> list[ExportResult]:
        """Export projects one after another, one result per project."""
        self._ensure_open()
        options = export_options(options)
        results = []
        total = len(projects)
        for i, project in enumerate(projects):
            try:
                result = await self.export_project(project, options)
                if not result.success:
                    result = dataclasses.replace(result, filename=f"error-{i}.txt")
                results.append(result)
            except Exception as e:
                logger.warning("Export %d of %d failed: %s", i + 1, total, e)
                results.append(ExportResult.failure(f"error-{i}.txt", options.format, str(e)))
            if self.context.on_export_progress:
                self.context.on_export_progress(
                    ExportProgress(
                        i + 1,
                        total,
                        ExportStage.GENERATING_FILE,
                        f"Exported {i + 1} of {total} projects",
                    )
                )
        return results

    def _record_export(self, options: ExportOptions, result: ExportResult) -> None:
        self.export_history.add(
            HistoryItem(
                filename=result.filename,
                format=options.format.value,
                data_type=options.data_type.value,
                result=result.to_dict(),
                options=options.to_dict(),
            )
        )

    # Backups

    async def create_backup(
        self,
        project: ProjectData | None = None,
        reason: BackupReason | str = BackupReason.MANUAL,
    ) -> BackupItem:
        self._ensure_open()
        return self.backups.create_backup(reason, project)

    async def restore_from_backup(self, backup_id: str, make_current: bool = False) -> ProjectData:
        """Restore a backup, optionally making it the workspace's project."""
        self._ensure_open()
        project = self.backups.restore(backup_id)
        if make_current:
            self.context.workspace.replace(project)
        return project

    async def list_backups(self) -> list[BackupItem]:
        self._ensure_open()
        return self.backups.list_backups()

    async def delete_backup(self, backup_id: str) -> None:
        self._ensure_open()
        self.backups.delete_backup(backup_id)

    # Templates

    async def create_from_template(
        self,
        template: ProjectTemplate | str,
        custom_data: dict[str, Any] | None = None,
    ) -> ProjectData:
        """Instantiate a template (object or stored id) as a new project.

        Raises:
            KeyError: If a template id is not in the library
        """
        self._ensure_open()
        if isinstance(template, str):
            found = self.templates.get(template)
            if found is None:
                raise KeyError(f"Template not found: {template}")
            template = found
        project = create_project_from_template(template, custom_data)
        if self.templates.get(template.id) is not None:
            self.templates.record_usage(template.id)
        return project

    async def save_as_template(
        self,
        project: ProjectData,
        name: str,
        description: str = "",
        category: TemplateCategory | str = TemplateCategory.CUSTOM,
        tags: list[str] | None = None,
        difficulty: TemplateDifficulty | str = TemplateDifficulty.BEGINNER,
        estimated_time: int = 0,
    ) -> ProjectTemplate:
        self._ensure_open()
        template = template_from_project(
            project,
            name,
            description=description,
            category=TemplateCategory(category),
            tags=tags,
            difficulty=TemplateDifficulty(difficulty),
            estimated_time=estimated_time,
        )
        self.templates.save(template)
        return template

    def list_templates(self) -> list[ProjectTemplate]:
        return self.templates.list_templates()

    # Operations

    def cancel_import(self, operation_id: str | None = None) -> None:
        """Cancel one active import, or all of them when no id is given."""
        self._cancel(self._active_imports, operation_id)

    def cancel_export(self, operation_id: str | None = None) -> None:
        """Cancel one active export, or all of them when no id is given."""
        self._cancel(self._active_exports, operation_id)

    @staticmethod
    def _cancel(registry: dict[str, CancellationToken], operation_id: str | None) -> None:
        ids = [operation_id] if operation_id else list(registry)
        for op_id in ids:
            token = registry.pop(op_id, None)
            if token is not None:
                token.cancel()
                logger.debug("Cancelled %s", op_id)

    def get_active_operations(self) -> dict[str, list[str]]:
        return {
            "imports": list(self._active_imports),
            "exports": list(self._active_exports),
        }

    # History

    def get_import_history(self) -> list[HistoryItem]:
        return self.import_history.entries()

    def get_export_history(self) -> list[HistoryItem]:
        return self.export_history.entries()

    def clear_history(self, kind: str | None = None) -> None:
        """Clear import and/or export history (``kind`` is "import" or "export")."""
        if kind not in (None, "import", "export"):
            raise ValueError(f"Unknown history kind: {kind}")
        if kind in (None, "import"):
            self.import_history.clear()
        if kind in (None, "export"):
            self.export_history.clear()
