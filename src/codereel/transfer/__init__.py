"""Import/export pipelines and their orchestration."""

from codereel.transfer.cancellation import CancellationToken
from codereel.transfer.manager import ImportPreview, ProjectImportExportManager
from codereel.transfer.options import ExportFilters, ExportOptions, FieldSelection, ImportOptions
from codereel.transfer.results import ExportResult, ImportResult
from codereel.transfer.workspace import ProjectWorkspace, TransferContext, open_workspace_context

__all__ = [
    "CancellationToken",
    "ImportPreview",
    "ProjectImportExportManager",
    "ExportFilters",
    "ExportOptions",
    "FieldSelection",
    "ImportOptions",
    "ExportResult",
    "ImportResult",
    "ProjectWorkspace",
    "TransferContext",
    "open_workspace_context",
]
