"""Project data model and templates."""

from codereel.project.models import (
    BackupInfo,
    BackupReason,
    DataType,
    Document,
    Padding,
    ProjectData,
    ProjectMetadata,
    ProjectVersion,
    Snapshot,
    create_metadata,
)

__all__ = [
    "BackupInfo",
    "BackupReason",
    "DataType",
    "Document",
    "Padding",
    "ProjectData",
    "ProjectMetadata",
    "ProjectVersion",
    "Snapshot",
    "create_metadata",
]
