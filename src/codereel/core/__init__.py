"""Core utilities for codereel."""

from codereel.core.config import Settings, get_paths, get_workspace_root, load_settings
from codereel.core.errors import (
    ArchiveError,
    BackupError,
    CodereelError,
    ConflictError,
    ErrorType,
    ExportError,
    FileReadError,
    ManagerStateError,
    OperationCancelledError,
    ParsingError,
    StorageError,
    ValidationFailedError,
)
from codereel.core.storage import JsonFileStore, KeyValueStore, MemoryStore

__all__ = [
    # Config
    "Settings",
    "get_paths",
    "get_workspace_root",
    "load_settings",
    # Errors
    "ErrorType",
    "CodereelError",
    "ParsingError",
    "ArchiveError",
    "FileReadError",
    "ConflictError",
    "ValidationFailedError",
    "StorageError",
    "BackupError",
    "OperationCancelledError",
    "ManagerStateError",
    "ExportError",
    # Storage
    "KeyValueStore",
    "MemoryStore",
    "JsonFileStore",
]
