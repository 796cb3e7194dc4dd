"""
Error taxonomy for codereel.

Library code raises these exceptions; the importer and exporter convert them
into structured outcome records at their boundary (see ``ErrorType``).
"""

from __future__ import annotations

from enum import Enum


class ErrorType(Enum):
    """Category of an error recorded in an import/export result."""

    VALIDATION_ERROR = "validation_error"
    PARSING_ERROR = "parsing_error"
    FILE_ERROR = "file_error"
    CONFLICT_ERROR = "conflict_error"
    SYSTEM_ERROR = "system_error"


class CodereelError(Exception):
    """Base exception for all codereel errors."""

    error_type = ErrorType.SYSTEM_ERROR


class ParsingError(CodereelError):
    """Malformed input for a given format."""

    error_type = ErrorType.PARSING_ERROR

    def __init__(self, fmt: str, message: str):
        self.format = fmt
        super().__init__(f"{fmt.upper()} parsing failed: {message}")


class ArchiveError(ParsingError):
    """Archive contains no member that can be parsed."""

    def __init__(self, message: str = "No supported files found in ZIP archive"):
        super().__init__("zip", message)


class SerializationError(CodereelError):
    """Data cannot be written in the requested format."""


class FileReadError(CodereelError):
    """The input blob could not be read."""

    error_type = ErrorType.FILE_ERROR


class ConflictError(CodereelError):
    """Conflict resolution could not be carried out."""

    error_type = ErrorType.CONFLICT_ERROR


class ValidationFailedError(CodereelError):
    """Blocking validation errors were found."""

    error_type = ErrorType.VALIDATION_ERROR

    def __init__(self, message: str, errors: list | None = None):
        super().__init__(message)
        self.errors = list(errors or [])


class StorageError(CodereelError):
    """The key-value store rejected a read or write."""


class BackupError(CodereelError):
    """A backup could not be created, restored or deleted."""


class OperationCancelledError(CodereelError):
    """A cancellation token was observed at a checkpoint."""

    def __init__(self, operation: str = "Operation", stage: str | None = None):
        self.operation = operation
        self.stage = stage
        message = f"{operation} operation was cancelled"
        if stage:
            message += f" (during {stage})"
        super().__init__(message)


class ManagerStateError(CodereelError):
    """The manager cannot accept the request in its current state."""


class ExportError(CodereelError):
    """An export pipeline failed."""
