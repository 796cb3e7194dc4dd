"""
File helpers for import/export: format detection, MIME types, filename
generation, validation and sanitizing, size formatting.
"""

from __future__ import annotations

import re
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from codereel.core.timestamps import utcnow
from codereel.formats.base import ImportExportFormat

_INVALID_CHARS = re.compile(r'[<>:"/\\|?*]')

RESERVED_NAMES = frozenset(
    ["CON", "PRN", "AUX", "NUL"]
    + [f"COM{i}" for i in range(1, 10)]
    + [f"LPT{i}" for i in range(1, 10)]
)

MAX_FILENAME_LENGTH = 255

_MIME_TYPES = {
    ImportExportFormat.JSON: "application/json",
    ImportExportFormat.CSV: "text/csv",
    ImportExportFormat.XML: "application/xml",
    ImportExportFormat.ZIP: "application/zip",
}

_CONTENT_TYPES = {
    "application/json": ImportExportFormat.JSON,
    "text/csv": ImportExportFormat.CSV,
    "application/xml": ImportExportFormat.XML,
    "text/xml": ImportExportFormat.XML,
    "application/zip": ImportExportFormat.ZIP,
}


@dataclass(frozen=True)
class FileSource:
    """An input blob: a name, its content and an optional declared type."""

    name: str
    content: bytes | str
    content_type: str | None = None

    @property
    def size(self) -> int:
        if isinstance(self.content, str):
            return len(self.content.encode("utf-8"))
        return len(self.content)

    @classmethod
    def from_path(cls, path: Path, content_type: str | None = None) -> FileSource:
        """Read a file from disk (raises OSError on failure)."""
        path = Path(path)
        return cls(name=path.name, content=path.read_bytes(), content_type=content_type)


def get_file_extension(filename: str) -> str:
    """Extension without the dot; dotfiles and bare names have none."""
    index = filename.rfind(".")
    if index <= 0:
        return ""
    return filename[index + 1 :]


def detect_format(source: FileSource) -> ImportExportFormat:
    """Detect the format from the extension, then the content type.

    Falls back to JSON when neither is conclusive.
    """
    extension = get_file_extension(source.name).lower()
    for fmt in ImportExportFormat:
        if fmt.extension == extension:
            return fmt
    if source.content_type in _CONTENT_TYPES:
        return _CONTENT_TYPES[source.content_type]
    return ImportExportFormat.JSON


def is_supported_import_file(source: FileSource) -> bool:
    extension = get_file_extension(source.name).lower()
    return extension in {fmt.extension for fmt in ImportExportFormat} or (
        source.content_type in _CONTENT_TYPES
    )


def get_mime_type(fmt: ImportExportFormat | str) -> str:
    try:
        return _MIME_TYPES[ImportExportFormat(fmt)]
    except ValueError:
        return "application/octet-stream"


def validate_file_size(source: FileSource, max_size: int) -> bool:
    return source.size <= max_size


def format_file_size(size: float) -> str:
    """Human-readable size, e.g. ``1.5 KB``."""
    units = ["B", "KB", "MB", "GB"]
    unit_index = 0
    while size >= 1024 and unit_index < len(units) - 1:
        size /= 1024
        unit_index += 1
    return f"{size:.1f} {units[unit_index]}"


def generate_timestamped_filename(prefix: str, extension: str, now: datetime | None = None) -> str:
    """``<prefix>-YYYY-MM-DDTHH-MM-SS.<extension>`` in UTC."""
    now = now or utcnow()
    return f"{prefix}-{now.strftime('%Y-%m-%dT%H-%M-%S')}.{extension}"


def validate_filename(filename: str) -> bool:
    """Check a filename for portability.

    Rejects the characters ``<>:"/\\|?*``, empty names, names longer than 255
    characters and reserved device names (compared against the part before
    the first dot, case-insensitively).
    """
    if _INVALID_CHARS.search(filename):
        return False
    if not filename or len(filename) > MAX_FILENAME_LENGTH:
        return False
    return filename.split(".")[0].upper() not in RESERVED_NAMES


def sanitize_filename(filename: str) -> str:
    """Make a filename valid by replacing or trimming offending parts."""
    sanitized = _INVALID_CHARS.sub("_", filename)
    sanitized = sanitized.strip().strip(".")
    if not sanitized:
        sanitized = "untitled"

    if len(sanitized) > MAX_FILENAME_LENGTH:
        extension = get_file_extension(sanitized)
        if extension:
            stem = sanitized[: sanitized.rfind(".")]
            sanitized = stem[: MAX_FILENAME_LENGTH - len(extension) - 1] + "." + extension
        else:
            sanitized = sanitized[:MAX_FILENAME_LENGTH]
    return sanitized


def compress_text(text: str) -> str:
    """Collapse runs of whitespace and drop blank lines."""
    lines = (re.sub(r"\s+", " ", line.strip()) for line in text.split("\n"))
    return "\n".join(line for line in lines if line)


def estimate_compression_ratio(original_size: int, compressed_size: int) -> float:
    if original_size == 0:
        return 0.0
    return (original_size - compressed_size) / original_size


def throttled_progress(
    callback: Callable[[float], None],
    throttle_ms: int = 100,
    clock: Callable[[], float] = time.monotonic,
) -> Callable[[float], None]:
    """Wrap a progress callback so it fires at most once per interval.

    A value of 100 is always delivered.
    """
    last_update: float | None = None

    def update(progress: float) -> None:
        nonlocal last_update
        now = clock() * 1000
        if last_update is None or now - last_update >= throttle_ms or progress == 100:
            callback(progress)
            last_update = now

    return update
