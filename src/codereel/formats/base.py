"""
Shared types for the format codecs.

Parsing resolves the top-level shape of the incoming payload once, into a
``PayloadShape`` discriminant, so downstream stages never have to sniff the
structure again.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

PROJECT_EXPORT_FORMAT = "codereel-project-v1"
ARCHIVE_EXPORT_FORMAT = "codereel-project-archive-v1"

SNAPSHOT_COLUMNS = ("id", "code", "duration", "transitionTime")

# Keys carried by a full project envelope
PROJECT_KEYS = (
    "metadata",
    "document",
    "themes",
    "presets",
    "exportSettings",
    "versionHistory",
    "backupInfo",
)


class ImportExportFormat(Enum):
    """Serialized formats understood by the engine."""

    JSON = "json"
    CSV = "csv"
    XML = "xml"
    ZIP = "zip"

    @property
    def extension(self) -> str:
        return self.value


class PayloadShape(Enum):
    """Top-level shape of a parsed payload."""

    PROJECT = "project"
    DOCUMENT = "document"
    SNAPSHOTS = "snapshots"


@dataclass
class ParsedPayload:
    """Result of parsing: the resolved shape plus a partial wire-form project.

    ``data`` always uses the project layout (``metadata``/``document``/...);
    for the document and snapshots shapes only ``document`` is present.
    """

    shape: PayloadShape
    data: dict[str, Any]
    source_member: str | None = None

    @property
    def document(self) -> dict[str, Any] | None:
        document = self.data.get("document")
        return document if isinstance(document, dict) else None

    @property
    def metadata(self) -> dict[str, Any] | None:
        metadata = self.data.get("metadata")
        return metadata if isinstance(metadata, dict) else None

    @property
    def snapshots(self) -> list[Any]:
        document = self.document
        if document is None:
            return []
        snapshots = document.get("snapshots")
        return snapshots if isinstance(snapshots, list) else []


@dataclass
class CsvOptions:
    delimiter: str = ","
    include_header: bool = True
    quote_strings: bool = True
    encoding: str = "utf-8"


@dataclass
class XmlOptions:
    root_element: str = "project"
    pretty_print: bool = True


@dataclass
class JsonOptions:
    pretty_print: bool = True
    sort_keys: bool = False


@dataclass
class SerializeOptions:
    """Format-specific knobs for serialization."""

    csv: CsvOptions = field(default_factory=CsvOptions)
    xml: XmlOptions = field(default_factory=XmlOptions)
    json: JsonOptions = field(default_factory=JsonOptions)
    compression: bool = True
