"""Format codecs (JSON, CSV, XML, ZIP) and file helpers."""

from codereel.formats.base import (
    ARCHIVE_EXPORT_FORMAT,
    PROJECT_EXPORT_FORMAT,
    CsvOptions,
    ImportExportFormat,
    JsonOptions,
    ParsedPayload,
    PayloadShape,
    SerializeOptions,
    XmlOptions,
)
from codereel.formats.codec import parse, serialize
from codereel.formats.files import FileSource, detect_format, get_mime_type

__all__ = [
    "ARCHIVE_EXPORT_FORMAT",
    "PROJECT_EXPORT_FORMAT",
    "CsvOptions",
    "ImportExportFormat",
    "JsonOptions",
    "ParsedPayload",
    "PayloadShape",
    "SerializeOptions",
    "XmlOptions",
    "parse",
    "serialize",
    "FileSource",
    "detect_format",
    "get_mime_type",
]
