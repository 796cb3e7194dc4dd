"""Format dispatch: one parse and one serialize entry point for all codecs."""

from __future__ import annotations

from typing import Any

from codereel.formats.base import CsvOptions, ImportExportFormat, ParsedPayload, SerializeOptions
from codereel.formats.csv_codec import parse_csv, serialize_csv
from codereel.formats.json_codec import parse_json, serialize_json
from codereel.formats.xml_codec import parse_xml, serialize_xml
from codereel.formats.zip_codec import parse_zip, serialize_zip


def parse(
    content: str | bytes,
    fmt: ImportExportFormat,
    csv_options: CsvOptions | None = None,
) -> ParsedPayload:
    """Parse raw content of the given format.

    Raises:
        ParsingError: On malformed input (the message names the format)
        ArchiveError: If an archive has no supported member
    """
    if fmt == ImportExportFormat.JSON:
        return parse_json(content)
    if fmt == ImportExportFormat.CSV:
        return parse_csv(content, csv_options)
    if fmt == ImportExportFormat.XML:
        return parse_xml(content)
    if fmt == ImportExportFormat.ZIP:
        if isinstance(content, str):
            content = content.encode("utf-8")
        return parse_zip(content)
    raise ValueError(f"Unsupported import format: {fmt}")


def serialize(
    data: dict[str, Any],
    fmt: ImportExportFormat,
    options: SerializeOptions | None = None,
) -> str | bytes:
    """Serialize a partial wire-form project.

    Text formats return ``str``; ZIP returns ``bytes``.

    Raises:
        SerializationError: If the data cannot be expressed in the format
    """
    options = options or SerializeOptions()
    if fmt == ImportExportFormat.JSON:
        return serialize_json(data, options.json)
    if fmt == ImportExportFormat.CSV:
        return serialize_csv(data, options.csv)
    if fmt == ImportExportFormat.XML:
        return serialize_xml(data, options.xml)
    if fmt == ImportExportFormat.ZIP:
        return serialize_zip(data, options)
    raise ValueError(f"Unsupported export format: {fmt}")
