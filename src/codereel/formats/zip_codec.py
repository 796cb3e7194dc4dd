"""
ZIP archive codec.

An exported archive holds the project in several formats plus a manifest::

    project.json    JSON export envelope
    snapshots.csv   snapshot table (only when the document has snapshots)
    project.xml     XML rendering
    metadata.json   manifest: exportedAt, exportFormat, contents
"""

from __future__ import annotations

import io
import json
import logging
import zipfile
from typing import Any

from codereel.core.errors import ArchiveError, ParsingError
from codereel.core.timestamps import isoformat, utcnow
from codereel.formats.base import ARCHIVE_EXPORT_FORMAT, ParsedPayload, SerializeOptions
from codereel.formats.csv_codec import parse_csv, serialize_csv
from codereel.formats.json_codec import parse_json, serialize_json
from codereel.formats.xml_codec import parse_xml, serialize_xml

logger = logging.getLogger(__name__)

PROJECT_JSON = "project.json"
PROJECT_XML = "project.xml"
SNAPSHOTS_CSV = "snapshots.csv"
MANIFEST = "metadata.json"


def _choose_member(names: list[str]) -> str:
    """Pick the member to import, in order of preference."""
    files = [name for name in names if not name.endswith("/")]
    if PROJECT_JSON in files:
        return PROJECT_JSON

    for name in files:
        base = name.rsplit("/", 1)[-1]
        if base.startswith("project.") and base.rsplit(".", 1)[-1].lower() in ("json", "xml"):
            return name

    for suffix in (".json", ".xml", ".csv"):
        for name in files:
            if name.rsplit("/", 1)[-1] == MANIFEST:
                continue
            if name.lower().endswith(suffix):
                return name

    raise ArchiveError()


def _parse_member(name: str, content: bytes) -> ParsedPayload:
    lower = name.lower()
    if lower.endswith(".json"):
        return parse_json(content)
    if lower.endswith(".xml"):
        return parse_xml(content)
    return parse_csv(content)


def parse_zip(content: bytes) -> ParsedPayload:
    """Parse the preferred member of a ZIP archive.

    Raises:
        ArchiveError: If no member has a supported format
        ParsingError: If the archive or the chosen member is malformed
    """
    if isinstance(content, str):
        raise ParsingError("zip", "Archive content must be bytes")
    try:
        with zipfile.ZipFile(io.BytesIO(content)) as archive:
            member = _choose_member(archive.namelist())
            logger.debug("Reading %s from archive", member)
            data = archive.read(member)
    except zipfile.BadZipFile as e:
        raise ParsingError("zip", str(e)) from e

    try:
        payload = _parse_member(member, data)
    except ArchiveError:
        raise
    except ParsingError as e:
        raise ParsingError("zip", f"{member}: {e}") from e
    payload.source_member = member
    return payload


def serialize_zip(data: dict[str, Any], options: SerializeOptions | None = None) -> bytes:
    """Bundle JSON, CSV (when there are snapshots) and XML renderings."""
    options = options or SerializeOptions()
    members: dict[str, str] = {PROJECT_JSON: serialize_json(data, options.json)}

    document = data.get("document") or {}
    if document.get("snapshots"):
        members[SNAPSHOTS_CSV] = serialize_csv(data, options.csv)

    members[PROJECT_XML] = serialize_xml(data, options.xml)

    manifest = {
        "exportedAt": isoformat(utcnow()),
        "exportFormat": ARCHIVE_EXPORT_FORMAT,
        "contents": list(members),
    }
    members[MANIFEST] = json.dumps(manifest, indent=2)

    buffer = io.BytesIO()
    compression = zipfile.ZIP_DEFLATED if options.compression else zipfile.ZIP_STORED
    level = 6 if options.compression else None
    with zipfile.ZipFile(buffer, "w", compression=compression, compresslevel=level) as archive:
        for name, text in members.items():
            archive.writestr(name, text.encode("utf-8"))
    return buffer.getvalue()
