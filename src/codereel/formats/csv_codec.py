"""
CSV codec for snapshot sequences.

Columns are positional: id, code, duration, transitionTime. A header row is
recognized by keyword sniffing on the first non-blank row. Rows are read with
a real CSV reader, so quoted cells may span several lines.
"""

from __future__ import annotations

import csv
import io
import re
from typing import Any

from codereel.core.errors import ParsingError, SerializationError
from codereel.formats.base import SNAPSHOT_COLUMNS, CsvOptions, ParsedPayload, PayloadShape
from codereel.project.models import default_document_dict

_HEADER_KEYWORDS = ("id", "code", "duration")
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")

DEFAULT_DURATION = 1000
DEFAULT_TRANSITION_TIME = 500


def _leading_int(cell: str | None, default: int) -> int:
    """Integer prefix of a cell, or *default* when there is none."""
    if cell is None:
        return default
    match = _LEADING_INT.match(cell)
    if match is None:
        return default
    return int(match.group(1))


def _is_blank(row: list[str]) -> bool:
    return not any(cell.strip() for cell in row)


def looks_like_header(row: list[str]) -> bool:
    joined = ",".join(row).lower()
    return any(keyword in joined for keyword in _HEADER_KEYWORDS)


def parse_csv(content: str | bytes, options: CsvOptions | None = None) -> ParsedPayload:
    """Parse CSV rows into a snapshot sequence wrapped in a default document.

    Raises:
        ParsingError: On empty input or rows with fewer than 3 cells
    """
    options = options or CsvOptions()
    if isinstance(content, bytes):
        try:
            content = content.decode(options.encoding)
        except (LookupError, UnicodeDecodeError) as e:
            raise ParsingError("csv", f"Cannot decode content: {e}") from e

    if not content.strip():
        raise ParsingError("csv", "Empty CSV file")

    reader = csv.reader(io.StringIO(content, newline=""), delimiter=options.delimiter)
    rows: list[tuple[int, list[str]]] = []
    start_line = 1
    try:
        for row in reader:
            if not _is_blank(row):
                rows.append((start_line, row))
            start_line = reader.line_num + 1
    except csv.Error as e:
        raise ParsingError("csv", f"line {reader.line_num}: {e}") from e

    if not rows:
        raise ParsingError("csv", "Empty CSV file")

    if looks_like_header(rows[0][1]):
        rows = rows[1:]

    snapshots: list[dict[str, Any]] = []
    for index, (line, cells) in enumerate(rows):
        if len(cells) < 3:
            raise ParsingError("csv", f"Invalid CSV format at line {line}: insufficient columns")
        snapshots.append(
            {
                "id": cells[0] or f"snapshot-{index}",
                "code": cells[1] or "",
                "duration": _leading_int(cells[2], DEFAULT_DURATION),
                "transitionTime": _leading_int(
                    cells[3] if len(cells) > 3 else None, DEFAULT_TRANSITION_TIME
                ),
            }
        )

    return ParsedPayload(PayloadShape.SNAPSHOTS, {"document": default_document_dict(snapshots)})


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def serialize_csv(data: dict[str, Any], options: CsvOptions | None = None) -> str:
    """Render the document's snapshots as CSV.

    Raises:
        SerializationError: If there are no snapshots to write
    """
    options = options or CsvOptions()
    document = data.get("document") or {}
    snapshots = document.get("snapshots") or []
    if not snapshots:
        raise SerializationError("No snapshots to export as CSV")

    buffer = io.StringIO()
    writer = csv.writer(
        buffer,
        delimiter=options.delimiter,
        quoting=csv.QUOTE_ALL if options.quote_strings else csv.QUOTE_MINIMAL,
        lineterminator="\n",
    )
    if options.include_header:
        writer.writerow(SNAPSHOT_COLUMNS)
    for snapshot in snapshots:
        writer.writerow([_cell(snapshot.get(column)) for column in SNAPSHOT_COLUMNS])

    # No trailing newline after the last row
    return buffer.getvalue()[:-1]
