"""JSON codec: project envelope, bare document or bare snapshot array."""

from __future__ import annotations

import json
from typing import Any

from codereel.core.errors import ParsingError
from codereel.core.timestamps import isoformat, to_jsonable, utcnow
from codereel.formats.base import (
    PROJECT_EXPORT_FORMAT,
    PROJECT_KEYS,
    JsonOptions,
    ParsedPayload,
    PayloadShape,
)
from codereel.project.models import default_document_dict


def _as_text(content: str | bytes) -> str:
    if isinstance(content, bytes):
        try:
            return content.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise ParsingError("json", f"Content is not valid UTF-8: {e}") from e
    return content


def parse_json(content: str | bytes) -> ParsedPayload:
    """Parse JSON content and resolve its shape.

    Raises:
        ParsingError: On malformed JSON or a top-level scalar
    """
    try:
        data = json.loads(_as_text(content))
    except json.JSONDecodeError as e:
        raise ParsingError("json", str(e)) from e

    if isinstance(data, list):
        return ParsedPayload(
            PayloadShape.SNAPSHOTS,
            {"document": default_document_dict(data)},
        )

    if not isinstance(data, dict):
        raise ParsingError("json", f"Expected an object or array, got {type(data).__name__}")

    if data.get("exportFormat") == PROJECT_EXPORT_FORMAT or "metadata" in data or "document" in data:
        project = {key: data[key] for key in PROJECT_KEYS if data.get(key) is not None}
        return ParsedPayload(PayloadShape.PROJECT, project)

    if "language" in data and "snapshots" in data:
        return ParsedPayload(PayloadShape.DOCUMENT, {"document": data})

    # Unrecognized object: hand it on as-is and let validation report it
    return ParsedPayload(PayloadShape.PROJECT, data)


def _dump(value: Any, options: JsonOptions) -> str:
    if options.pretty_print:
        return json.dumps(value, indent=2, sort_keys=options.sort_keys, ensure_ascii=False)
    return json.dumps(value, separators=(",", ":"), sort_keys=options.sort_keys, ensure_ascii=False)


def serialize_json(data: dict[str, Any], options: JsonOptions | None = None) -> str:
    """Render a partial project as a JSON export envelope."""
    options = options or JsonOptions()
    envelope = dict(to_jsonable(data))
    envelope["exportedAt"] = isoformat(utcnow())
    envelope["exportFormat"] = PROJECT_EXPORT_FORMAT
    return _dump(envelope, options)
