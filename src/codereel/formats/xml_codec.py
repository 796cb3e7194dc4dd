"""
XML codec.

Layout::

    <project>
      <metadata><id>...</id>...</metadata>
      <document>
        <language>...</language> ...
        <snapshots>
          <snapshot><id>..</id><code><![CDATA[...]]></code>...</snapshot>
        </snapshots>
      </document>
    </project>

On the way in, attributes become keys, repeated child tags become lists and
leaf text is coerced (integers, decimals, booleans, embedded JSON). Code
bodies travel in CDATA sections and are kept verbatim.
"""

from __future__ import annotations

import json
import re
from datetime import datetime
from typing import Any
from xml.etree import ElementTree as ET

from codereel.core.errors import ParsingError
from codereel.core.timestamps import isoformat, to_jsonable
from codereel.formats.base import ParsedPayload, PayloadShape, XmlOptions

_INT_RE = re.compile(r"^\d+$")
_FLOAT_RE = re.compile(r"^\d+\.\d+$")

# Top-level sections carried as inline JSON text
_JSON_SECTIONS = ("themes", "presets", "exportSettings", "versionHistory")

# Elements that only ever hold child elements
_CONTAINERS = ("snapshots", "snapshot", "metadata", "document")


def coerce_text(value: str) -> Any:
    """Coerce leaf text to int, float, bool or embedded JSON where it fits."""
    if _INT_RE.match(value):
        return int(value)
    if _FLOAT_RE.match(value):
        return float(value)
    if value == "true":
        return True
    if value == "false":
        return False
    if (value.startswith("{") and value.endswith("}")) or (
        value.startswith("[") and value.endswith("]")
    ):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            pass
    return value


class _RepeatedList(list):
    """List built from repeated sibling tags (as opposed to a JSON array)."""


def _add_value(target: dict[str, Any], key: str, value: Any) -> None:
    if key not in target:
        target[key] = value
        return
    existing = target[key]
    if isinstance(existing, _RepeatedList):
        existing.append(value)
    else:
        target[key] = _RepeatedList([existing, value])


def element_to_dict(element: ET.Element) -> dict[str, Any]:
    """Convert an element's attributes and children to a dict."""
    result: dict[str, Any] = dict(element.attrib)
    for child in element:
        tag = child.tag
        if len(child):
            _add_value(result, tag, element_to_dict(child))
        elif tag == "code":
            _add_value(result, tag, child.text or "")
        else:
            text = (child.text or "").strip()
            if not text:
                # An empty string field survives; an empty container does not
                if tag not in _CONTAINERS:
                    _add_value(result, tag, "")
                continue
            _add_value(result, tag, coerce_text(text))
    return {key: list(value) if isinstance(value, _RepeatedList) else value for key, value in result.items()}


def _find(root: ET.Element, tag: str) -> ET.Element | None:
    if root.tag == tag:
        return root
    return root.find(f".//{tag}")


def parse_xml(content: str | bytes) -> ParsedPayload:
    """Parse XML into a partial project.

    Raises:
        ParsingError: On malformed XML
    """
    try:
        root = ET.fromstring(content)
    except ET.ParseError as e:
        raise ParsingError("xml", str(e)) from e

    data: dict[str, Any] = {}

    metadata_el = _find(root, "metadata")
    if metadata_el is not None:
        data["metadata"] = element_to_dict(metadata_el)

    document_el = _find(root, "document")
    if document_el is not None:
        document = element_to_dict(document_el)
        snapshots_el = document_el.find("snapshots")
        if snapshots_el is not None:
            document["snapshots"] = [element_to_dict(el) for el in snapshots_el.findall("snapshot")]
        data["document"] = document

    for section in _JSON_SECTIONS:
        section_el = root.find(section)
        if section_el is not None and (section_el.text or "").strip():
            data[section] = coerce_text(section_el.text.strip())

    if metadata_el is None and document_el is not None:
        return ParsedPayload(PayloadShape.DOCUMENT, data)
    return ParsedPayload(PayloadShape.PROJECT, data)


def xml_escape(value: str) -> str:
    """Escape the five predefined XML entities."""
    return (
        value.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&apos;")
    )


def cdata(value: str) -> str:
    # A literal "]]>" has to be split across two sections
    return "<![CDATA[" + value.replace("]]>", "]]]]><![CDATA[>") + "]]>"


def _text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return isoformat(value)
    if isinstance(value, (dict, list)):
        return xml_escape(json.dumps(value, ensure_ascii=False))
    return xml_escape(str(value))


def _field_lines(record: dict[str, Any], indent: str, skip: tuple[str, ...] = ()) -> list[str]:
    lines = []
    for key, value in record.items():
        if key in skip or value is None:
            continue
        if key == "code":
            lines.append(f"{indent}<{key}>{cdata(str(value))}</{key}>")
        else:
            lines.append(f"{indent}<{key}>{_text(value)}</{key}>")
    return lines


def serialize_xml(data: dict[str, Any], options: XmlOptions | None = None) -> str:
    """Render a partial project as XML."""
    options = options or XmlOptions()
    data = to_jsonable(data)
    root = options.root_element
    step = "  " if options.pretty_print else ""
    lines = ['<?xml version="1.0" encoding="UTF-8"?>', f"<{root}>"]

    metadata = data.get("metadata")
    if metadata:
        lines.append(f"{step}<metadata>")
        lines.extend(_field_lines(metadata, step * 2))
        lines.append(f"{step}</metadata>")

    document = data.get("document")
    if document:
        lines.append(f"{step}<document>")
        lines.extend(_field_lines(document, step * 2, skip=("snapshots",)))
        snapshots = document.get("snapshots")
        if snapshots is not None:
            lines.append(f"{step * 2}<snapshots>")
            for snapshot in snapshots:
                lines.append(f"{step * 3}<snapshot>")
                lines.extend(_field_lines(snapshot, step * 4))
                lines.append(f"{step * 3}</snapshot>")
            lines.append(f"{step * 2}</snapshots>")
        lines.append(f"{step}</document>")

    for section in _JSON_SECTIONS:
        if data.get(section) is not None:
            lines.append(f"{step}<{section}>{_text(data[section])}</{section}>")

    lines.append(f"</{root}>")
    return ("\n" if options.pretty_print else "").join(lines)
