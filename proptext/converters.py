"""
Properties Converters - Convert to/from mappings, JSON and CSV.

Every format goes both ways:
  - to_dict / from_dict
  - to_json / from_json
  - to_csv / from_csv

The mapping view is lossy (comments, order of duplicates and the
bare-key/empty-value distinction are dropped); JSON keeps everything.
"""

from __future__ import annotations

import csv
import io
import json
from typing import Any, Mapping

from proptext.document import Comment, Entry, Line, PropertiesDocument
from proptext.spec import MAX_FILE_SIZE


# =============================================================================
# Mapping
# =============================================================================

def to_dict(doc: PropertiesDocument) -> dict[str, str]:
    """Flatten entries into a dict.

    Later entries overwrite earlier ones with the same key, the way a
    properties loader fills its table. Bare keys map to "".
    """
    result: dict[str, str] = {}
    for entry in doc.entries:
        result[entry.key] = entry.value if entry.value is not None else ""
    return result


def _to_text(value: Any) -> str | None:
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def from_dict(mapping: Mapping[str, Any]) -> PropertiesDocument:
    """Build a document from a mapping, one entry per item.

    Values that are not strings are converted: booleans to "true"/"false",
    None to a bare key, everything else with str().
    """
    return PropertiesDocument(
        lines=tuple(Entry(key=str(key), value=_to_text(value)) for key, value in mapping.items())
    )


# =============================================================================
# JSON
# =============================================================================

def to_json(doc: PropertiesDocument, indent: int = 2) -> str:
    """Convert a document to a JSON string, one object per line."""
    lines: list[dict[str, Any]] = []
    for line in doc:
        if isinstance(line, Entry):
            lines.append({"type": line.kind, "key": line.key, "value": line.value})
        else:
            lines.append({"type": line.kind, "text": line.text})
    data = {"format": "properties", "lines": lines}
    return json.dumps(data, indent=indent, ensure_ascii=False)


def _line_from_json(item: Any) -> Line | None:
    if not isinstance(item, dict):
        return None
    kind = item.get("type")
    if kind == Entry.kind:
        key = item.get("key")
        value = item.get("value")
        if isinstance(key, str) and (value is None or isinstance(value, str)):
            return Entry(key=key, value=value)
    elif kind == Comment.kind:
        text = item.get("text")
        if isinstance(text, str):
            return Comment(text=text)
    return None


def from_json(json_str: str) -> PropertiesDocument:
    """Create a document from a JSON string produced by to_json.

    Validates the top-level structure; individual malformed line objects
    are skipped.
    """
    data = json.loads(json_str)

    if not isinstance(data, dict):
        raise ValueError("Invalid properties JSON: expected a JSON object at top level")

    items = data.get("lines", [])
    if not isinstance(items, list):
        raise ValueError("Invalid properties JSON: 'lines' must be an array")

    lines = [line for line in (_line_from_json(item) for item in items) if line is not None]
    return PropertiesDocument(lines=tuple(lines))


# =============================================================================
# CSV
# =============================================================================

_CSV_BARE_KEY = "key"
_CSV_FORMULA_CHARS = ("=", "+", "-", "@", "\t", "\r", ";")


def _needs_csv_quote(value: str) -> bool:
    stripped = value.lstrip()
    if stripped and stripped[0] in _CSV_FORMULA_CHARS:
        return True
    return value.startswith("'")


def _escape_csv_formula(value: str) -> str:
    """Escape CSV formula injection characters (=, +, -, @, tab, CR, ;).

    Checks the first non-whitespace character so spreadsheet applications
    do not interpret cell content as a formula. Cells that already start
    with a quote are quoted again so _unescape_csv_formula can undo it.
    """
    if _needs_csv_quote(value):
        return "'" + value
    return value


def _unescape_csv_formula(value: str) -> str:
    """Inverse of _escape_csv_formula."""
    if value.startswith("'") and _needs_csv_quote(value[1:]):
        return value[1:]
    return value


def to_csv(doc: PropertiesDocument) -> str:
    """
    Convert a document to CSV.
    Row format: type, key, value
      entry   -> "entry", key, value
      bare    -> "key", key, ""
      comment -> "comment", "", text

    Security: Escapes formula injection characters to prevent spreadsheet attacks.
    from_csv removes the escape again, so the conversion is lossless.
    """
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(["type", "key", "value"])

    for line in doc:
        if isinstance(line, Entry):
            if line.value is None:
                writer.writerow([_CSV_BARE_KEY, _escape_csv_formula(line.key), ""])
            else:
                writer.writerow([
                    line.kind,
                    _escape_csv_formula(line.key),
                    _escape_csv_formula(line.value),
                ])
        else:
            writer.writerow([line.kind, "", _escape_csv_formula(line.text)])

    return buf.getvalue()


def from_csv(csv_str: str) -> PropertiesDocument:
    """Create a document from a CSV string.

    Rows with an unknown type or fewer than three columns are skipped.
    The csv field size limit is raised temporarily to MAX_FILE_SIZE so
    large values load.
    """
    old_limit = csv.field_size_limit()
    csv.field_size_limit(MAX_FILE_SIZE)
    try:
        reader = csv.reader(io.StringIO(csv_str))
        next(reader, None)  # Skip header row

        lines: list[Line] = []
        for row in reader:
            if len(row) < 3:
                continue
            row_type = row[0]
            key = _unescape_csv_formula(row[1])
            value = _unescape_csv_formula(row[2])

            if row_type == Entry.kind:
                lines.append(Entry(key=key, value=value))
            elif row_type == _CSV_BARE_KEY:
                lines.append(Entry(key=key, value=None))
            elif row_type == Comment.kind:
                lines.append(Comment(text=value))

        return PropertiesDocument(lines=tuple(lines))
    finally:
        csv.field_size_limit(old_limit)


# =============================================================================
# Auto-detect and convert
# =============================================================================

CONVERTERS_TO = {
    "json": to_json,
    "csv": to_csv,
}

CONVERTERS_FROM = {
    "json": from_json,
    "csv": from_csv,
}


def convert_to(doc: PropertiesDocument, fmt: str) -> str:
    """Convert a document to the specified format."""
    converter = CONVERTERS_TO.get(fmt.lower())
    if converter is None:
        raise ValueError(f"Unknown format: {fmt}. Supported: {list(CONVERTERS_TO.keys())}")
    return converter(doc)


def convert_from(data: str, fmt: str) -> PropertiesDocument:
    """Create a document from data in the specified format."""
    converter = CONVERTERS_FROM.get(fmt.lower())
    if converter is None:
        raise ValueError(f"Unknown format: {fmt}. Supported: {list(CONVERTERS_FROM.keys())}")
    return converter(data)
