"""
Properties Reader - Total parser for .properties text.

Two stages:
  1. Segmenting: raw text -> natural lines -> logical lines
     (continued lines joined, blank lines dropped)
  2. Grammar: each logical line -> Entry or Comment

Nothing here raises on malformed text. A logical line that is not an
entry is kept as a Comment, so any input yields a document. The only
errors come from the file layer: size limits (ValueError) and the
OSError/UnicodeDecodeError raised while reading, passed through as-is.
"""

from __future__ import annotations

import codecs
import logging
import re
from pathlib import Path

from proptext.spec import (
    COMMENT_PREFIXES, ENCODING, HEX_DIGITS, KEY_ESCAPABLE, KEY_TERMINATORS,
    MAX_FILE_SIZE, WHITESPACE_CHARS, WHITESPACE_ESCAPES,
    count_trailing_backslashes, interpret_escapes, is_blank, is_key_char,
    skip_whitespace,
)
from proptext.document import Comment, Entry, Line, PropertiesDocument

logger = logging.getLogger(__name__)

_NATURAL_LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")


# =============================================================================
# Line segmenting
# =============================================================================

def split_natural_lines(text: str) -> list[str]:
    """Split on \\n, \\r\\n and \\r."""
    return _NATURAL_LINE_BREAK_RE.split(text)


def _is_comment_start(line: str) -> bool:
    start = skip_whitespace(line)
    return start < len(line) and line[start] in COMMENT_PREFIXES


def _continues(line: str) -> bool:
    """An odd run of trailing backslashes means the last one is unescaped."""
    return count_trailing_backslashes(line) % 2 == 1


def split_logical_lines(text: str) -> list[str]:
    """Join continued natural lines into logical lines.

    A line ending in an unescaped backslash loses that backslash and is
    concatenated with the next natural line. Comment lines never continue.
    Blank logical lines are dropped.
    """
    logical: list[str] = []
    pending: list[str] | None = None

    for line in split_natural_lines(text):
        if pending is None:
            if is_blank(line):
                continue
            if _is_comment_start(line):
                logical.append(line)
                continue
            pending = []

        if _continues(line):
            pending.append(line[:-1])
            continue

        pending.append(line)
        joined = "".join(pending)
        pending = None
        if not is_blank(joined):
            logical.append(joined)

    # Continuation marker on the last line of input
    if pending is not None:
        joined = "".join(pending)
        if not is_blank(joined):
            logical.append(joined)

    return logical


# =============================================================================
# Line grammar
# =============================================================================

def _scan_key(line: str, pos: int) -> int:
    """Return the end of the key-character run starting at ``pos``."""
    n = len(line)
    i = pos
    while i < n:
        char = line[i]
        if char == "\\":
            if i + 1 >= n:
                break
            nxt = line[i + 1]
            if nxt == "u" and i + 6 <= n and all(h in HEX_DIGITS for h in line[i + 2:i + 6]):
                i += 6
                continue
            if nxt in KEY_ESCAPABLE or nxt.isalnum():
                i += 2
                continue
            break
        if not is_key_char(char):
            break
        i += 1
    return i


def _strip_trailing_whitespace(line: str, start: int) -> int:
    """Return the end of ``line[start:]`` with trailing whitespace removed.

    Whitespace right after an unescaped backslash is content, not padding.
    """
    width = len(WHITESPACE_ESCAPES[0])
    end = len(line)
    while end > start:
        if line[end - 1] in WHITESPACE_CHARS:
            if count_trailing_backslashes(line, end - 1) % 2 == 1:
                break
            end -= 1
        elif end - start >= width and line[end - width:end] in WHITESPACE_ESCAPES:
            if count_trailing_backslashes(line, end - width) % 2 == 1:
                break
            end -= width
        else:
            break
    return end


def parse_line(line: str, raw_comments: bool = False) -> Line:
    """Classify one logical line.

    Tried in order:
      1. key, terminator (':' or '='), value   -> Entry(key, value)
      2. key followed only by whitespace       -> Entry(key, None)
      3. anything else                         -> Comment(line)
    """
    start = skip_whitespace(line)
    key_end = _scan_key(line, start)

    if key_end > start:
        key = interpret_escapes(line[start:key_end])
        after_key = skip_whitespace(line, key_end)
        if after_key == len(line):
            return Entry(key=key, value=None)
        if line[after_key] in KEY_TERMINATORS:
            value_start = skip_whitespace(line, after_key + 1)
            value_end = _strip_trailing_whitespace(line, value_start)
            return Entry(key=key, value=interpret_escapes(line[value_start:value_end]))

    return Comment(text=line if raw_comments else interpret_escapes(line))


def parse(text: str, raw_comments: bool = False) -> PropertiesDocument:
    """Parse .properties text into a document. Never raises on bad input."""
    lines: list[Line] = []
    for number, logical in enumerate(split_logical_lines(text), start=1):
        line = parse_line(logical, raw_comments=raw_comments)
        if isinstance(line, Comment) and not _is_comment_start(logical):
            logger.debug("Logical line %d is not an entry, kept as passthrough: %r", number, logical)
        lines.append(line)

    doc = PropertiesDocument(lines=tuple(lines))
    logger.debug(
        "Parsed %d logical lines (%d entries, %d comments)",
        len(lines), len(doc.entries), len(doc.comments),
    )
    return doc


# =============================================================================
# File reading
# =============================================================================

class PropertiesReader:
    """
    .properties file reader.

    Usage:
        doc = PropertiesReader.read("app.properties")
        doc = PropertiesReader.parse("key = value")
        doc = PropertiesReader.parse_bytes(b"key = value")
    """

    @staticmethod
    def parse(text: str, raw_comments: bool = False) -> PropertiesDocument:
        """Parse text into a PropertiesDocument."""
        return parse(text, raw_comments=raw_comments)

    @classmethod
    def parse_bytes(
        cls,
        data: bytes,
        max_size: int = MAX_FILE_SIZE,
        raw_comments: bool = False,
    ) -> PropertiesDocument:
        """Decode UTF-8 bytes and parse them."""
        if len(data) > max_size:
            raise ValueError(
                f"Input size {len(data)} exceeds maximum {max_size} bytes. "
                f"Pass max_size= to override."
            )
        if data.startswith(codecs.BOM_UTF8):
            data = data[len(codecs.BOM_UTF8):]
        return parse(data.decode(ENCODING), raw_comments=raw_comments)

    @classmethod
    def read(
        cls,
        path: str | Path,
        max_size: int = MAX_FILE_SIZE,
        raw_comments: bool = False,
    ) -> PropertiesDocument:
        """Read and parse a whole .properties file."""
        path = Path(path)
        file_size = path.stat().st_size
        if file_size > max_size:
            raise ValueError(
                f"File size {file_size} exceeds maximum {max_size} bytes. "
                f"Pass max_size= to override."
            )
        with open(path, "rb") as f:
            data = f.read()
        logger.debug("Read %d bytes from %s", len(data), path)
        return cls.parse_bytes(data, max_size=max_size, raw_comments=raw_comments)
