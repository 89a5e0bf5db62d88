"""
Properties Writer - Serializes PropertiesDocument to .properties text.

Every line is terminated, comments included:
  Entry(key, value)  -> escape_key(escape(key)) + " = " + escape(value) + "\\n"
  Entry(key, None)   -> escape_key(escape(key)) + "\\n"
  Comment(text)      -> text + "\\n"
"""

from __future__ import annotations

import logging
import os
import tempfile
from typing import TYPE_CHECKING, Iterable

from proptext.spec import ENCODING, KEY_VALUE_SEPARATOR, LINE_SEPARATOR, escape, escape_key
from proptext.document import Comment, Entry

if TYPE_CHECKING:
    from proptext.document import Line, PropertiesDocument

logger = logging.getLogger(__name__)


def render_line(line: Line) -> str:
    """Render a single line, terminator included."""
    if isinstance(line, Entry):
        key = escape_key(escape(line.key))
        if line.value is None:
            return key + LINE_SEPARATOR
        return key + KEY_VALUE_SEPARATOR + escape(line.value) + LINE_SEPARATOR
    if isinstance(line, Comment):
        return line.text + LINE_SEPARATOR
    raise TypeError(f"Expected Comment or Entry, got {type(line).__name__}")


def stringify(document: PropertiesDocument | Iterable[Line]) -> str:
    """Render a document (or any iterable of lines) as .properties text."""
    return "".join(render_line(line) for line in document)


class PropertiesWriter:

    @staticmethod
    def serialize(doc: PropertiesDocument | Iterable[Line]) -> str:
        """Serialize to text. Pure - does not mutate the input document."""
        return stringify(doc)

    @staticmethod
    def write(doc: PropertiesDocument | Iterable[Line], path: str, mode: int = 0o644) -> int:
        """Write a document to a file atomically. Returns bytes written.

        Uses write-to-temp-then-rename so the target is never partially
        written. Pass mode=0o600 for files holding credentials.
        """
        data = stringify(doc).encode(ENCODING)
        dir_name = os.path.dirname(os.path.abspath(path)) or "."
        fd, tmp_path = tempfile.mkstemp(dir=dir_name, suffix=".properties.tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_path, mode)
            os.replace(tmp_path, path)
        except Exception:
            # Clean up temp file on failure
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise
        logger.debug("Wrote %d bytes to %s", len(data), path)
        return len(data)
