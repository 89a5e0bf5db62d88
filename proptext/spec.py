"""
Properties Format Specification
===============================

Layout:
    # comment                    <- Comment line ('#' or '!' first non-blank)
    ! comment
    key = value                  <- Entry, terminator '=' or ':'
    key:value
    key                          <- Bare key (no terminator, no value)
    long.key = first part \\     <- Trailing unescaped '\\' continues the
               second part          logical line onto the next natural line

Lines:
    - Natural lines end at \\n, \\r\\n or \\r
    - Blank natural lines are dropped
    - A natural line ending in an odd number of backslashes is continued;
      the final backslash is removed and the next line is appended as-is
    - Comment lines are never continued

Keys:
    - Plain key characters are letters and digits (any script, so
      Latin-1 keys read back unescaped) plus . _ -
    - Deliberately wider than the ASCII-only [a-zA-Z0-9_.-] key set

Whitespace:
    - Space, form feed and tab
    - The literal texts \\u0009, \\u0020 and \\u000C also count as whitespace

Escapes (decoding):
    - \\uXXXX                 -> UTF-16 code unit XXXX (surrogate pairs joined)
    - \\t \\n \\r \\f             -> tab, line feed, carriage return, form feed
    - \\<any other char>      -> the char itself ("needless" escape)
    - \\u without 4 hex digits is kept as literal text

Escapes (encoding):
    - CR -> \\r, LF -> \\n, backslash -> \\\\
    - Code points below 256 are written literally
    - Everything else -> one \\uXXXX per UTF-16 code unit (lowercase, 4 digits)
    - Keys additionally escape ':' -> \\: and '=' -> \\=

Parsing is total: a line that is not an entry is kept as a comment line.
"""

from __future__ import annotations

import re

# Line structure
LINE_SEPARATOR = "\n"
NATURAL_LINE_BREAKS = ("\r\n", "\r", "\n")
COMMENT_PREFIXES = frozenset("#!")
KEY_TERMINATORS = frozenset(":=")
CONTINUATION = "\\"

# Serializer layout
KEY_VALUE_SEPARATOR = " = "

# Whitespace recognized around keys, terminators and values
WHITESPACE_CHARS = frozenset(" \f\t")
WHITESPACE_ESCAPES = ("\\u0009", "\\u0020", "\\u000C", "\\u000c")

# Key character classes
KEY_PUNCTUATION = frozenset("._-")
KEY_ESCAPABLE = frozenset("\\=:")
HEX_DIGITS = frozenset("0123456789abcdefABCDEF")

# Control-character escapes
ESCAPE_DECODE = {
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
}
ESCAPE_ENCODE = {
    "\r": "\\r",
    "\n": "\\n",
    "\\": "\\\\",
}

# Highest code point written literally by the encoder
MAX_LITERAL_CODE_POINT = 0xFF

# File handling
ENCODING = "utf-8"
EXTENSION = ".properties"
MAX_FILE_SIZE = 100 * 1024 * 1024  # 100MB max file size for reader

_ESCAPE_RE = re.compile(r"\\(u[0-9a-fA-F]{4}|[^u])")
_SURROGATE_PAIR_RE = re.compile(
    f"[{chr(0xD800)}-{chr(0xDBFF)}][{chr(0xDC00)}-{chr(0xDFFF)}]"
)


def _decode_escape(match: re.Match[str]) -> str:
    token = match.group(1)
    if token[0] == "u":
        return chr(int(token[1:], 16))
    return ESCAPE_DECODE.get(token, token)


def _combine_pair(match: re.Match[str]) -> str:
    high, low = match.group(0)
    return chr(0x10000 + ((ord(high) - 0xD800) << 10) + (ord(low) - 0xDC00))


def interpret_escapes(s: str) -> str:
    """Decode backslash escapes in a key, value or comment.

    Never fails: a backslash that does not start a recognized escape
    (a trailing backslash, or \\u without four hex digits) is kept as-is.
    """
    if "\\" not in s:
        return s
    decoded = _ESCAPE_RE.sub(_decode_escape, s)
    # \uXXXX yields UTF-16 code units; pair them back into code points
    return _SURROGATE_PAIR_RE.sub(_combine_pair, decoded)


def _utf16_units(char: str) -> list[int]:
    code = ord(char)
    if code <= 0xFFFF:
        return [code]
    code -= 0x10000
    return [0xD800 + (code >> 10), 0xDC00 + (code & 0x3FF)]


def escape(s: str) -> str:
    """Escape a string for output, one code point at a time.

    Astral characters become a surrogate pair of \\uXXXX escapes, e.g.
    U+1F601 -> \\ud83d\\ude01.

    interpret_escapes inverts this for text without surrogate code points.
    Two lone surrogates in a row decode back as a single pair.
    """
    parts = []
    for char in s:
        if char in ESCAPE_ENCODE:
            parts.append(ESCAPE_ENCODE[char])
        elif ord(char) <= MAX_LITERAL_CODE_POINT:
            parts.append(char)
        else:
            parts.extend(f"\\u{unit:04x}" for unit in _utf16_units(char))
    return "".join(parts)


def escape_key(key: str) -> str:
    """Escape the key terminators so they read back as key content."""
    return key.replace(":", "\\:").replace("=", "\\=")


def is_key_char(char: str) -> bool:
    """True for a plain (unescaped) key character."""
    return char.isalnum() or char in KEY_PUNCTUATION


def match_whitespace(line: str, pos: int) -> int:
    """Return the length of the whitespace token at ``pos`` (0 if none)."""
    if pos >= len(line):
        return 0
    if line[pos] in WHITESPACE_CHARS:
        return 1
    if line.startswith(WHITESPACE_ESCAPES, pos):
        return len(WHITESPACE_ESCAPES[0])
    return 0


def skip_whitespace(line: str, pos: int = 0) -> int:
    """Advance ``pos`` past any run of whitespace tokens."""
    while True:
        width = match_whitespace(line, pos)
        if not width:
            return pos
        pos += width


def is_blank(line: str) -> bool:
    """True if the line holds nothing but whitespace tokens."""
    return skip_whitespace(line) == len(line)


def count_trailing_backslashes(line: str, end: int | None = None) -> int:
    """Count consecutive backslashes immediately before ``end``."""
    i = len(line) if end is None else end
    count = 0
    while i > 0 and line[i - 1] == "\\":
        count += 1
        i -= 1
    return count
