"""
Properties Document - In-memory representation of a .properties file.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, ClassVar, Iterable, Iterator, Union, overload


@dataclass(frozen=True)
class Comment:
    """A passthrough line that did not match the entry grammar."""
    kind: ClassVar[str] = "comment"

    text: str


@dataclass(frozen=True)
class Entry:
    """A key with an optional value.

    ``value`` is None for a bare key (no terminator on the line) and ""
    for a key whose terminator is followed only by whitespace.
    """
    kind: ClassVar[str] = "entry"

    key: str
    value: str | None = None


Line = Union[Comment, Entry]


@dataclass(frozen=True)
class PropertiesDocument:
    """
    Ordered, duplicate-preserving sequence of comment and entry lines.

    Documents are immutable values: ``append``, ``extend`` and ``filter``
    return new documents and never touch the original.

    Usage:
        doc = PropertiesDocument.from_lines([Comment("# db"), Entry("host", "localhost")])
        doc = doc.append(Entry("port", "5432"))
        doc.get_entry("host").value   # "localhost"
        doc.write("db.properties")
    """

    lines: tuple[Line, ...] = field(default_factory=tuple)

    @classmethod
    def from_lines(cls, lines: Iterable[Line]) -> PropertiesDocument:
        """Build a document from any iterable of lines, checking their types."""
        items = tuple(lines)
        for line in items:
            if not isinstance(line, (Comment, Entry)):
                raise TypeError(f"Expected Comment or Entry, got {type(line).__name__}")
        return cls(lines=items)

    def __iter__(self) -> Iterator[Line]:
        return iter(self.lines)

    def __len__(self) -> int:
        return len(self.lines)

    @overload
    def __getitem__(self, index: int) -> Line: ...

    @overload
    def __getitem__(self, index: slice) -> PropertiesDocument: ...

    def __getitem__(self, index):
        if isinstance(index, slice):
            return PropertiesDocument(lines=self.lines[index])
        return self.lines[index]

    @property
    def entries(self) -> list[Entry]:
        return [line for line in self.lines if isinstance(line, Entry)]

    @property
    def comments(self) -> list[Comment]:
        return [line for line in self.lines if isinstance(line, Comment)]

    def keys(self) -> list[str]:
        """All entry keys in document order, duplicates included."""
        return [entry.key for entry in self.entries]

    def get_entry(self, key: str) -> Entry | None:
        """Get the first entry with the given key. O(n) scan."""
        for line in self.lines:
            if isinstance(line, Entry) and line.key == key:
                return line
        return None

    def get_entries(self, key: str) -> list[Entry]:
        """Get every entry with the given key, in document order."""
        return [entry for entry in self.entries if entry.key == key]

    def append(self, line: Line) -> PropertiesDocument:
        return self.extend((line,))

    def extend(self, lines: Iterable[Line]) -> PropertiesDocument:
        return PropertiesDocument.from_lines(self.lines + tuple(lines))

    def filter(self, predicate: Callable[[Line], bool]) -> PropertiesDocument:
        return PropertiesDocument(lines=tuple(line for line in self.lines if predicate(line)))

    def to_text(self) -> str:
        """Serialize this document to .properties text."""
        from proptext.writer import PropertiesWriter
        return PropertiesWriter.serialize(self)

    def write(self, path: str, mode: int = 0o644) -> int:
        """Write this document to a .properties file. Returns bytes written."""
        from proptext.writer import PropertiesWriter
        return PropertiesWriter.write(self, path, mode=mode)

    def __repr__(self) -> str:
        return (
            f"PropertiesDocument(entries={len(self.entries)}, "
            f"comments={len(self.comments)}, keys={self.keys()[:5]})"
        )
