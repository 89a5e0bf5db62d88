"""
proptext - Java-style .properties codec.

Parses .properties text into an ordered, duplicate-preserving document of
entries and comment lines, and writes it back.
"""

__version__ = "0.1.0"

from proptext.spec import escape, escape_key, interpret_escapes
from proptext.document import Comment, Entry, Line, PropertiesDocument
from proptext.reader import PropertiesReader, parse
from proptext.writer import PropertiesWriter, stringify
