"""
Functional Tests - Test segmenter, grammar, reader, writer and converters working together.
"""

import json
import os
import tempfile
from pathlib import Path

import pytest

from proptext.document import Comment, Entry, PropertiesDocument
from proptext.reader import (
    PropertiesReader, parse, parse_line, split_logical_lines, split_natural_lines,
)
from proptext.writer import PropertiesWriter, render_line, stringify
from proptext import converters


# =============================================================================
# Line segmenter
# =============================================================================

class TestSegmenter:

    def test_natural_line_breaks(self):
        assert split_natural_lines("a\nb\r\nc\rd") == ["a", "b", "c", "d"]

    def test_empty_input(self):
        assert split_logical_lines("") == []

    def test_blank_lines_dropped(self):
        assert split_logical_lines("a=1\n\n   \n\t\f\nb=2\n") == ["a=1", "b=2"]

    def test_escaped_whitespace_line_is_blank(self):
        assert split_logical_lines("\\u0020\\u0009\na=1") == ["a=1"]

    def test_continuation_joins_lines(self):
        assert split_logical_lines("foo=bar\\\nbaz") == ["foo=barbaz"]

    def test_continuation_across_crlf(self):
        assert split_logical_lines("foo=bar\\\r\nbaz\r\nx=y") == ["foo=barbaz", "x=y"]

    def test_continuation_keeps_leading_whitespace(self):
        assert split_logical_lines("foo=a\\\n  b") == ["foo=a  b"]

    def test_multiple_continuations(self):
        assert split_logical_lines("k=1\\\n2\\\n3\nz") == ["k=123", "z"]

    def test_even_backslashes_do_not_continue(self):
        assert split_logical_lines("path=C:\\\\\nnext=1") == ["path=C:\\\\", "next=1"]

    def test_odd_backslashes_continue(self):
        assert split_logical_lines("v=a\\\\\\\nb") == ["v=a\\\\b"]

    def test_trailing_continuation_at_end_of_input(self):
        assert split_logical_lines("foo=bar\\") == ["foo=bar"]

    def test_lone_continuation_dropped(self):
        assert split_logical_lines("\\\n") == []

    def test_comment_lines_never_continue(self):
        assert split_logical_lines("# note \\\nfoo=bar") == ["# note \\", "foo=bar"]
        assert split_logical_lines("  ! note \\\nfoo=bar") == ["  ! note \\", "foo=bar"]

    def test_continuation_line_starting_with_hash_is_content(self):
        assert split_logical_lines("foo=a\\\n#b") == ["foo=a#b"]

    def test_blank_line_ends_continuation(self):
        assert split_logical_lines("foo=a\\\n\nb=2") == ["foo=a", "b=2"]


# =============================================================================
# Line grammar
# =============================================================================

class TestLineGrammar:

    def test_key_only(self):
        assert parse_line("foo") == Entry("foo", None)

    def test_key_with_terminator(self):
        assert parse_line("foo=") == Entry("foo", "")
        assert parse_line("foo :  ") == Entry("foo", "")

    def test_key_and_value(self):
        assert parse_line("foo=bar") == Entry("foo", "bar")
        assert parse_line("foo:bar") == Entry("foo", "bar")

    def test_whitespace_around_key_and_value(self):
        assert parse_line("\t\f foo \t= bar \f") == Entry("foo", "bar")

    def test_escaped_whitespace_trimmed(self):
        assert parse_line("\\u0020foo=\\u0009bar\\u0020") == Entry("foo", "bar")

    def test_value_keeps_inner_whitespace(self):
        assert parse_line("greeting = hello   world") == Entry("greeting", "hello   world")

    def test_escaped_trailing_space_is_content(self):
        assert parse_line("pad = x\\ ") == Entry("pad", "x ")

    def test_first_terminator_wins(self):
        assert parse_line("a=b=c") == Entry("a", "b=c")
        assert parse_line("url: http://host:80") == Entry("url", "http://host:80")

    def test_escaped_backslash_key(self):
        assert parse_line("foo\\\\=bar") == Entry("foo\\", "bar")

    def test_escaped_terminators_in_key(self):
        assert parse_line("foo\\=bar\\:baz=v") == Entry("foo=bar:baz", "v")

    def test_escaped_line_breaks_in_key(self):
        assert parse_line("foo\\rbar\\n") == Entry("foo\rbar\n", None)

    def test_unicode_escaped_key(self):
        assert parse_line("\\ud83d\\ude01") == Entry("😁", None)

    def test_needless_escapes(self):
        assert parse_line("\\b=\\z") == Entry("b", "z")

    def test_dotted_dashed_underscored_keys(self):
        assert parse_line("a.b.c=1").key == "a.b.c"
        assert parse_line("a-b-c=1").key == "a-b-c"
        assert parse_line("a_b_c=1").key == "a_b_c"

    def test_non_ascii_letters_in_key(self):
        key = "caf" + chr(0xE9)
        assert parse_line(key + "=1") == Entry(key, "1")

    def test_value_escapes_decoded(self):
        assert parse_line("msg=line1\\nline2\\tend") == Entry("msg", "line1\nline2\tend")

    def test_hash_comment(self):
        assert parse_line("#foo") == Comment("#foo")

    def test_bang_comment(self):
        assert parse_line("!foo") == Comment("!foo")

    def test_indented_comment_kept_whole(self):
        assert parse_line(" # foo ") == Comment(" # foo ")

    def test_comment_escapes_decoded_by_default(self):
        assert parse_line("# caf\\u00e9") == Comment("# caf" + chr(0xE9))

    def test_raw_comment(self):
        assert parse_line("# caf\\u00e9", raw_comments=True) == Comment("# caf\\u00e9")

    def test_space_separated_pair_is_passthrough(self):
        assert parse_line("foo bar") == Comment("foo bar")

    def test_missing_key_is_passthrough(self):
        assert parse_line("=value") == Comment("=value")

    def test_garbage_is_passthrough(self):
        assert parse_line("@@@ ???") == Comment("@@@ ???")


# =============================================================================
# parse()
# =============================================================================

class TestParse:

    def test_simple_property(self):
        assert list(parse("foo=bar")) == [Entry("foo", "bar")]

    def test_bare_key(self):
        assert list(parse("foo")) == [Entry("foo", None)]

    def test_empty_value(self):
        assert list(parse("foo=")) == [Entry("foo", "")]

    def test_line_continuation(self):
        assert list(parse("foo=bar\\\nbaz")) == [Entry("foo", "barbaz")]

    def test_comment_then_entry(self):
        assert list(parse("# comment\nfoo=bar")) == [Comment("# comment"), Entry("foo", "bar")]

    def test_blank_only_input(self):
        assert len(parse("\f\t")) == 0

    def test_duplicates_preserved_in_order(self):
        doc = parse("a=1\nb=2\na=3")
        assert doc.keys() == ["a", "b", "a"]
        assert [e.value for e in doc.get_entries("a")] == ["1", "3"]

    def test_comments_interleaved(self):
        doc = parse("# one\na=1\n! two\nb=2\n# three")
        assert [line.kind for line in doc] == ["comment", "entry", "comment", "entry", "comment"]

    def test_escaped_emoji_value(self):
        assert parse("face = \\ud83d\\ude01").get_entry("face").value == "😁"

    def test_returns_document(self):
        assert isinstance(parse("a=b"), PropertiesDocument)

    def test_raw_comments_option(self):
        doc = parse("# a\\tb\nk=v", raw_comments=True)
        assert doc[0] == Comment("# a\\tb")


# =============================================================================
# Writer
# =============================================================================

class TestWriter:

    def test_entry(self):
        assert render_line(Entry("foo", "bar")) == "foo = bar\n"

    def test_bare_key(self):
        assert render_line(Entry("foo")) == "foo\n"

    def test_empty_value(self):
        assert render_line(Entry("foo", "")) == "foo = \n"

    def test_comment_terminated(self):
        assert render_line(Comment("# hi")) == "# hi\n"

    def test_key_escaping(self):
        assert render_line(Entry("a:b=c", "v")) == "a\\:b\\=c = v\n"

    def test_emoji_value(self):
        assert stringify([Entry("face", "😁")]) == "face = \\ud83d\\ude01\n"

    def test_multiline_value(self):
        assert render_line(Entry("msg", "a\nb")) == "msg = a\\nb\n"

    def test_comment_does_not_merge_with_next_line(self):
        text = stringify([Comment("# header"), Entry("a", "1")])
        assert text == "# header\na = 1\n"
        assert parse(text) == PropertiesDocument((Comment("# header"), Entry("a", "1")))

    def test_empty_document(self):
        assert stringify(PropertiesDocument()) == ""

    def test_rejects_foreign_lines(self):
        with pytest.raises(TypeError):
            stringify([("a", "b")])

    def test_serialize_is_pure(self):
        doc = parse("a=1\n# c")
        before = doc.lines
        PropertiesWriter.serialize(doc)
        assert doc.lines == before

    def test_write_file(self):
        doc = parse("a=1\nb=" + chr(0x4E2D))
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "out.properties")
            nbytes = PropertiesWriter.write(doc, path)
            data = Path(path).read_bytes()
            assert nbytes == len(data)
            assert data == b"a = 1\nb = \\u4e2d\n"

    def test_write_overwrites_atomically(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "out.properties")
            Path(path).write_text("old = content\n", encoding="utf-8")
            parse("new=1").write(path)
            assert Path(path).read_text(encoding="utf-8") == "new = 1\n"
            assert os.listdir(tmp) == ["out.properties"]

    def test_write_file_mode(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "secret.properties")
            PropertiesWriter.write(parse("password=x"), path, mode=0o600)
            if os.name == "posix":
                assert os.stat(path).st_mode & 0o777 == 0o600

    def test_write_missing_directory_raises(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "nope", "out.properties")
            with pytest.raises(OSError):
                PropertiesWriter.write(parse("a=1"), path)


# =============================================================================
# Reader (file layer)
# =============================================================================

class TestReader:

    def test_read_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "app.properties"
            path.write_text("# app\nname = demo\nversion: 2\n", encoding="utf-8")
            doc = PropertiesReader.read(path)
            assert list(doc) == [Comment("# app"), Entry("name", "demo"), Entry("version", "2")]

    def test_read_utf8_literal(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "i18n.properties"
            path.write_text("title = Grüße\n", encoding="utf-8")
            assert PropertiesReader.read(path).get_entry("title").value == "Grüße"

    def test_read_strips_bom(self):
        data = b"\xef\xbb\xbfkey=value\n"
        assert list(PropertiesReader.parse_bytes(data)) == [Entry("key", "value")]

    def test_missing_file_raises(self):
        with pytest.raises(FileNotFoundError):
            PropertiesReader.read("/nonexistent/app.properties")

    def test_invalid_utf8_raises(self):
        with pytest.raises(UnicodeDecodeError):
            PropertiesReader.parse_bytes(b"key=\xff\xfe\n")

    def test_size_limit(self):
        with pytest.raises(ValueError, match="max_size"):
            PropertiesReader.parse_bytes(b"a=1\n" * 10, max_size=8)

    def test_file_size_limit(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "big.properties"
            path.write_text("a=1\n" * 10, encoding="utf-8")
            with pytest.raises(ValueError, match="exceeds maximum"):
                PropertiesReader.read(path, max_size=8)

    def test_parse_text(self):
        assert PropertiesReader.parse("k=v") == parse("k=v")

    def test_write_then_read(self):
        doc = PropertiesDocument.from_lines([
            Comment("# generated"),
            Entry("greeting", "héllo wörld"),
            Entry("emoji", "😁"),
            Entry("flag"),
            Entry("empty", ""),
            Entry("a:b=c", "x"),
        ])
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "rt.properties")
            doc.write(path)
            assert PropertiesReader.read(path) == doc


# =============================================================================
# Converters
# =============================================================================

class TestConverters:

    def _doc(self):
        return PropertiesDocument.from_lines([
            Comment("# db"),
            Entry("host", "localhost"),
            Entry("host", "db.internal"),
            Entry("debug"),
            Entry("formula", "=SUM(A1)"),
        ])

    def test_to_dict_last_wins(self):
        assert converters.to_dict(self._doc()) == {
            "host": "db.internal",
            "debug": "",
            "formula": "=SUM(A1)",
        }

    def test_from_dict_converts_values(self):
        doc = converters.from_dict({"foo": "bar", "baz": 42, "on": True, "off": False, "none": None})
        assert list(doc) == [
            Entry("foo", "bar"),
            Entry("baz", "42"),
            Entry("on", "true"),
            Entry("off", "false"),
            Entry("none", None),
        ]
        text = stringify(doc)
        assert "foo = bar" in text
        assert "baz = 42" in text

    def test_json_roundtrip(self):
        doc = self._doc()
        assert converters.from_json(converters.to_json(doc)) == doc

    def test_json_structure(self):
        data = json.loads(converters.to_json(self._doc()))
        assert data["format"] == "properties"
        assert data["lines"][0] == {"type": "comment", "text": "# db"}
        assert data["lines"][3] == {"type": "entry", "key": "debug", "value": None}

    def test_json_keeps_unicode(self):
        doc = PropertiesDocument.from_lines([Entry("face", "😁")])
        assert "😁" in converters.to_json(doc)

    def test_from_json_rejects_non_object(self):
        with pytest.raises(ValueError):
            converters.from_json("[1, 2]")

    def test_from_json_rejects_bad_lines(self):
        with pytest.raises(ValueError):
            converters.from_json('{"lines": "nope"}')

    def test_from_json_skips_malformed_items(self):
        doc = converters.from_json(
            '{"lines": [{"type": "entry", "key": 1}, "x", {"type": "entry", "key": "ok", "value": "1"}]}'
        )
        assert list(doc) == [Entry("ok", "1")]

    def test_csv_roundtrip_plain(self):
        doc = PropertiesDocument.from_lines([Comment("# c"), Entry("a", "1"), Entry("flag")])
        assert converters.from_csv(converters.to_csv(doc)) == doc

    def test_csv_formula_escaped(self):
        csv_text = converters.to_csv(self._doc())
        assert "'=SUM(A1)" in csv_text

    def test_csv_roundtrip_formula_characters(self):
        doc = PropertiesDocument.from_lines([
            Entry("-Xmx", "-1"),
            Entry("offset", "+5"),
            Entry("@user", "=SUM(A1)"),
            Entry("quoted", "'already quoted"),
            Entry("double", "''-x"),
            Entry("padded", "  ;x"),
            Entry("-flag"),
            Comment("# -note"),
        ])
        assert converters.from_csv(converters.to_csv(doc)) == doc

    def test_csv_quote_kept_on_plain_cells(self):
        doc = converters.from_csv("type,key,value\nentry,k,'plain\n")
        assert list(doc) == [Entry("k", "'plain")]

    def test_csv_skips_unknown_rows(self):
        doc = converters.from_csv("type,key,value\nbogus,a,b\nentry,k,v\nshort\n")
        assert list(doc) == [Entry("k", "v")]

    def test_convert_dispatch(self):
        doc = self._doc()
        for fmt in ("json", "csv", "JSON"):
            result = converters.convert_to(doc, fmt)
            assert "localhost" in result
        assert converters.convert_from(converters.convert_to(doc, "json"), "json") == doc

    def test_unknown_format(self):
        with pytest.raises(ValueError, match="Unknown format"):
            converters.convert_to(self._doc(), "xml")
        with pytest.raises(ValueError, match="Unknown format"):
            converters.convert_from("", "yaml")
