"""
proptext CLI - Command-line interface for .properties files.

Commands:
  proptext inspect  - List the lines of a .properties file
  proptext get      - Print the value(s) recorded for a key
  proptext format   - Re-serialize a file in normalized form
  proptext convert  - Convert to/from JSON or CSV

Environment:
  PROPTEXT_LOG_LEVEL      - Logging level (default: WARNING)
  PROPTEXT_MAX_FILE_SIZE  - Reader size limit in bytes (default: 100MB)
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from proptext.spec import MAX_FILE_SIZE

logger = logging.getLogger(__name__)

KNOWN_FORMATS = ("json", "csv")


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _env_max_size() -> int:
    raw = os.environ.get("PROPTEXT_MAX_FILE_SIZE", "")
    if not raw:
        return MAX_FILE_SIZE
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring invalid PROPTEXT_MAX_FILE_SIZE=%r", raw)
        return MAX_FILE_SIZE


def _fail(message: str) -> None:
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(1)


def _load(path: str, args: argparse.Namespace):
    """Read a .properties file, exiting with a message on I/O or size errors."""
    from proptext.reader import PropertiesReader

    try:
        return PropertiesReader.read(path, max_size=args.max_size, raw_comments=args.raw_comments)
    except FileNotFoundError:
        _fail(f"File not found: {path}")
    except (OSError, ValueError) as e:
        _fail(str(e))


def _describe(line) -> tuple[str, str]:
    from proptext.document import Entry
    from proptext.writer import render_line

    if isinstance(line, Entry) and line.value is None:
        label = "key"
    else:
        label = line.kind
    return label, render_line(line).rstrip("\n")


def cmd_inspect(args: argparse.Namespace) -> None:
    """Inspect a .properties file - list every line with its type."""
    doc = _load(args.path, args)

    print(args.path)
    print(f"  entries: {len(doc.entries)}  comments: {len(doc.comments)}")
    print()

    print("LINES:")
    for number, line in enumerate(doc, start=1):
        label, text = _describe(line)
        # Truncate long lines
        display = text if len(text) <= 72 else text[:69] + "..."
        print(f"  {number:>5d}  {label:8s} {display}")

    duplicates = sorted({key for key in doc.keys() if len(doc.get_entries(key)) > 1})
    if duplicates:
        print()
        print(f"DUPLICATE KEYS: {', '.join(duplicates)}")


def cmd_get(args: argparse.Namespace) -> None:
    """Print every value recorded for a key, one per line."""
    doc = _load(args.path, args)

    entries = doc.get_entries(args.key)
    if not entries:
        print(f"Key '{args.key}' not found.", file=sys.stderr)
        sys.exit(1)
    for entry in entries:
        print(entry.value if entry.value is not None else "")


def cmd_format(args: argparse.Namespace) -> None:
    """Parse a file and write it back in normalized form."""
    doc = _load(args.path, args)

    if args.stdout:
        print(doc.to_text(), end="")
        return

    output = args.output or args.path
    if ".." in Path(output).parts:
        _fail("Output path must not contain '..' (path traversal)")
    try:
        nbytes = doc.write(output)
    except OSError as e:
        _fail(str(e))
    print(f"Formatted {args.path} -> {output} ({nbytes} bytes)")


def _infer_format(filename: str) -> str | None:
    """Infer format from file extension."""
    ext_map = {".json": "json", ".csv": "csv", ".properties": "properties"}
    return ext_map.get(Path(filename).suffix.lower())


def cmd_convert(args: argparse.Namespace) -> None:
    """Convert to/from .properties."""
    from proptext.converters import convert_from, convert_to

    # Either explicit (convert to json file) or inferred (convert to file -o out.json)
    if args.format_or_input in KNOWN_FORMATS and args.input:
        fmt = args.format_or_input
        input_file = args.input
    else:
        input_file = args.format_or_input
        inferred = _infer_format(input_file)
        inferred_from_output = _infer_format(args.output) if args.output else None
        resolved = (
            inferred_from_output
            if args.direction == "to" and inferred_from_output not in (None, "properties")
            else inferred
        )
        if not resolved or resolved == "properties":
            print("Error: Cannot infer format. Specify explicitly:", file=sys.stderr)
            print(f"  proptext convert {args.direction} <json|csv> {input_file}", file=sys.stderr)
            sys.exit(1)
        fmt = resolved

    if args.output and ".." in Path(args.output).parts:
        _fail("Output path must not contain '..' (path traversal)")

    if args.direction == "from":
        input_path = Path(input_file)
        if not input_path.is_file():
            _fail(f"File not found: {input_file}")
        file_size = input_path.stat().st_size
        if file_size > args.max_size:
            _fail(f"File size {file_size} exceeds maximum {args.max_size} bytes")
        try:
            doc = convert_from(input_path.read_text(encoding="utf-8"), fmt)
        except ValueError as e:
            _fail(str(e))
        output = args.output or input_path.stem + ".properties"
        try:
            nbytes = doc.write(output)
        except OSError as e:
            _fail(str(e))
        print(f"Converted {input_file} -> {output} ({nbytes} bytes)")

    else:
        doc = _load(input_file, args)
        result = convert_to(doc, fmt)
        if args.output:
            try:
                Path(args.output).write_text(result, encoding="utf-8")
            except OSError as e:
                _fail(str(e))
            print(f"Converted {input_file} -> {args.output}")
        else:
            print(result, end="" if result.endswith("\n") else "\n")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="proptext",
        description="proptext - read, inspect and rewrite Java-style .properties files.",
    )
    from proptext import __version__
    parser.add_argument("--version", action="version", version=f"proptext {__version__}")
    parser.add_argument(
        "--log-level",
        default=os.environ.get("PROPTEXT_LOG_LEVEL", "WARNING"),
        help="Logging level (default: $PROPTEXT_LOG_LEVEL or WARNING)",
    )
    parser.add_argument(
        "--max-size",
        type=int,
        default=None,
        help="Maximum input size in bytes (default: $PROPTEXT_MAX_FILE_SIZE or 100MB)",
    )
    parser.add_argument(
        "--raw-comments",
        action="store_true",
        help="Keep comment lines exactly as written (no escape decoding)",
    )
    sub = parser.add_subparsers(dest="command")

    # inspect
    p_inspect = sub.add_parser("inspect", help="List the lines of a .properties file")
    p_inspect.add_argument("path", help="Path to .properties file")

    # get
    p_get = sub.add_parser("get", help="Print the value(s) of a key")
    p_get.add_argument("path", help="Path to .properties file")
    p_get.add_argument("key", help="Key to look up")

    # format
    p_format = sub.add_parser("format", help="Rewrite a file in normalized form")
    p_format.add_argument("path", help="Path to .properties file")
    p_format.add_argument("-o", "--output", help="Output path (default: overwrite input)")
    p_format.add_argument("--stdout", action="store_true", help="Print instead of writing a file")

    # convert
    p_convert = sub.add_parser("convert", help="Convert to/from JSON or CSV")
    p_convert.add_argument("direction", choices=["to", "from"], help="Conversion direction")
    p_convert.add_argument("format_or_input", help="Format (json, csv) or input file")
    p_convert.add_argument("input", nargs="?", default=None, help="Input file path")
    p_convert.add_argument("-o", "--output", help="Output file path")

    args = parser.parse_args(argv)
    _setup_logging(args.log_level)
    if args.max_size is None:
        args.max_size = _env_max_size()

    if not args.command:
        parser.print_help()
        sys.exit(0)

    commands = {
        "inspect": cmd_inspect,
        "get": cmd_get,
        "format": cmd_format,
        "convert": cmd_convert,
    }

    commands[args.command](args)


if __name__ == "__main__":
    main()
