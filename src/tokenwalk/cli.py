"""Command-line interface for tokenwalk."""

from __future__ import annotations

import argparse
import json
import logging
import sys
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from tokenwalk.errors import CursorError, LexError

_FORMATS = ("text", "json")


@dataclass(frozen=True, slots=True)
class CliOptions:
    """Parsed CLI options."""

    input_file: Path
    output_file: Path | None
    start_offset: int | None
    start_at: tuple[int, int] | None
    reverse: bool
    limit: int | None
    output_format: str
    comments: bool
    canonical: bool
    debug: bool


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser (separate function for testability)."""
    p = argparse.ArgumentParser(
        prog="tokenwalk",
        description="Walk the tokens of a C-family source file forward or backward",
    )
    p.add_argument("input", help="Input source file")
    p.add_argument("-o", "--output", help="Output file (default: stdout)")
    seed = p.add_mutually_exclusive_group()
    seed.add_argument(
        "--from",
        dest="start_offset",
        type=int,
        default=None,
        metavar="OFFSET",
        help="Start at the token covering or following this byte offset",
    )
    seed.add_argument(
        "--at",
        dest="start_at",
        default=None,
        metavar="LINE:COL",
        help="Start at the token covering or following this 1-based position",
    )
    p.add_argument(
        "--reverse",
        action="store_true",
        default=None,
        help="Walk backward (from the last token unless a start is given)",
    )
    p.add_argument("--limit", type=int, default=None, metavar="N", help="Stop after N tokens")
    p.add_argument(
        "--format",
        dest="output_format",
        choices=_FORMATS,
        default=None,
        help="Output format (default: text)",
    )
    p.add_argument(
        "--no-comments",
        dest="comments",
        action="store_false",
        default=None,
        help="Leave comment tokens out of the output",
    )
    p.add_argument(
        "--raw-starts",
        dest="canonical",
        action="store_false",
        default=None,
        help="Print token starts exactly as the lookups reported them",
    )
    p.add_argument(
        "--config",
        metavar="FILE",
        help="Config file (default: auto-discover tokenwalk.toml)",
    )
    p.add_argument("--debug", action="store_true", help="Debug logging and token table on stderr")
    return p


def parse_at_arg(s: str) -> tuple[int, int]:
    """Parse a LINE:COL string into a 1-based (line, column) pair."""
    line, sep, col = s.partition(":")
    if not sep or not line.isdigit() or not col.isdigit():
        raise argparse.ArgumentTypeError(f"invalid position (expected LINE:COL): {s}")
    if int(line) < 1 or int(col) < 1:
        raise argparse.ArgumentTypeError(f"position is 1-based: {s}")
    return int(line), int(col)


def load_config(config_path: Path | None, input_dir: Path) -> dict[str, Any]:
    """Load a TOML config file, returning an empty dict on missing/absent file."""
    path = config_path if config_path is not None else input_dir / "tokenwalk.toml"

    if not path.is_file():
        return {}

    with open(path, "rb") as f:
        return tomllib.load(f)


def resolve_options(args: argparse.Namespace) -> CliOptions:
    """Merge config file and CLI args into CliOptions.

    Precedence: config file < CLI flags.
    """
    input_file = Path(args.input)
    input_dir = input_file.parent
    if not input_dir.parts:
        input_dir = Path(".")

    config_path = Path(args.config) if args.config else None
    config = load_config(config_path, input_dir)

    cfg_walk = config.get("walk")
    if not isinstance(cfg_walk, dict):
        cfg_walk = {}
    cfg_output = config.get("output")
    if not isinstance(cfg_output, dict):
        cfg_output = {}

    # Direction: config < CLI
    reverse = bool(cfg_walk.get("reverse", False))
    if args.reverse is not None:
        reverse = args.reverse

    # Limit: config < CLI, 0 means unlimited
    limit = cfg_walk.get("limit", 0)
    if args.limit is not None:
        limit = args.limit
    if not isinstance(limit, int) or limit < 0:
        raise argparse.ArgumentTypeError(f"invalid limit (expected a count >= 0): {limit}")

    output_format = str(cfg_output.get("format", "text"))
    if args.output_format is not None:
        output_format = args.output_format
    if output_format not in _FORMATS:
        raise argparse.ArgumentTypeError(f"invalid output format: {output_format}")

    comments = bool(cfg_output.get("comments", True))
    if args.comments is not None:
        comments = args.comments

    canonical = bool(cfg_output.get("canonical", True))
    if args.canonical is not None:
        canonical = args.canonical

    if args.start_offset is not None and args.start_offset < 0:
        raise argparse.ArgumentTypeError(f"invalid offset: {args.start_offset}")
    start_at = parse_at_arg(args.start_at) if args.start_at else None

    output_file = Path(args.output) if args.output else None

    return CliOptions(
        input_file=input_file,
        output_file=output_file,
        start_offset=args.start_offset,
        start_at=start_at,
        reverse=reverse,
        limit=limit or None,
        output_format=output_format,
        comments=comments,
        canonical=canonical,
        debug=args.debug,
    )


def offset_for(buffer: bytes, line: int, column: int) -> int:
    """Byte offset of a 1-based line/column, clamped to the end of that line."""
    line_start = 0
    for _ in range(line - 1):
        newline = buffer.find(b"\n", line_start)
        if newline == -1:
            return len(buffer)
        line_start = newline + 1
    line_end = buffer.find(b"\n", line_start)
    if line_end == -1:
        line_end = len(buffer)
    return min(line_start + column - 1, line_end)


def walk_file(options: CliOptions) -> str:
    """Lex the input, walk its tokens as requested, and render the result."""
    from tokenwalk.cursor import TokenCursor
    from tokenwalk.debug import dump_tokens
    from tokenwalk.tokens import TokenKind
    from tokenwalk.unit import TranslationUnit

    with TranslationUnit.from_path(options.input_file) as unit:
        file = unit.main_file
        lexemes = unit.lexemes(file)
        if options.debug:
            dump_tokens(lexemes, file.name, file=sys.stderr)
        buffer = unit.buffer_of(file)

        if options.start_offset is not None:
            cursor = TokenCursor(unit, unit.location_at(file, min(options.start_offset, len(buffer))))
        elif options.start_at is not None:
            cursor = TokenCursor(unit, unit.location_at(file, offset_for(buffer, *options.start_at)))
        elif options.reverse:
            cursor = TokenCursor.last(unit, file)
        else:
            cursor = TokenCursor.at_boundary(unit, unit.file_range(file))

        records: list[dict[str, Any]] = []
        with cursor:
            steps = (
                cursor.walk_backward(options.limit) if options.reverse else cursor.walk(options.limit)
            )
            for token in steps:
                if options.canonical:
                    # Forward steps start in the trivia before the token
                    token = cursor.canonicalize().token
                if token.kind is TokenKind.COMMENT and not options.comments:
                    continue
                extent = unit.extent_of(token)
                records.append(
                    {
                        "start": extent.start.offset,
                        "end": extent.end.offset,
                        "kind": token.kind.name,
                        "spelling": token.spelling,
                    }
                )

    if options.output_format == "json":
        return json.dumps(records, indent=2) + "\n"
    return "".join(f"{r['start']}-{r['end']} {r['kind']} {r['spelling']}\n" for r in records)


def main(argv: list[str] | None = None) -> int:
    """CLI entry point. Returns exit code (0/1/2). Does not call sys.exit()."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        options = resolve_options(args)
    except argparse.ArgumentTypeError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    if options.debug:
        logging.basicConfig(
            level=logging.DEBUG, format="%(name)s: %(message)s", stream=sys.stderr
        )

    try:
        output = walk_file(options)
    except OSError as exc:
        print(f"error: cannot read {options.input_file}: {exc.strerror or exc}", file=sys.stderr)
        return 1
    except LexError as exc:
        print(exc.format(str(options.input_file)), file=sys.stderr)
        return 1
    except CursorError as exc:
        print(str(exc), file=sys.stderr)
        return 2

    if options.output_file:
        options.output_file.write_text(output, encoding="utf-8")
    else:
        sys.stdout.write(output)

    return 0
