"""--debug token table dump to stderr."""

from __future__ import annotations

import sys
from typing import TextIO

from tokenwalk.tokens import Lexeme


def dump_tokens(lexemes: list[Lexeme], filename: str, *, file: TextIO | None = None) -> None:
    """Print a human-readable token table to *file* (stderr when omitted)."""
    out = file if file is not None else sys.stderr
    out.write(f"{filename}: {len(lexemes)} tokens\n")
    for lexeme in lexemes:
        _dump_lexeme(lexeme, out)


def _dump_lexeme(lexeme: Lexeme, f: TextIO) -> None:
    start = lexeme.span.start
    end = lexeme.span.end
    f.write(
        f"  {start.line}:{start.column} "
        f"[{start.offset}, {end.offset}) {lexeme.kind.name} {lexeme.text!r}\n"
    )
