"""Bidirectional token cursors over a forward-only lexical oracle."""

from __future__ import annotations

from tokenwalk.cursor import ForwardTokenCursor, TokenCursor
from tokenwalk.errors import (
    CrossFileError,
    CursorError,
    FileStartError,
    LexError,
    SentinelError,
    TokenLifetimeError,
)
from tokenwalk.handle import OwnedToken
from tokenwalk.oracle import LexicalOracle, SyntacticRange, boundary_location
from tokenwalk.tokens import Boundary, Extent, SourceFile, SourceLocation, Token, TokenKind
from tokenwalk.unit import TranslationUnit

__version__ = "0.1.0"

__all__ = [
    "Boundary",
    "CrossFileError",
    "CursorError",
    "Extent",
    "FileStartError",
    "ForwardTokenCursor",
    "LexError",
    "LexicalOracle",
    "OwnedToken",
    "SentinelError",
    "SourceFile",
    "SourceLocation",
    "SyntacticRange",
    "Token",
    "TokenCursor",
    "TokenKind",
    "TokenLifetimeError",
    "TranslationUnit",
    "boundary_location",
    "spellings",
]


def spellings(source: str | bytes, filename: str = "input.c", reverse: bool = False) -> list[str]:
    """Walk source once and return the token spellings in walk order."""
    with TranslationUnit.from_source(source, filename) as unit:
        file = unit.main_file
        if reverse:
            cursor = TokenCursor.last(unit, file)
            with cursor:
                return [token.spelling for token in cursor.walk_backward()]
        cursor = TokenCursor.at_boundary(unit, unit.file_range(file))
        with cursor:
            return [token.spelling for token in cursor.walk()]
