"""Shared test fixtures and helpers."""

from __future__ import annotations

import pytest

from tokenwalk.cursor import TokenCursor
from tokenwalk.lexer import tokenize
from tokenwalk.tokens import Lexeme, TokenKind
from tokenwalk.unit import TranslationUnit


@pytest.fixture
def lex():
    """Return a helper that tokenizes source and returns the lexeme list."""

    def _lex(source: str | bytes) -> list[Lexeme]:
        return tokenize(source)

    return _lex


@pytest.fixture
def make_unit():
    """Return a factory for single-file units; all are disposed after the test."""
    units: list[TranslationUnit] = []

    def _make(source: str | bytes, filename: str = "test.c") -> TranslationUnit:
        unit = TranslationUnit.from_source(source, filename)
        units.append(unit)
        return unit

    yield _make

    for unit in units:
        unit.dispose()


def cursor_at(unit: TranslationUnit, offset: int) -> TokenCursor:
    """A bidirectional cursor on the token at or after offset in the main file."""
    return TokenCursor(unit, unit.location_at(unit.main_file, offset))


def span_of(cursor: TokenCursor) -> tuple[int, int]:
    """The (start, end) byte offsets of the cursor's token."""
    extent = cursor.extent
    return extent.start.offset, extent.end.offset


def assert_kinds(lexemes: list[Lexeme], expected: list[TokenKind]) -> None:
    """Assert that the lexeme kinds match the expected list."""
    actual = [t.kind for t in lexemes]
    assert actual == expected, f"Expected {expected}, got {actual}"


def assert_texts(lexemes: list[Lexeme], expected: list[str]) -> None:
    """Assert that the lexeme texts match the expected list."""
    actual = [t.text for t in lexemes]
    assert actual == expected, f"Expected {expected}, got {actual}"


def offsets(lexemes: list[Lexeme]) -> list[tuple[int, int]]:
    """Return the (start, end) byte offsets of each lexeme."""
    return [(t.span.start.offset, t.span.end.offset) for t in lexemes]
