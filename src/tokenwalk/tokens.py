"""Token kinds, source locations, extents, and byte classification helpers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto


class TokenKind(Enum):
    PUNCTUATION = auto()  # operators and delimiters, longest match
    KEYWORD = auto()  # reserved C words
    IDENTIFIER = auto()
    LITERAL = auto()  # numbers, strings, character constants
    COMMENT = auto()  # // and /* */


class Boundary(Enum):
    """Which end of an extent to take."""

    START = auto()
    END = auto()


@dataclass(frozen=True, slots=True, order=True)
class SourceFile:
    """A file inside a translation unit, identified by name."""

    name: str


@dataclass(frozen=True, slots=True, order=True)
class SourceLocation:
    """Byte offset within one file of a translation unit."""

    file: SourceFile
    offset: int


@dataclass(frozen=True, slots=True)
class Extent:
    """Half-open range [start, end) of source locations."""

    start: SourceLocation
    end: SourceLocation


@dataclass(frozen=True, slots=True, eq=False)
class Token:
    """A token handle allocated by a translation unit.

    Handles compare by identity: two lookups that land on the same lexeme
    produce two handles, and each must be released on its own.
    """

    kind: TokenKind
    spelling: str
    extent: Extent


@dataclass(frozen=True, slots=True)
class Position:
    """Source position, 1-based line and column, 0-based byte offset."""

    line: int
    column: int
    offset: int


@dataclass(frozen=True, slots=True)
class Span:
    """Source range from start to end position."""

    start: Position
    end: Position


@dataclass(frozen=True, slots=True)
class Lexeme:
    """One entry of a file's token table, as produced by the lexer."""

    kind: TokenKind
    text: str
    span: Span


_SPACE_BYTES = frozenset(b" \t\n\v\f\r")

KEYWORDS = frozenset(
    """
    auto break case char const continue default do double else enum extern
    float for goto if inline int long register restrict return short signed
    sizeof static struct switch typedef union unsigned void volatile while
    _Alignas _Alignof _Atomic _Bool _Complex _Generic _Imaginary _Noreturn
    _Static_assert _Thread_local
    """.split()
)

# Longest first so a greedy scan picks ">>=" over ">>" over ">".
PUNCTUATORS = tuple(
    sorted(
        """
        ... <<= >>= -> ++ -- << >> <= >= == != && || *= /= %= += -= &= ^= |=
        ## <: :> <% %> [ ] ( ) { } . & * + - ~ ! / % < > ^ | ? : ; = , #
        """.split(),
        key=len,
        reverse=True,
    )
)


def is_space_byte(b: int) -> bool:
    """Return True if byte b is C whitespace (space, \\t, \\n, \\v, \\f, \\r)."""
    return b in _SPACE_BYTES


def is_ident_start(ch: str) -> bool:
    """Return True if ch may begin an identifier (bytes >= 0x80 allowed for UTF-8)."""
    return ch == "_" or ("a" <= ch <= "z") or ("A" <= ch <= "Z") or ord(ch) >= 0x80


def is_ident_char(ch: str) -> bool:
    """Return True if ch may continue an identifier."""
    return is_ident_start(ch) or ("0" <= ch <= "9")
