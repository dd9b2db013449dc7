"""Reference C-family lexer — converts a byte buffer into a flat lexeme table."""

from __future__ import annotations

from tokenwalk.errors import LexError
from tokenwalk.tokens import (
    KEYWORDS,
    PUNCTUATORS,
    Lexeme,
    Position,
    Span,
    TokenKind,
    is_ident_char,
    is_ident_start,
)

_SPACE = " \t\n\v\f\r"
_LITERAL_PREFIXES = frozenset(("L", "u", "U", "u8"))


class Lexer:
    """Tokenize C-family source into Lexeme objects.

    The buffer is decoded as latin-1 so that every character index equals a
    byte offset; lexeme text is decoded back as UTF-8.
    """

    def __init__(self, source: str | bytes, filename: str = "input.c") -> None:
        if isinstance(source, str):
            source = source.encode("utf-8")
        self._buffer = source
        self._source = source.decode("latin-1")
        self._filename = filename
        self._pos = 0
        self._line = 1
        self._col = 1
        self._lexemes: list[Lexeme] = []

    def tokenize(self) -> list[Lexeme]:
        """Tokenize the full source and return the lexeme list."""
        while self._pos < len(self._source):
            self._lex_one()
        return self._lexemes

    # ------------------------------------------------------------------
    # Position helpers
    # ------------------------------------------------------------------

    def _current_pos(self) -> Position:
        return Position(self._line, self._col, self._pos)

    def _peek(self, offset: int = 0) -> str:
        idx = self._pos + offset
        if idx < len(self._source):
            return self._source[idx]
        return ""

    def _advance(self) -> str:
        ch = self._source[self._pos]
        self._pos += 1
        if ch == "\n":
            self._line += 1
            self._col = 1
        else:
            self._col += 1
        return ch

    def _emit(self, kind: TokenKind, start: Position) -> Lexeme:
        end = self._current_pos()
        text = self._buffer[start.offset : end.offset].decode("utf-8", errors="replace")
        lexeme = Lexeme(kind, text, Span(start, end))
        self._lexemes.append(lexeme)
        return lexeme

    def _error(self, message: str, pos: Position | None = None) -> LexError:
        if pos is None:
            pos = self._current_pos()
        return LexError(message, pos, self._source)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _lex_one(self) -> None:
        ch = self._peek()

        if ch == "\0":
            raise self._error("NUL character in source")

        if ch in _SPACE:
            self._advance()
            return

        # Line continuation is trivia
        if ch == "\\" and self._at_line_splice():
            self._skip_line_splice()
            return

        if ch == "/" and self._peek(1) == "/":
            self._lex_line_comment()
            return

        if ch == "/" and self._peek(1) == "*":
            self._lex_block_comment()
            return

        if is_ident_start(ch):
            self._lex_identifier()
            return

        if ch.isdigit() or (ch == "." and self._peek(1).isdigit()):
            self._lex_number(self._current_pos())
            return

        if ch in "\"'":
            self._lex_quoted(self._current_pos())
            return

        for punct in PUNCTUATORS:
            if self._source.startswith(punct, self._pos):
                start = self._current_pos()
                for _ in punct:
                    self._advance()
                self._emit(TokenKind.PUNCTUATION, start)
                return

        raise self._error(f"unexpected character {ch!r}")

    def _at_line_splice(self) -> bool:
        return self._peek(1) == "\n" or (self._peek(1) == "\r" and self._peek(2) == "\n")

    def _skip_line_splice(self) -> None:
        self._advance()  # backslash
        if self._peek() == "\r":
            self._advance()
        self._advance()  # newline

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------

    def _lex_line_comment(self) -> None:
        start = self._current_pos()
        while self._pos < len(self._source):
            ch = self._peek()
            if ch == "\\" and self._at_line_splice():
                self._skip_line_splice()
                continue
            if ch in "\r\n":
                break
            self._advance()
        self._emit(TokenKind.COMMENT, start)

    def _lex_block_comment(self) -> None:
        start = self._current_pos()
        self._advance()
        self._advance()
        while self._pos < len(self._source):
            if self._peek() == "*" and self._peek(1) == "/":
                self._advance()
                self._advance()
                self._emit(TokenKind.COMMENT, start)
                return
            self._advance()
        raise self._error("unterminated block comment", start)

    # ------------------------------------------------------------------
    # Identifiers, keywords, numbers
    # ------------------------------------------------------------------

    def _lex_identifier(self) -> None:
        start = self._current_pos()
        chars = []
        while self._pos < len(self._source) and is_ident_char(self._peek()):
            chars.append(self._advance())
        text = "".join(chars)

        # Encoding prefix glued to a string or character literal
        if text in _LITERAL_PREFIXES and self._peek() in "\"'":
            self._lex_quoted(start)
            return

        kind = TokenKind.KEYWORD if text in KEYWORDS else TokenKind.IDENTIFIER
        self._emit(kind, start)

    def _lex_number(self, start: Position) -> None:
        """Scan a preprocessing number: digits, letters, dots, and signed exponents."""
        self._advance()
        while self._pos < len(self._source):
            ch = self._peek()
            if ch in "eEpP" and self._peek(1) in ("+", "-"):
                self._advance()
                self._advance()
            elif is_ident_char(ch) or ch == ".":
                self._advance()
            else:
                break
        self._emit(TokenKind.LITERAL, start)

    # ------------------------------------------------------------------
    # String and character literals
    # ------------------------------------------------------------------

    def _lex_quoted(self, start: Position) -> None:
        delimiter = self._advance()
        what = "string literal" if delimiter == '"' else "character constant"

        while True:
            if self._pos >= len(self._source) or self._peek() in "\r\n":
                raise self._error(f"unterminated {what}", start)
            ch = self._advance()
            if ch == "\\":
                if self._pos >= len(self._source):
                    raise self._error(f"unterminated {what}", start)
                self._advance()
            elif ch == delimiter:
                break

        self._emit(TokenKind.LITERAL, start)


def tokenize(source: str | bytes, filename: str = "input.c") -> list[Lexeme]:
    """Convenience function: tokenize source and return the lexeme list."""
    return Lexer(source, filename).tokenize()
