"""Error types with formatted source context."""

from __future__ import annotations

from tokenwalk.tokens import Position, SourceLocation


def _render(message: str, filename: str, source: str, position: Position, width: int) -> str:
    lines = source.splitlines(keepends=True)
    line_idx = position.line - 1
    col = position.column

    # Build the source line (strip trailing newline for display)
    if 0 <= line_idx < len(lines):
        source_line = lines[line_idx].rstrip("\n").rstrip("\r")
    else:
        source_line = ""

    # Underline at least one char, but stay within the line
    underline_len = max(1, min(width, len(source_line) - col + 1))

    pad = " " * (col - 1)
    carets = "^" * underline_len

    line_num = str(position.line)
    gutter_width = len(line_num) + 1

    blank_gutter = " " * gutter_width + "|"
    line_gutter = f"{line_num:>{gutter_width - 1}} |"

    return (
        f"error: {message}\n"
        f"{' ' * gutter_width}--> {filename}:{position.line}:{col}\n"
        f"{blank_gutter}\n"
        f"{line_gutter} {source_line}\n"
        f"{blank_gutter} {pad}{carets}"
    )


def position_at(buffer: bytes, offset: int) -> Position:
    """Map a byte offset to a 1-based line/column position."""
    offset = max(0, min(offset, len(buffer)))
    line = buffer.count(b"\n", 0, offset) + 1
    line_start = buffer.rfind(b"\n", 0, offset) + 1
    return Position(line, offset - line_start + 1, offset)


class LexError(Exception):
    """Raised on the first lexing error, with position and source context."""

    def __init__(self, message: str, position: Position, source: str) -> None:
        self.message = message
        self.position = position
        self.source = source
        super().__init__(self.format())

    def format(self, filename: str = "input.c") -> str:
        return _render(self.message, filename, self.source, self.position, 2)


class CursorError(Exception):
    """A misuse of the cursor contract.

    These are programmer errors: the walk cannot continue and nothing here
    retries or recovers from them.
    """

    def __init__(
        self,
        message: str,
        location: SourceLocation | None = None,
        source: bytes | None = None,
    ) -> None:
        self.message = message
        self.location = location
        self.source = source
        super().__init__(self.format())

    def format(self) -> str:
        if self.location is None:
            return f"error: {self.message}"
        if self.source is None:
            return (
                f"error: {self.message}\n"
                f"  --> {self.location.file.name}@{self.location.offset}"
            )
        position = position_at(self.source, self.location.offset)
        # Byte-per-char decoding keeps columns aligned with byte offsets
        text = self.source.decode("latin-1")
        return _render(self.message, self.location.file.name, text, position, 1)


class SentinelError(CursorError):
    """Dereferenced, stepped, or converted a cursor that holds no token."""


class FileStartError(CursorError):
    """Stepped backward from the first token of a file."""


class CrossFileError(CursorError):
    """A backward step would leave the current file."""


class TokenLifetimeError(CursorError):
    """A token handle was released twice, by the wrong unit, or after disposal."""
