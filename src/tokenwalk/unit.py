"""In-memory translation unit: the bundled lexical oracle."""

from __future__ import annotations

import logging
from bisect import bisect_right
from dataclasses import dataclass
from pathlib import Path

from tokenwalk.errors import TokenLifetimeError
from tokenwalk.lexer import Lexer
from tokenwalk.oracle import SyntacticRange
from tokenwalk.tokens import Extent, Lexeme, SourceFile, SourceLocation, Token

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FileRange:
    """A whole file as a seed entity for cursors."""

    file: SourceFile
    extent: Extent


class TranslationUnit:
    """Owns file buffers, their token tables, and every live token handle.

    Lookups behave like a lexer restarted at the requested location: the
    returned token always starts at that location (which may be in the
    whitespace before the token or inside it) and ends where the token
    covering or following it ends. Each lookup allocates a new handle that
    must be released exactly once.
    """

    def __init__(self, name: str = "<unit>") -> None:
        self.name = name
        self.lookup_count = 0
        self._files: dict[str, SourceFile] = {}
        self._buffers: dict[SourceFile, bytes] = {}
        self._tables: dict[SourceFile, list[Lexeme]] = {}
        self._ends: dict[SourceFile, list[int]] = {}
        self._live: set[Token] = set()
        self._disposed = False

    def __repr__(self) -> str:
        return f"TranslationUnit({self.name!r}, files={len(self._files)})"

    @classmethod
    def from_source(cls, source: str | bytes, filename: str = "input.c") -> TranslationUnit:
        unit = cls(filename)
        unit.add_file(filename, source)
        return unit

    @classmethod
    def from_path(cls, path: Path | str) -> TranslationUnit:
        path = Path(path)
        return cls.from_source(path.read_bytes(), str(path))

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def add_file(self, name: str, contents: str | bytes) -> SourceFile:
        """Register a file buffer. Names must be unique within the unit."""
        self._check_alive()
        if name in self._files:
            raise ValueError(f"file already registered: {name}")
        if isinstance(contents, str):
            contents = contents.encode("utf-8")
        file = SourceFile(name)
        self._files[name] = file
        self._buffers[file] = contents
        return file

    def file(self, name: str) -> SourceFile:
        try:
            return self._files[name]
        except KeyError:
            raise KeyError(f"no such file in {self.name}: {name}") from None

    @property
    def main_file(self) -> SourceFile:
        """The first file added to the unit."""
        if not self._files:
            raise LookupError(f"{self.name} has no files")
        return next(iter(self._files.values()))

    def file_range(self, file: SourceFile) -> FileRange:
        size = len(self.buffer_of(file))
        return FileRange(file, Extent(SourceLocation(file, 0), SourceLocation(file, size)))

    def lexemes(self, file: SourceFile) -> list[Lexeme]:
        """The file's token table, lexed on first use."""
        table = self._tables.get(file)
        if table is None:
            table = Lexer(self.buffer_of(file), file.name).tokenize()
            self._tables[file] = table
            self._ends[file] = [lexeme.span.end.offset for lexeme in table]
            logger.debug("lexed %s: %d tokens", file.name, len(table))
        return table

    # ------------------------------------------------------------------
    # Oracle operations
    # ------------------------------------------------------------------

    def lookup_from(self, location: SourceLocation) -> Token | None:
        self._check_alive()
        self.lookup_count += 1
        file, offset = self.resolve(location)
        table = self.lexemes(file)
        index = bisect_right(self._ends[file], offset)
        if index == len(table):
            return None

        lexeme = table[index]
        buffer = self._buffers[file]
        text_start = max(offset, lexeme.span.start.offset)
        token = Token(
            lexeme.kind,
            buffer[text_start : lexeme.span.end.offset].decode("utf-8", errors="replace"),
            Extent(location, SourceLocation(file, lexeme.span.end.offset)),
        )
        self._live.add(token)
        return token

    def extent_of(self, token: Token) -> Extent:
        self._check_owned(token)
        return token.extent

    def release(self, token: Token) -> None:
        self._check_owned(token)
        self._live.discard(token)

    def range_of(self, entity: SyntacticRange) -> Extent:
        return entity.extent

    def resolve(self, location: SourceLocation) -> tuple[SourceFile, int]:
        if location.file not in self._buffers:
            raise KeyError(f"location refers to a file outside {self.name}: {location.file.name}")
        return location.file, location.offset

    def location_at(self, file: SourceFile, offset: int) -> SourceLocation:
        size = len(self.buffer_of(file))
        if not 0 <= offset <= size:
            raise ValueError(f"offset {offset} outside {file.name} (size {size})")
        return SourceLocation(file, offset)

    def buffer_of(self, file: SourceFile) -> bytes:
        try:
            return self._buffers[file]
        except KeyError:
            raise KeyError(f"no such file in {self.name}: {file.name}") from None

    # ------------------------------------------------------------------
    # Lifetime
    # ------------------------------------------------------------------

    @property
    def live_tokens(self) -> int:
        """Number of handles allocated and not yet released."""
        return len(self._live)

    @property
    def disposed(self) -> bool:
        return self._disposed

    def dispose(self) -> None:
        """Free the unit. Every outstanding handle becomes invalid."""
        if self._disposed:
            return
        if self._live:
            logger.warning("disposing %s with %d live tokens", self.name, len(self._live))
        self._live.clear()
        self._tables.clear()
        self._ends.clear()
        self._disposed = True

    def __enter__(self) -> TranslationUnit:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.dispose()

    def _check_alive(self) -> None:
        if self._disposed:
            raise TokenLifetimeError(f"translation unit {self.name} has been disposed")

    def _check_owned(self, token: Token) -> None:
        self._check_alive()
        if token not in self._live:
            raise TokenLifetimeError(
                "token is not live in this unit (already released, or foreign)",
                token.extent.start,
            )
