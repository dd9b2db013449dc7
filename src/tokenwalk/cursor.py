"""Token cursors: value-like iterators over an oracle's token stream.

``ForwardTokenCursor`` only moves forward and works anywhere the oracle
does. ``TokenCursor`` adds backward steps, which are reconstructed from the
file's bytes and therefore never leave the current file.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Self

from tokenwalk.errors import FileStartError, SentinelError
from tokenwalk.handle import OwnedToken
from tokenwalk.oracle import LexicalOracle, SyntacticRange, boundary_location
from tokenwalk.stepping import canonical_token, last_token, next_token, previous_token
from tokenwalk.tokens import Boundary, Extent, SourceFile, SourceLocation, Token


class ForwardTokenCursor:
    """A cursor positioned on one owned token, or the sentinel.

    Construct with a unit and a location to position on the token at or
    after that location; with no arguments the cursor is the sentinel, as
    it is after stepping past the last token.

    Two cursors are equal when both are sentinels, or when they share a unit
    and their tokens end at the same location. Starts are not compared: the
    same token may start at the end of the previous token or at its own first
    byte depending on how it was reached.

    ``clone()`` (and ``copy.copy``) makes one oracle lookup.
    """

    __slots__ = ("_handle",)

    def __init__(
        self,
        unit: LexicalOracle | None = None,
        location: SourceLocation | None = None,
    ) -> None:
        if unit is None or location is None:
            self._handle = OwnedToken(unit)
        else:
            self._handle = OwnedToken.lookup(unit, location)

    @classmethod
    def at_boundary(
        cls,
        unit: LexicalOracle,
        entity: SyntacticRange,
        boundary: Boundary = Boundary.START,
    ) -> Self:
        """Position on the token at an entity's start (or end) boundary."""
        return cls(unit, boundary_location(unit, entity, boundary))

    @classmethod
    def _from_handle(cls, handle: OwnedToken) -> Self:
        cursor = cls.__new__(cls)
        cursor._handle = handle
        return cursor

    def __repr__(self) -> str:
        if not self._handle:
            return f"{type(self).__name__}(<sentinel>)"
        extent = self.extent
        return (
            f"{type(self).__name__}({self.token.spelling!r} "
            f"[{extent.start.offset}, {extent.end.offset}) in {extent.end.file.name})"
        )

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def is_sentinel(self) -> bool:
        return not self._handle

    def __bool__(self) -> bool:
        return bool(self._handle)

    @property
    def token(self) -> Token:
        """The current token. Valid until the cursor moves or is closed."""
        self._require_token("dereference")
        return self._handle.token

    @property
    def extent(self) -> Extent:
        self._require_token("read the extent of")
        return self._handle.extent

    @property
    def unit(self) -> LexicalOracle | None:
        return self._handle.unit

    def _require_token(self, action: str) -> None:
        if not self._handle:
            raise SentinelError(f"cannot {action} a sentinel cursor")

    # ------------------------------------------------------------------
    # Movement
    # ------------------------------------------------------------------

    def advance(self) -> Self:
        """Step to the next token; past the last token the cursor becomes the sentinel."""
        self._require_token("advance")
        self._replace(next_token(self._handle))
        return self

    def walk(self, limit: int | None = None) -> Iterator[Token]:
        """Yield the current token and each following one, advancing the cursor.

        Each yielded token is released when the walk moves on.
        """
        count = 0
        while self._handle and (limit is None or count < limit):
            yield self._handle.token
            count += 1
            if limit is not None and count >= limit:
                return
            self.advance()

    def _replace(self, handle: OwnedToken) -> None:
        old, self._handle = self._handle, handle
        old.release()

    # ------------------------------------------------------------------
    # Copy, compare, close
    # ------------------------------------------------------------------

    def clone(self) -> Self:
        """An independent cursor on the same token. Costs one oracle lookup."""
        return self._from_handle(self._handle.clone())

    def __copy__(self) -> Self:
        return self.clone()

    def __deepcopy__(self, memo: dict) -> Self:
        return self.clone()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ForwardTokenCursor):
            return NotImplemented
        if bool(self._handle) != bool(other._handle):
            return False
        if not self._handle:
            return True
        return self.unit is other.unit and self.extent.end == other.extent.end

    __hash__ = None  # type: ignore[assignment]

    def close(self) -> None:
        """Release the current token; the cursor becomes the sentinel."""
        self._handle.release()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def bidirectional(self) -> TokenCursor:
        """Move this cursor's token into a TokenCursor. This cursor becomes the sentinel."""
        self._require_token("convert")
        return TokenCursor._from_handle(self._handle.take())


class TokenCursor(ForwardTokenCursor):
    """A cursor that can also step backward, within a single file."""

    __slots__ = ()

    @classmethod
    def last(cls, unit: LexicalOracle, file: SourceFile) -> Self:
        """Position on the final token of file (the sentinel if it has none)."""
        return cls._from_handle(last_token(unit, file))

    def retreat(self) -> Self:
        """Step to the previous token of the same file.

        Raises FileStartError when the current token is the first of its
        file and CrossFileError when the step would leave the file.
        """
        self._require_token("retreat")
        previous = previous_token(self._handle)
        if not previous:
            extent = self.extent
            raise FileStartError(
                "no token before the first token of the file",
                extent.start,
                self._buffer_for(extent.start),
            )
        self._replace(previous)
        return self

    def walk_backward(self, limit: int | None = None) -> Iterator[Token]:
        """Yield the current token and each preceding one, retreating the cursor.

        Stops on the first token of the file, which stays current.
        """
        count = 0
        while self._handle and (limit is None or count < limit):
            yield self._handle.token
            count += 1
            if limit is not None and count >= limit:
                return
            previous = previous_token(self._handle)
            if not previous:
                return
            self._replace(previous)

    def canonicalize(self) -> Self:
        """Re-seat the token so its start is its first byte. Equality is unaffected."""
        self._require_token("canonicalize")
        self._replace(canonical_token(self._handle))
        return self

    def forward(self) -> ForwardTokenCursor:
        """Move this cursor's token into a ForwardTokenCursor. This cursor becomes the sentinel."""
        self._require_token("convert")
        return ForwardTokenCursor._from_handle(self._handle.take())

    def _buffer_for(self, location: SourceLocation) -> bytes | None:
        unit = self.unit
        if unit is None:
            return None
        file, _ = unit.resolve(location)
        return unit.buffer_of(file)
