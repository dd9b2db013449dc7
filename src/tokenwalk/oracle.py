"""The forward-only lexical oracle consumed by the cursors.

Everything the navigation code knows about tokens, files and locations goes
through ``LexicalOracle``. ``TranslationUnit`` is the bundled implementation;
tests substitute their own to exercise unusual oracle behaviour.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from tokenwalk.tokens import Boundary, Extent, SourceFile, SourceLocation, Token


@runtime_checkable
class SyntacticRange(Protocol):
    """Any entity with an extent, used only to seed a cursor."""

    @property
    def extent(self) -> Extent: ...


@runtime_checkable
class LexicalOracle(Protocol):
    """Forward tokenization service owning files, buffers and token handles."""

    def lookup_from(self, location: SourceLocation) -> Token | None:
        """Return a new handle for the token beginning at or containing location."""
        ...

    def extent_of(self, token: Token) -> Extent: ...

    def release(self, token: Token) -> None:
        """Dispose of a handle. Releasing the same handle twice is an error."""
        ...

    def range_of(self, entity: SyntacticRange) -> Extent: ...

    def resolve(self, location: SourceLocation) -> tuple[SourceFile, int]: ...

    def location_at(self, file: SourceFile, offset: int) -> SourceLocation: ...

    def buffer_of(self, file: SourceFile) -> bytes: ...


def boundary_location(
    oracle: LexicalOracle,
    entity: SyntacticRange,
    boundary: Boundary = Boundary.START,
) -> SourceLocation:
    """Return the start or end location of an entity's extent.

    Entity "location" accessors may point into the middle of the entity, so
    the extent boundaries are used instead.
    """
    extent = oracle.range_of(entity)
    return extent.start if boundary is Boundary.START else extent.end
