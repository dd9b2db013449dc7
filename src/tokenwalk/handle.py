"""Ownership wrapper pairing a token handle with the unit that must release it."""

from __future__ import annotations

from tokenwalk.oracle import LexicalOracle
from tokenwalk.tokens import Extent, SourceLocation, Token


class OwnedToken:
    """Owns at most one token and releases it exactly once.

    An empty handle models "no token". ``take()`` moves ownership out and
    leaves this handle empty.

    ``clone()`` is not a free copy: it asks the oracle for the token again,
    at this token's start location, so the clone owns a handle of its own.
    Expect one lookup per clone.
    """

    __slots__ = ("_unit", "_token")

    def __init__(self, unit: LexicalOracle | None = None, token: Token | None = None) -> None:
        if token is not None and unit is None:
            raise ValueError("a token needs the unit that releases it")
        self._unit = unit
        self._token = token

    @classmethod
    def lookup(cls, unit: LexicalOracle, location: SourceLocation) -> OwnedToken:
        """Own whatever the oracle returns at location (possibly nothing)."""
        return cls(unit, unit.lookup_from(location))

    def __bool__(self) -> bool:
        return self._token is not None

    def __repr__(self) -> str:
        if self._token is None:
            return "OwnedToken(<empty>)"
        return f"OwnedToken({self._token.spelling!r} @ {self._token.extent.end.offset})"

    def __enter__(self) -> OwnedToken:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()

    def __del__(self) -> None:
        unit = getattr(self, "_unit", None)
        token = getattr(self, "_token", None)
        # Tokens die with their unit; releasing after disposal is an error.
        if token is not None and unit is not None and not getattr(unit, "disposed", False):
            self._token = None
            unit.release(token)

    @property
    def unit(self) -> LexicalOracle | None:
        return self._unit

    @property
    def token(self) -> Token | None:
        return self._token

    @property
    def extent(self) -> Extent:
        if self._token is None or self._unit is None:
            raise ValueError("empty handle has no extent")
        return self._unit.extent_of(self._token)

    def release(self) -> None:
        """Release the owned token, if any. The handle is empty afterwards."""
        token, self._token = self._token, None
        if token is not None and self._unit is not None:
            self._unit.release(token)

    def take(self) -> OwnedToken:
        """Move ownership into a new handle; this one becomes empty."""
        moved = OwnedToken(self._unit, self._token)
        self._token = None
        return moved

    def clone(self) -> OwnedToken:
        if self._token is None or self._unit is None:
            return OwnedToken(self._unit)
        return OwnedToken.lookup(self._unit, self.extent.start)
