"""Single steps through a token stream using only forward oracle lookups.

The oracle can only answer "which token begins at or covers this location",
so stepping backward has to reconstruct the previous token:

1. Whitespace skip. Walk left from the current token's start, skipping
   whitespace bytes without asking the oracle. At each other byte, look the
   token up. A result with the current token's end is the current token
   again, so keep walking; the first result with a different end is the
   previous token, found from somewhere inside it.

2. Start refinement. The lookup in step 1 came from an arbitrary byte of the
   previous token, so its start is not necessarily the token's first byte.
   Every byte of a token yields a lookup with that token's end, and bytes of
   earlier tokens do not, so the first byte is the lowest offset in the
   surrounding run of non-whitespace bytes whose lookup still ends at the
   candidate's end. Binary search that run.

Step 1 costs a byte comparison per whitespace byte and usually one lookup;
step 2 costs O(log n) lookups for a run of n bytes.
"""

from __future__ import annotations

import logging

from tokenwalk.errors import CrossFileError, CursorError
from tokenwalk.handle import OwnedToken
from tokenwalk.oracle import LexicalOracle
from tokenwalk.tokens import SourceFile, SourceLocation, is_space_byte

logger = logging.getLogger(__name__)


def next_token(current: OwnedToken) -> OwnedToken:
    """Look up the token following current, at current's end location.

    The result is empty at the end of the stream.
    """
    unit = _unit_of(current)
    return OwnedToken.lookup(unit, current.extent.end)


def previous_token(current: OwnedToken) -> OwnedToken:
    """Reconstruct the token immediately before current, in the same file.

    Returns an empty handle when current is the first token of its file.
    Raises CrossFileError when current spans files or the previous token
    would lie in another file.
    """
    unit = _unit_of(current)
    extent = current.extent
    file, start = unit.resolve(extent.start)
    end_file, _ = unit.resolve(extent.end)
    buffer = unit.buffer_of(file)
    if end_file != file:
        raise CrossFileError("token extent spans two files", extent.start, buffer)
    if start > len(buffer):
        raise CursorError("token start lies outside its file buffer", extent.start)

    return _reconstruct_before(unit, file, buffer, start, extent.end)


def last_token(unit: LexicalOracle, file: SourceFile) -> OwnedToken:
    """The final token of file, found from the end of its buffer."""
    buffer = unit.buffer_of(file)
    return _reconstruct_before(unit, file, buffer, len(buffer), None)


def canonical_token(current: OwnedToken) -> OwnedToken:
    """Look current's token up again from its first byte.

    A token reached by a forward step starts at the end of the previous
    token, and one reached from inside starts mid-token. The result starts
    where a left-to-right scan would put it. The end never changes.
    """
    unit = _unit_of(current)
    extent = current.extent
    file, start = unit.resolve(extent.start)
    end_file, end = unit.resolve(extent.end)
    buffer = unit.buffer_of(file)
    if end_file != file:
        raise CrossFileError("token extent spans two files", extent.start, buffer)

    offset = _skip_trivia(buffer, start, end)
    if offset != start:
        # Started in leading trivia; the first byte past it is the token's.
        logger.debug("canonical start in %s: %d -> %d", file.name, start, offset)
        return OwnedToken.lookup(unit, unit.location_at(file, offset))

    candidate = current.clone()
    if not candidate:
        return candidate
    return _refine_start(unit, file, buffer, offset, candidate)


def _unit_of(handle: OwnedToken) -> LexicalOracle:
    if not handle or handle.unit is None:
        raise ValueError("cannot step from an empty token handle")
    return handle.unit


def _skip_trivia(buffer: bytes, offset: int, end: int) -> int:
    """First offset at or after offset, below end, that is not whitespace or a line splice."""
    while offset < end:
        if is_space_byte(buffer[offset]):
            offset += 1
        elif buffer.startswith(b"\\\n", offset):
            offset += 2
        elif buffer.startswith(b"\\\r\n", offset):
            offset += 3
        else:
            break
    return offset


def _reconstruct_before(
    unit: LexicalOracle,
    file: SourceFile,
    buffer: bytes,
    start: int,
    current_end: SourceLocation | None,
) -> OwnedToken:
    before = getattr(unit, "lookup_count", None)

    found = _skip_whitespace(unit, file, buffer, start, current_end)
    if found is None:
        return OwnedToken(unit)
    offset, candidate = found

    candidate_file, _ = unit.resolve(candidate.extent.end)
    if candidate_file != file:
        candidate.release()
        raise CrossFileError(
            "previous token lies in another file",
            unit.location_at(file, offset),
            buffer,
        )

    result = _refine_start(unit, file, buffer, offset, candidate)
    if before is not None:
        logger.debug(
            "previous token in %s ends at %d: %d lookups",
            file.name,
            result.extent.end.offset,
            unit.lookup_count - before,
        )
    return result


def _skip_whitespace(
    unit: LexicalOracle,
    file: SourceFile,
    buffer: bytes,
    start: int,
    current_end: SourceLocation | None,
) -> tuple[int, OwnedToken] | None:
    """Find a token ending somewhere other than current_end, scanning left.

    Returns the offset it was found from and the owned candidate, or None
    once the file start is reached.
    """
    offset = start
    while offset > 0:
        offset -= 1
        if is_space_byte(buffer[offset]):
            continue

        candidate = OwnedToken.lookup(unit, unit.location_at(file, offset))
        if candidate and (current_end is None or candidate.extent.end != current_end):
            return offset, candidate
        # Same token again (or nothing); keep walking left.
        candidate.release()
    return None


def _refine_start(
    unit: LexicalOracle,
    file: SourceFile,
    buffer: bytes,
    offset: int,
    candidate: OwnedToken,
) -> OwnedToken:
    """Binary search the non-whitespace run ending at offset for the token start."""
    run_start = offset
    while run_start > 0 and not is_space_byte(buffer[run_start - 1]):
        run_start -= 1
    if run_start == offset:
        # Single byte run
        return candidate

    target_end = candidate.extent.end

    def probe(position: int) -> OwnedToken | None:
        found = OwnedToken.lookup(unit, unit.location_at(file, position))
        if found and found.extent.end == target_end:
            return found
        found.release()
        return None

    # Most runs hold a single token, so try the run start first.
    found = probe(run_start)
    if found is not None:
        candidate.release()
        return found

    lo, hi = run_start + 1, offset
    while lo < hi:
        mid = lo + (hi - lo) // 2
        found = probe(mid)
        if found is not None:
            # Still inside the candidate; look further left.
            candidate.release()
            candidate = found
            hi = mid
        else:
            # Overshot into an earlier token.
            lo = mid + 1
    return candidate
