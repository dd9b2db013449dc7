"""Test backward steps: reconstruction, lookup counts, and boundary failures."""

from __future__ import annotations

import pytest

from tokenwalk.cursor import TokenCursor
from tokenwalk.errors import CrossFileError, FileStartError
from tokenwalk.handle import OwnedToken
from tokenwalk.stepping import canonical_token, last_token, previous_token
from tokenwalk.tokens import SourceLocation
from tokenwalk.unit import TranslationUnit

from .conftest import cursor_at, span_of

SOURCE = b"""\
/* counter */
static int count(const char *s) {
    int n = 0;
    while (*s++ != '\\0') n += 1;   // walk
    return n >>= 0, "done here";
}
"""


def _forward_cursors(unit: TranslationUnit) -> list[TokenCursor]:
    """One cursor per token, each reached by forward steps from the file start."""
    cursors = []
    cursor = cursor_at(unit, 0)
    while cursor:
        cursors.append(cursor.clone())
        cursor.advance()
    return cursors


class TestScenarios:
    def test_whitespace_between_tokens(self, make_unit):
        unit = make_unit("foo  bar")
        cursor = cursor_at(unit, 5)
        assert span_of(cursor) == (5, 8)
        cursor.retreat()
        assert span_of(cursor) == (0, 3)
        assert cursor.token.spelling == "foo"
        cursor.close()

    def test_adjacent_single_character_tokens(self, make_unit):
        unit = make_unit("a+b")
        cursor = cursor_at(unit, 2)
        assert cursor.retreat().token.spelling == "+"
        assert span_of(cursor) == (1, 2)
        assert cursor.retreat().token.spelling == "a"
        assert span_of(cursor) == (0, 1)
        with pytest.raises(FileStartError):
            cursor.retreat()
        # A failed step leaves the cursor where it was
        assert span_of(cursor) == (0, 1)
        cursor.close()

    def test_past_last_token(self, make_unit):
        unit = make_unit("a+b")
        cursor = cursor_at(unit, 3)
        assert cursor.is_sentinel

    def test_first_token_after_leading_whitespace(self, make_unit):
        unit = make_unit("   \n first second")
        cursor = cursor_at(unit, 11).retreat()
        assert cursor.token.spelling == "first"
        with pytest.raises(FileStartError):
            cursor.retreat()
        cursor.close()

    def test_adjacent_multi_character_tokens(self, make_unit):
        unit = make_unit("ptr->field")
        cursor = cursor_at(unit, 5)
        assert cursor.retreat().token.spelling == "->"
        assert span_of(cursor) == (3, 5)
        assert cursor.retreat().token.spelling == "ptr"
        assert span_of(cursor) == (0, 3)
        cursor.close()


class TestInverseLaw:
    def test_retreat_after_advance(self, make_unit):
        unit = make_unit(SOURCE)
        cursors = _forward_cursors(unit)
        for original in cursors[1:]:
            stepped = original.clone().advance()
            if stepped.is_sentinel:
                continue
            stepped.retreat()
            assert stepped == original, f"{stepped!r} != {original!r}"
            stepped.close()

    def test_advance_after_retreat(self, make_unit):
        unit = make_unit(SOURCE)
        cursors = _forward_cursors(unit)
        for original in cursors[1:]:
            stepped = original.clone().retreat().advance()
            assert stepped == original, f"{stepped!r} != {original!r}"
            stepped.close()

    def test_backward_walk_matches_forward_walk(self, make_unit):
        unit = make_unit(SOURCE)
        forward_ends = [c.extent.end for c in _forward_cursors(unit)]
        cursor = TokenCursor.last(unit, unit.main_file)
        backward_ends = []
        for _ in cursor.walk_backward():
            backward_ends.append(cursor.extent.end)
        assert backward_ends == forward_ends[::-1]
        cursor.close()

    def test_reconstructed_starts_match_lexer(self, make_unit):
        unit = make_unit(SOURCE)
        lexemes = unit.lexemes(unit.main_file)
        expected = [
            (t.span.start.offset, t.span.end.offset)
            for t in lexemes
            # Starts inside literals and comments stop at their embedded spaces
            if b" " not in SOURCE[t.span.start.offset : t.span.end.offset]
        ]
        cursor = TokenCursor.last(unit, unit.main_file)
        seen = set()
        for _ in cursor.walk_backward():
            seen.add(span_of(cursor))
        assert set(expected) <= seen
        cursor.close()

    def test_no_tokens_leak(self, make_unit):
        unit = make_unit(SOURCE)
        cursor = TokenCursor.last(unit, unit.main_file)
        list(cursor.walk_backward())
        cursor.close()
        assert unit.live_tokens == 0


class TestEmbeddedWhitespace:
    def test_string_literal_keeps_its_end(self, make_unit):
        unit = make_unit('x = "a b";')
        cursor = cursor_at(unit, 9)
        cursor.retreat()
        assert cursor.token.spelling == 'b"'
        assert cursor == cursor_at(unit, 4)
        assert cursor.retreat().token.spelling == "="
        cursor.close()

    def test_comment_between_tokens(self, make_unit):
        unit = make_unit("a /* b c */ d")
        cursor = cursor_at(unit, 12)
        cursor.retreat()
        assert cursor.extent.end.offset == 11
        assert cursor.retreat().token.spelling == "a"
        cursor.close()


class TestLookupCounts:
    def test_common_case(self, make_unit):
        unit = make_unit("foo  bar")
        cursor = cursor_at(unit, 5)
        before = unit.lookup_count
        cursor.retreat()
        # One lookup finds the candidate, one confirms the run start.
        assert unit.lookup_count - before == 2
        cursor.close()

    def test_single_character_run_skips_search(self, make_unit):
        unit = make_unit("a b")
        cursor = cursor_at(unit, 2)
        before = unit.lookup_count
        cursor.retreat()
        assert unit.lookup_count - before == 1
        cursor.close()

    def test_start_inside_current_token_keeps_scanning(self, make_unit):
        unit = make_unit("abc def")
        cursor = cursor_at(unit, 5)
        assert span_of(cursor) == (5, 7)
        before = unit.lookup_count
        cursor.retreat()
        assert cursor.token.spelling == "abc"
        # "d" reproduces the current token, "c" finds abc, "a" confirms it
        assert unit.lookup_count - before == 3
        cursor.close()

    def test_line_splice_before_token(self, make_unit):
        unit = make_unit("a \\\n b")
        cursor = cursor_at(unit, 5)
        before = unit.lookup_count
        assert cursor.retreat().token.spelling == "a"
        # The backslash is not whitespace; its lookup returns b again
        assert unit.lookup_count - before == 2
        cursor.close()

    @pytest.mark.parametrize("length", [2, 3, 8, 33, 200, 1000])
    def test_binary_search_is_logarithmic(self, make_unit, length):
        name = "x" * length
        unit = make_unit(f"({name} y")
        cursor = cursor_at(unit, length + 2)
        before = unit.lookup_count
        cursor.retreat()
        used = unit.lookup_count - before
        assert span_of(cursor) == (1, length + 1)
        assert used <= 2 + (length + 1).bit_length()
        cursor.close()


class SplicedUnit(TranslationUnit):
    """Reports the first bytes of main.c as coming from an included header."""

    def lookup_from(self, location):
        token = super().lookup_from(location)
        if token is not None and location.file.name == "main.c" and location.offset < 3:
            self.release(token)
            return super().lookup_from(SourceLocation(self.file("header.h"), 0))
        return token


class TestCrossFile:
    def test_previous_token_in_other_file(self):
        unit = SplicedUnit("spliced")
        main = unit.add_file("main.c", "foo bar")
        unit.add_file("header.h", "baz")
        with unit:
            cursor = TokenCursor(unit, SourceLocation(main, 4))
            with pytest.raises(CrossFileError):
                cursor.retreat()
            assert cursor.token.spelling == "bar"
            cursor.close()
            assert unit.live_tokens == 0

    def test_forward_cursor_is_unaffected(self):
        unit = SplicedUnit("spliced")
        main = unit.add_file("main.c", "foo bar")
        unit.add_file("header.h", "baz")
        with unit:
            cursor = TokenCursor(unit, SourceLocation(main, 0)).forward()
            assert cursor.token.spelling == "baz"
            cursor.advance()
            assert cursor.is_sentinel


class TestStepFunctions:
    def test_previous_token_of_first_is_empty(self, make_unit):
        unit = make_unit("only")
        with OwnedToken.lookup(unit, unit.location_at(unit.main_file, 0)) as handle:
            assert not previous_token(handle)

    def test_empty_handle_rejected(self):
        with pytest.raises(ValueError):
            previous_token(OwnedToken())

    def test_last_token(self, make_unit):
        unit = make_unit("int value;  \n\n")
        with last_token(unit, unit.main_file) as handle:
            assert handle.token.spelling == ";"
            assert handle.extent.start.offset == 9

    def test_last_token_refines_start(self, make_unit):
        unit = make_unit("return total\n")
        with last_token(unit, unit.main_file) as handle:
            assert handle.token.spelling == "total"
            assert handle.extent.start.offset == 7

    def test_last_token_of_blank_file(self, make_unit):
        unit = make_unit(" \n\t")
        assert not last_token(unit, unit.main_file)


class TestCanonicalize:
    def test_from_leading_whitespace(self, make_unit):
        unit = make_unit("  foo")
        cursor = cursor_at(unit, 0)
        before = unit.lookup_count
        cursor.canonicalize()
        assert span_of(cursor) == (2, 5)
        assert unit.lookup_count - before == 1
        cursor.close()

    def test_from_inside_token(self, make_unit):
        unit = make_unit("x foobar")
        cursor = cursor_at(unit, 5)
        assert cursor.token.spelling == "bar"
        original = cursor.clone()
        cursor.canonicalize()
        assert span_of(cursor) == (2, 8)
        assert cursor.token.spelling == "foobar"
        assert cursor == original

    def test_skips_line_splice(self, make_unit):
        unit = make_unit("a \\\n b")
        cursor = cursor_at(unit, 0).advance()
        assert span_of(cursor) == (1, 6)
        cursor.canonicalize()
        assert span_of(cursor) == (5, 6)
        assert cursor.token.spelling == "b"
        cursor.close()

    def test_skips_crlf_line_splice(self, make_unit):
        unit = make_unit(b"x\\\r\ny")
        cursor = cursor_at(unit, 0).advance().canonicalize()
        assert span_of(cursor) == (4, 5)
        cursor.close()

    def test_already_canonical(self, make_unit):
        unit = make_unit("a+b")
        cursor = cursor_at(unit, 1).canonicalize()
        assert span_of(cursor) == (1, 2)
        cursor.close()

    def test_canonical_token_function(self, make_unit):
        unit = make_unit("foo  bar")
        with OwnedToken.lookup(unit, unit.location_at(unit.main_file, 3)) as handle:
            with canonical_token(handle) as canonical:
                assert canonical.extent.start.offset == 5
