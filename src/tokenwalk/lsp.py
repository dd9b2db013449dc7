"""Minimal LSP server for tokenwalk — lex diagnostics and token stepping."""

from __future__ import annotations

from typing import Any

from lsprotocol.types import (
    TEXT_DOCUMENT_DID_CHANGE,
    TEXT_DOCUMENT_DID_OPEN,
    Diagnostic,
    DiagnosticSeverity,
    DidChangeTextDocumentParams,
    DidOpenTextDocumentParams,
    Position,
    PublishDiagnosticsParams,
    Range,
    TextDocumentSyncKind,
)
from pygls.lsp.server import LanguageServer

from tokenwalk import __version__
from tokenwalk.cursor import TokenCursor
from tokenwalk.errors import FileStartError, LexError
from tokenwalk.lexer import tokenize
from tokenwalk.unit import TranslationUnit

NEXT_TOKEN = "tokenwalk/nextToken"
PREVIOUS_TOKEN = "tokenwalk/previousToken"

server = LanguageServer(
    "tokenwalk-lsp", __version__, text_document_sync_kind=TextDocumentSyncKind.Full
)


def _filename(uri: str) -> str:
    return uri.rsplit("/", 1)[-1] if "/" in uri else uri


def _validate(ls: LanguageServer, uri: str) -> None:
    """Lex the document and publish diagnostics."""
    doc = ls.workspace.get_text_document(uri)
    diagnostics: list[Diagnostic] = []

    try:
        tokenize(doc.source, _filename(uri))
    except LexError as exc:
        buffer = doc.source.encode("utf-8")
        start = _lsp_position(buffer, exc.position.offset)
        diagnostics.append(
            Diagnostic(
                range=Range(
                    start=start,
                    end=Position(line=start.line, character=start.character + 1),
                ),
                message=exc.message,
                severity=DiagnosticSeverity.Error,
                source="tokenwalk",
            )
        )

    ls.text_document_publish_diagnostics(
        PublishDiagnosticsParams(uri=uri, diagnostics=diagnostics)
    )


def _byte_offset(source: str, line: int, character: int) -> int:
    """Convert a 0-based LSP line/character (UTF-16 code units) to a UTF-8 byte offset."""
    lines = source.split("\n")
    if line >= len(lines):
        return len(source.encode("utf-8"))
    before = sum(len(text.encode("utf-8")) + 1 for text in lines[:line])
    text = lines[line].rstrip("\r")
    units = 0
    for index, ch in enumerate(text):
        if units >= character:
            return before + len(text[:index].encode("utf-8"))
        units += 2 if ord(ch) > 0xFFFF else 1
    return before + len(text.encode("utf-8"))


def _lsp_position(buffer: bytes, offset: int) -> Position:
    """Convert a UTF-8 byte offset to a 0-based LSP position in UTF-16 code units."""
    line = buffer.count(b"\n", 0, offset)
    line_start = buffer.rfind(b"\n", 0, offset) + 1
    text = buffer[line_start:offset].decode("utf-8", errors="replace")
    return Position(line=line, character=len(text.encode("utf-16-le")) // 2)


def _neighbor_range(
    ls: LanguageServer, uri: str, line: int, character: int, *, backward: bool
) -> Range | None:
    """Range of the token after (or before) the caret, None at either end."""
    doc = ls.workspace.get_text_document(uri)
    buffer = doc.source.encode("utf-8")
    offset = min(_byte_offset(doc.source, line, character), len(buffer))

    try:
        unit = TranslationUnit.from_source(buffer, _filename(uri))
        unit.lexemes(unit.main_file)
    except LexError:
        return None

    with unit:
        file = unit.main_file
        cursor = TokenCursor(unit, unit.location_at(file, offset))
        past_end = cursor.is_sentinel
        if past_end:
            # Past the last token: only a backward step has a target.
            if not backward:
                return None
            cursor = TokenCursor.last(unit, file)

        with cursor:
            if not cursor:
                return None
            if not past_end:
                cursor.canonicalize()
                if backward:
                    try:
                        cursor.retreat()
                    except FileStartError:
                        return None
                elif cursor.extent.start.offset <= offset:
                    # Caret is inside this token; the next one follows it.
                    cursor.advance()
                    if not cursor:
                        return None
                    cursor.canonicalize()
            extent = cursor.extent
            return Range(
                start=_lsp_position(buffer, extent.start.offset),
                end=_lsp_position(buffer, extent.end.offset),
            )


def _field(obj: Any, *names: str) -> Any:
    for name in names:
        if isinstance(obj, dict):
            if name in obj:
                return obj[name]
        elif hasattr(obj, name):
            return getattr(obj, name)
    raise KeyError(f"request parameter missing: {names[0]}")


def _request_position(params: Any) -> tuple[str, int, int]:
    text_document = _field(params, "textDocument", "text_document")
    position = _field(params, "position")
    return (
        _field(text_document, "uri"),
        _field(position, "line"),
        _field(position, "character"),
    )


@server.feature(TEXT_DOCUMENT_DID_OPEN)
def did_open(ls: LanguageServer, params: DidOpenTextDocumentParams) -> None:
    _validate(ls, params.text_document.uri)


@server.feature(TEXT_DOCUMENT_DID_CHANGE)
def did_change(ls: LanguageServer, params: DidChangeTextDocumentParams) -> None:
    _validate(ls, params.text_document.uri)


@server.feature(NEXT_TOKEN)
def next_token(ls: LanguageServer, params: Any) -> Range | None:
    uri, line, character = _request_position(params)
    return _neighbor_range(ls, uri, line, character, backward=False)


@server.feature(PREVIOUS_TOKEN)
def previous_token(ls: LanguageServer, params: Any) -> Range | None:
    uri, line, character = _request_position(params)
    return _neighbor_range(ls, uri, line, character, backward=True)


def main() -> None:
    server.start_io()
