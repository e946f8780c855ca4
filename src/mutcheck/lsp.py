"""mutcheck Language Server: pygls-based diagnostics for .go files over stdio.

Every open, change or save re-analyses the module containing the document,
with all open buffers overlaid on what is on disk, and publishes the
diagnostics that fall in that document.
"""

from __future__ import annotations

import logging
from pathlib import Path

from lsprotocol import types as lsp
from pygls.lsp.server import LanguageServer
from pygls.uris import to_fs_path

from mutcheck import __version__
from mutcheck.analysis import check_patterns
from mutcheck.config import MutcheckConfig, find_config, load_config
from mutcheck.errors import Diagnostic, MutcheckError
from mutcheck.loader import find_module
from mutcheck.source import Span, byte_prefix

logger = logging.getLogger(__name__)


def _utf16_column(lines: list[str] | None, line: int, byte_col: int) -> int:
    if lines is None or not 0 <= line < len(lines):
        return byte_col
    return len(byte_prefix(lines[line], byte_col).encode("utf-16-le")) // 2


def span_to_range(span: Span, lines: list[str] | None = None) -> lsp.Range:
    """Convert a 1-indexed inclusive Span to a 0-indexed LSP Range.

    Span columns count UTF-8 bytes. Given the document ``lines``, they are
    converted to the UTF-16 code units LSP positions use.
    """
    start_line, end_line = span.start_line - 1, span.end_line - 1
    return lsp.Range(
        start=lsp.Position(
            line=start_line,
            character=_utf16_column(lines, start_line, span.start_col - 1),
        ),
        end=lsp.Position(
            line=end_line,
            character=_utf16_column(lines, end_line, span.end_col),
        ),
    )


def _to_lsp_diag(d: Diagnostic, lines: list[str] | None = None) -> lsp.Diagnostic:
    return lsp.Diagnostic(
        range=span_to_range(d.span, lines),
        severity=lsp.DiagnosticSeverity.Warning,
        source="mutcheck",
        code=d.code,
        message=d.message,
    )


def _error_diag(message: str) -> lsp.Diagnostic:
    return lsp.Diagnostic(
        range=lsp.Range(start=lsp.Position(0, 0), end=lsp.Position(0, 0)),
        severity=lsp.DiagnosticSeverity.Error,
        source="mutcheck",
        message=message,
    )


# ── Server ────────────────────────────────────────────────────────

server = LanguageServer(
    "mutcheck-lsp", __version__,
    text_document_sync_kind=lsp.TextDocumentSyncKind.Full,
)
# Open buffers, by filesystem path.
_sources: dict[str, str] = {}


def _document_path(uri: str) -> Path:
    fs_path = to_fs_path(uri)
    if fs_path is None:
        raise MutcheckError(f"not a file URI: {uri}")
    return Path(fs_path).resolve()


def _config_for(path: Path) -> MutcheckConfig:
    try:
        return load_config(find_config(path))
    except FileNotFoundError:
        return MutcheckConfig()


def _analyze(uri: str) -> list[lsp.Diagnostic]:
    """Analyse the module around ``uri``; diagnostics for that document only."""
    try:
        path = _document_path(uri)
        module = find_module(path.parent)
        config = _config_for(path)
        result = check_patterns(
            [f"{module.path}/..."],
            config,
            cwd=module.root,
            overlays=_sources,
            strict=False,
        )
    except MutcheckError as e:
        return [_error_diag(f"mutcheck: {e}")]
    except Exception as e:
        logger.exception("analysis of %s failed", uri)
        return [_error_diag(f"[internal] mutcheck error: {e}")]

    document = str(path)
    lines = _document_lines(path)
    return [_to_lsp_diag(d, lines) for d in result.diagnostics if d.span.file == document]


def _document_lines(path: Path) -> list[str] | None:
    text = _sources.get(str(path))
    if text is None:
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            return None
    return text.splitlines()


def _publish(uri: str) -> None:
    server.text_document_publish_diagnostics(lsp.PublishDiagnosticsParams(
        uri=uri,
        diagnostics=_analyze(uri),
    ))


def _remember(uri: str, source: str) -> None:
    fs_path = to_fs_path(uri)
    if fs_path is not None:
        _sources[str(Path(fs_path).resolve())] = source


# ── LSP Feature Handlers ─────────────────────────────────────────


@server.feature(lsp.TEXT_DOCUMENT_DID_OPEN)
def did_open(params: lsp.DidOpenTextDocumentParams) -> None:
    _remember(params.text_document.uri, params.text_document.text)
    _publish(params.text_document.uri)


@server.feature(lsp.TEXT_DOCUMENT_DID_CHANGE)
def did_change(params: lsp.DidChangeTextDocumentParams) -> None:
    uri = params.text_document.uri
    # Full sync: the last change holds the whole text
    if params.content_changes:
        _remember(uri, params.content_changes[-1].text)
    _publish(uri)


@server.feature(lsp.TEXT_DOCUMENT_DID_SAVE)
def did_save(params: lsp.DidSaveTextDocumentParams) -> None:
    _publish(params.text_document.uri)


@server.feature(lsp.TEXT_DOCUMENT_DID_CLOSE)
def did_close(params: lsp.DidCloseTextDocumentParams) -> None:
    uri = params.text_document.uri
    fs_path = to_fs_path(uri)
    if fs_path is not None:
        _sources.pop(str(Path(fs_path).resolve()), None)
    server.text_document_publish_diagnostics(lsp.PublishDiagnosticsParams(
        uri=uri,
        diagnostics=[],
    ))


# ── Entry point ──────────────────────────────────────────────────


def main() -> None:
    """Start the mutcheck language server on stdio."""
    server.start_io()
