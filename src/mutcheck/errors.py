"""Diagnostics, the diagnostic sink, rendering, and fatal error types."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from mutcheck.source import Span, byte_prefix

# ANSI color codes
_RED = "\033[1;31m"
_BOLD = "\033[1m"
_BLUE = "\033[1;34m"
_RESET = "\033[0m"


class SubjectKind(Enum):
    ARGUMENT = "Argument"
    VARIABLE = "Variable"
    FIELD = "Field"


@dataclass(frozen=True)
class Suggestion:
    """A suggested fix."""

    message: str
    replacement: str


@dataclass(frozen=True)
class Diagnostic:
    """A single positioned violation. Never mutated after creation."""

    code: str
    subject: SubjectKind
    name: str
    message: str
    span: Span
    suggestions: tuple[Suggestion, ...] = ()
    notes: tuple[str, ...] = ()

    def sort_key(self) -> tuple[str, int, int, str, str]:
        return (*self.span.sort_key(), self.code, self.name)


class DiagnosticSink:
    """Collects diagnostics from any number of threads.

    Insertion order carries no meaning; ``sorted()`` gives source order.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: list[Diagnostic] = []

    def add(self, diag: Diagnostic) -> None:
        with self._lock:
            self._items.append(diag)

    def extend(self, diags: list[Diagnostic]) -> None:
        with self._lock:
            self._items.extend(diags)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def sorted(self) -> list[Diagnostic]:
        with self._lock:
            return sorted(self._items, key=Diagnostic.sort_key)


class DiagnosticRenderer:
    """Renders diagnostics as ``file:line:col: message`` lines.

    With ``pretty`` the output is the multi-line form with the offending
    source line, carets, notes and suggestions.
    """

    def __init__(self, *, pretty: bool = False, color: bool = True) -> None:
        self.pretty = pretty
        self.color = color
        self._file_cache: dict[str, list[str]] = {}

    def _c(self, code: str) -> str:
        return code if self.color else ""

    def _get_source_line(self, filename: str, line_num: int) -> str | None:
        """Load and cache source file, return the 1-indexed line."""
        if filename not in self._file_cache:
            try:
                path = Path(filename)
                if path.is_file():
                    self._file_cache[filename] = path.read_text(encoding="utf-8").splitlines()
                else:
                    self._file_cache[filename] = []
            except (OSError, UnicodeDecodeError):
                self._file_cache[filename] = []
        lines = self._file_cache[filename]
        if 1 <= line_num <= len(lines):
            return lines[line_num - 1]
        return None

    def render(self, diag: Diagnostic) -> str:
        if not self.pretty:
            return f"{diag.span}: {diag.message}"
        return self._render_pretty(diag)

    def render_all(self, diags: list[Diagnostic]) -> str:
        return "\n".join(self.render(d) for d in sorted(diags, key=Diagnostic.sort_key))

    def _render_pretty(self, diag: Diagnostic) -> str:
        lines: list[str] = []
        span = diag.span

        # Header: error[M100]: message
        lines.append(
            f"{self._c(_RED)}error[{diag.code}]{self._c(_RESET)}"
            f"{self._c(_BOLD)}: {diag.message}{self._c(_RESET)}"
        )
        lines.append(f"  {self._c(_BLUE)}-->{self._c(_RESET)} {span}")
        lines.append(f"  {self._c(_BLUE)}   |{self._c(_RESET)}")

        gutter = f"{span.start_line:>4}"
        source_line = self._get_source_line(span.file, span.start_line)
        if source_line is not None:
            lines.append(
                f"  {self._c(_BLUE)}{gutter} |{self._c(_RESET)} {source_line}"
            )
            if span.start_line == span.end_line:
                # Span columns are bytes; carets line up with characters.
                before = len(byte_prefix(source_line, span.start_col - 1))
                through = len(byte_prefix(source_line, span.end_col))
                caret_len = max(1, through - before)
                padding = " " * before
                lines.append(
                    f"  {self._c(_BLUE)}   |{self._c(_RESET)} "
                    f"{padding}{self._c(_RED)}{'^' * caret_len}{self._c(_RESET)}"
                )

        for note in diag.notes:
            lines.append(f"  {self._c(_BLUE)}={self._c(_RESET)} note: {note}")

        for suggestion in diag.suggestions:
            lines.append(
                f"  {self._c(_BLUE)}try:{self._c(_RESET)} {suggestion.replacement}"
                f" ({suggestion.message})"
            )

        return "\n".join(lines)


class MutcheckError(Exception):
    """Base class for errors that abort a run."""


class LoadError(MutcheckError):
    """The target pattern or the Go sources could not be loaded."""

    def __init__(self, message: str, path: str | None = None) -> None:
        self.path = path
        super().__init__(f"{path}: {message}" if path else message)


class ConfigError(MutcheckError):
    """Invalid mutcheck.toml."""
