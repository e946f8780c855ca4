"""Span tracking for diagnostics."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Span:
    """A range within a source file.

    Lines and columns are 1-indexed; columns count bytes, and ``end_col``
    is inclusive.
    """

    file: str
    start_line: int
    start_col: int
    end_line: int
    end_col: int

    def __str__(self) -> str:
        return f"{self.file}:{self.start_line}:{self.start_col}"

    def sort_key(self) -> tuple[str, int, int]:
        return (self.file, self.start_line, self.start_col)


def byte_prefix(line: str, byte_count: int) -> str:
    """The text of ``line`` covered by its first ``byte_count`` UTF-8 bytes."""
    return line.encode("utf-8")[:max(0, byte_count)].decode("utf-8", errors="ignore")
