"""Shared test helpers for the mutcheck test suite."""

from __future__ import annotations

import textwrap
from pathlib import Path

from mutcheck.analysis import AnalysisResult, check_patterns
from mutcheck.ast_nodes import Package, SourceFile
from mutcheck.config import MutcheckConfig
from mutcheck.errors import Diagnostic
from mutcheck.loader import parse_source

MODULE = "example.com/demo"
GO_MOD = f"module {MODULE}\n\ngo 1.21\n"


def write_module(root: Path, files: dict[str, str]) -> Path:
    """Write a go.mod plus ``files`` (relative path -> Go source) under root."""
    (root / "go.mod").write_text(GO_MOD)
    for name, text in files.items():
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(text), encoding="utf-8")
    return root


def analyze_files(
    root: Path,
    files: dict[str, str],
    config: MutcheckConfig | None = None,
    patterns: tuple[str, ...] = ("./...",),
) -> AnalysisResult:
    """Write a module and analyse it; spans are relative to ``root``."""
    write_module(root, files)
    return check_patterns(list(patterns), config, cwd=root, display_root=root)


def analyze_main(
    root: Path, source: str, config: MutcheckConfig | None = None,
) -> AnalysisResult:
    return analyze_files(root, {"main.go": source}, config)


def lines(result: AnalysisResult) -> list[str]:
    """Diagnostics in the one-line output format."""
    return [f"{d.span}: {d.message}" for d in result.diagnostics]


def check_clean(root: Path, source: str, config: MutcheckConfig | None = None) -> AnalysisResult:
    """Analyse a single-file module, asserting no diagnostics."""
    result = analyze_main(root, source, config)
    assert not result.diagnostics, f"Unexpected diagnostics: {lines(result)}"
    return result


def check_reports(
    root: Path, source: str, code: str, config: MutcheckConfig | None = None,
) -> list[Diagnostic]:
    """Analyse a single-file module, asserting the given code appears."""
    result = analyze_main(root, source, config)
    matching = [d for d in result.diagnostics if d.code == code]
    assert matching, (
        f"Expected {code} but got: "
        f"{[f'{d.code}: {d.message}' for d in result.diagnostics] or 'no diagnostics'}"
    )
    return matching


def parse(source: str, path: str = "test.go") -> SourceFile:
    return parse_source(textwrap.dedent(source), path)


def package(source: str, package_id: str = MODULE, path: str = "test.go") -> Package:
    """A one-file Package built from source."""
    file = parse(source, path)
    return Package(id=package_id, name=file.package_name, directory=".", files=[file])
