"""Whole-program analysis: load, index, then check every function."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

from mutcheck.ast_nodes import Package, SourceFile
from mutcheck.checker import Checker, FunctionOutcome
from mutcheck.config import MutcheckConfig
from mutcheck.errors import Diagnostic, DiagnosticSink
from mutcheck.loader import load_program
from mutcheck.symbols import DEFAULT_POLICY, DeclarationIndex, NamingPolicy

logger = logging.getLogger(__name__)


@dataclass
class AnalysisResult:
    """Result of analysing a set of packages."""

    packages: list[Package]
    index: DeclarationIndex
    diagnostics: list[Diagnostic] = field(default_factory=list)
    skipped: list[FunctionOutcome] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.diagnostics

    @property
    def count(self) -> int:
        return len(self.diagnostics)


def analyze(
    packages: Iterable[Package],
    *,
    policy: NamingPolicy = DEFAULT_POLICY,
    goroutines: bool = True,
    jobs: int = 1,
) -> AnalysisResult:
    """Index every package, then check every file.

    The index is complete before the first file is checked and is only read
    afterwards, so files can be checked on a thread pool.
    """
    packages = list(packages)
    index = DeclarationIndex.build(packages)
    logger.info("indexed %d function(s) in %d package(s)", len(index), len(packages))

    work = [(package, file) for package in packages for file in package.files]
    sink = DiagnosticSink()
    skipped: list[FunctionOutcome] = []

    def check_file(item: tuple[Package, SourceFile]) -> list[FunctionOutcome]:
        package, file = item
        outcomes = Checker(index, policy=policy, goroutines=goroutines).check(package, file)
        for outcome in outcomes:
            sink.extend(outcome.diagnostics)
        return outcomes

    if jobs > 1 and len(work) > 1:
        with ThreadPoolExecutor(max_workers=jobs) as pool:
            results = list(pool.map(check_file, work))
    else:
        results = [check_file(item) for item in work]

    for outcomes in results:
        for outcome in outcomes:
            if outcome.skipped:
                logger.warning("skipped %s: %s", outcome.name, outcome.reason)
                skipped.append(outcome)

    return AnalysisResult(
        packages=packages,
        index=index,
        diagnostics=sink.sorted(),
        skipped=skipped,
    )


def check_patterns(
    patterns: Iterable[str],
    config: MutcheckConfig | None = None,
    *,
    cwd: Path | None = None,
    overlays: Mapping[str, str] | None = None,
    strict: bool = True,
    display_root: Path | None = None,
) -> AnalysisResult:
    """Load the packages matched by ``patterns`` and analyse them."""
    config = config or MutcheckConfig()
    packages = load_program(
        patterns,
        cwd=cwd,
        include_tests=config.check.include_tests,
        strict=strict,
        overlays=overlays,
        display_root=display_root,
    )
    return analyze(
        packages,
        policy=config.check.policy(),
        goroutines=config.check.goroutines,
        jobs=config.output.jobs,
    )
