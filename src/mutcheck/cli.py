"""mutcheck command line."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from mutcheck import __version__
from mutcheck.analysis import check_patterns
from mutcheck.config import MutcheckConfig, find_config, load_config
from mutcheck.errors import DiagnosticRenderer, MutcheckError
from mutcheck.loader import load_program
from mutcheck.project import scaffold
from mutcheck.symbols import DeclarationIndex

# Exit statuses of `mutcheck check`.
EXIT_VIOLATIONS = 1
EXIT_FATAL = 2

_verbose_option = click.option(
    "-v", "--verbose", count=True, help="Log progress (-v) or debug detail (-vv) to stderr.",
)


def _setup_logging(verbose: int) -> None:
    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _load_config(config_path: str | None) -> MutcheckConfig:
    """The explicit --config file, else the nearest mutcheck.toml, else defaults."""
    if config_path is not None:
        return load_config(Path(config_path))
    try:
        return load_config(find_config(Path.cwd()))
    except FileNotFoundError:
        return MutcheckConfig()


def _fatal(e: MutcheckError) -> None:
    click.echo(f"error: {e}", err=True)
    raise SystemExit(EXIT_FATAL)


@click.group()
@click.version_option(__version__, prog_name="mutcheck")
def main() -> None:
    """Enforce the mut/Mut mutability naming convention in Go code."""


@main.command()
@click.argument("patterns", nargs=-1)
@click.option("--pretty", is_flag=True, help="Show source lines and suggestions.")
@click.option("--color/--no-color", default=None, help="Colorize --pretty output.")
@click.option("--jobs", "-j", type=click.IntRange(min=1), default=None,
              help="Check files on N threads.")
@click.option("--tests", "include_tests", is_flag=True, help="Also check _test.go files.")
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False),
              default=None, help="Path to mutcheck.toml.")
@_verbose_option
def check(
    patterns: tuple[str, ...],
    pretty: bool,
    color: bool | None,
    jobs: int | None,
    include_tests: bool,
    config_path: str | None,
    verbose: int,
) -> None:
    """Check Go packages matching PATTERNS (default ./...)."""
    _setup_logging(verbose)
    try:
        config = _load_config(config_path)
        if pretty:
            config.output.pretty = True
        if color is not None:
            config.output.color = color
        if jobs is not None:
            config.output.jobs = jobs
        if include_tests:
            config.check.include_tests = True

        cwd = Path.cwd()
        result = check_patterns(
            list(patterns) or ["./..."], config, cwd=cwd, display_root=cwd,
        )
    except MutcheckError as e:
        _fatal(e)
        return

    files = sum(len(p.files) for p in result.packages)
    if result.ok:
        click.echo(f"checked {files} file(s) - no violations", err=True)
        return

    renderer = DiagnosticRenderer(pretty=config.output.pretty, color=config.output.color)
    click.echo(renderer.render_all(result.diagnostics))
    click.echo(f"checked {files} file(s) - {result.count} violation(s)", err=True)
    raise SystemExit(EXIT_VIOLATIONS)


@main.command()
@click.argument("patterns", nargs=-1)
@click.option("--tests", "include_tests", is_flag=True, help="Also index _test.go files.")
@_verbose_option
def index(patterns: tuple[str, ...], include_tests: bool, verbose: int) -> None:
    """Print the declaration index of packages matching PATTERNS."""
    _setup_logging(verbose)
    try:
        packages = load_program(
            list(patterns) or ["./..."], cwd=Path.cwd(), include_tests=include_tests,
        )
    except MutcheckError as e:
        _fatal(e)
        return

    declarations = DeclarationIndex.build(packages)
    for qid in declarations:
        params = declarations.params(qid) or []
        click.echo(f"{qid}({', '.join(params)})")


@main.command()
@click.argument("path", default=".", type=click.Path(exists=True, file_okay=False))
def init(path: str) -> None:
    """Write a default mutcheck.toml."""
    try:
        config_path = scaffold(Path(path))
        click.echo(f"created {config_path}")
    except FileExistsError as e:
        click.echo(f"error: {e}", err=True)
        raise SystemExit(1)


@main.command()
def lsp() -> None:
    """Start the mutcheck language server."""
    from mutcheck.lsp import main as lsp_main

    lsp_main()
