"""TOML config loading for mutcheck.toml."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from mutcheck.errors import ConfigError
from mutcheck.symbols import DEFAULT_PREFIXES, NamingPolicy

CONFIG_FILE = "mutcheck.toml"


@dataclass
class CheckConfig:
    prefixes: list[str] = field(default_factory=lambda: list(DEFAULT_PREFIXES))
    exempt: list[str] = field(default_factory=list)
    include_tests: bool = False
    goroutines: bool = True

    def policy(self) -> NamingPolicy:
        return NamingPolicy(prefixes=tuple(self.prefixes), exempt=frozenset(self.exempt))


@dataclass
class OutputConfig:
    pretty: bool = False
    color: bool = True
    jobs: int = 1


@dataclass
class MutcheckConfig:
    check: CheckConfig = field(default_factory=CheckConfig)
    output: OutputConfig = field(default_factory=OutputConfig)


def find_config(start_path: Path | None = None) -> Path:
    """Walk up directories to find mutcheck.toml. Raises FileNotFoundError."""
    path = (start_path or Path.cwd()).resolve()
    if path.is_file():
        path = path.parent
    while True:
        candidate = path / CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = path.parent
        if parent == path:
            raise FileNotFoundError(f"No {CONFIG_FILE} found in any parent directory")
        path = parent


def _take(table: dict[str, Any], section: str, key: str, expected: type, default: Any) -> Any:
    value = table.pop(key, default)
    if expected is list:
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ConfigError(f"[{section}] {key} must be a list of strings")
    elif expected is int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"[{section}] {key} must be an integer")
    elif not isinstance(value, expected):
        raise ConfigError(f"[{section}] {key} must be a {expected.__name__}")
    return value


def _section(data: dict[str, Any], section: str) -> dict[str, Any]:
    table = data.pop(section)
    if not isinstance(table, dict):
        raise ConfigError(f"[{section}] must be a table")
    return dict(table)


def _reject_unknown(table: dict[str, Any], section: str) -> None:
    if table:
        names = ", ".join(sorted(table))
        raise ConfigError(f"unknown key(s) in [{section}]: {names}")


def load_config(path: Path) -> MutcheckConfig:
    """Parse a mutcheck.toml file into a MutcheckConfig."""
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"{path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"cannot read {path}: {e.strerror or e}") from e

    config = MutcheckConfig()

    if "check" in data:
        chk = _section(data, "check")
        config.check = CheckConfig(
            prefixes=_take(chk, "check", "prefixes", list, list(DEFAULT_PREFIXES)),
            exempt=_take(chk, "check", "exempt", list, []),
            include_tests=_take(chk, "check", "include_tests", bool, False),
            goroutines=_take(chk, "check", "goroutines", bool, True),
        )
        _reject_unknown(chk, "check")
        if not config.check.prefixes or not all(config.check.prefixes):
            raise ConfigError("[check] prefixes must contain non-empty strings")

    if "output" in data:
        out = _section(data, "output")
        config.output = OutputConfig(
            pretty=_take(out, "output", "pretty", bool, False),
            color=_take(out, "output", "color", bool, True),
            jobs=_take(out, "output", "jobs", int, 1),
        )
        _reject_unknown(out, "output")
        if config.output.jobs < 1:
            raise ConfigError("[output] jobs must be at least 1")

    if data:
        raise ConfigError(f"unknown section(s): {', '.join(sorted(data))}")

    return config
