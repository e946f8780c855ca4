"""Config scaffolding for `mutcheck init`."""

from __future__ import annotations

from pathlib import Path

from mutcheck.config import CONFIG_FILE

_MUTCHECK_TOML_TEMPLATE = """\
[check]
prefixes = ["mut", "Mut"]
exempt = []
include_tests = false
goroutines = true

[output]
pretty = false
color = true
jobs = 1
"""


def scaffold(directory: Path | None = None) -> Path:
    """Write a default mutcheck.toml into ``directory``. Returns its path."""
    base = directory or Path.cwd()
    if not base.is_dir():
        raise FileNotFoundError(f"Directory '{base}' does not exist")

    config_path = base / CONFIG_FILE
    if config_path.exists():
        raise FileExistsError(f"'{config_path}' already exists")

    config_path.write_text(_MUTCHECK_TOML_TEMPLATE)
    return config_path
