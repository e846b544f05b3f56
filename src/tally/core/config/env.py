"""
Loading of TALLY_* settings from .env files.

Only variables starting with ``TALLY_`` are taken from .env files; anything
else in a shared project .env (database URLs, API keys) is left alone. Files
are read from least to most specific, later files winning:

    <XDG_CONFIG_HOME>/tally/.env
    <project>/.env
    <project>/.tally/.env

The merged values are then exported, except for variables the shell already
set: an exported TALLY_HOME always beats one written in a file.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from pathlib import Path

from dotenv import dotenv_values

from tally.utils.project import TALLY_DIR

from .loader import get_xdg_config_home

logger = logging.getLogger(__name__)

ENV_PREFIX = "TALLY_"
ENV_FILE = ".env"


def get_env_file_paths(project_dir: Path) -> list[Path]:
    """Return the .env files consulted for a project, least specific first."""
    return [
        get_xdg_config_home() / "tally" / ENV_FILE,
        project_dir / ENV_FILE,
        project_dir / TALLY_DIR / ENV_FILE,
    ]


def read_tally_env(path: Path) -> dict[str, str]:
    """
    Read the TALLY_* assignments of one .env file.

    A missing file reads as empty. Keys without a value (``TALLY_X`` on its
    own line) are ignored.
    """
    if not path.is_file():
        return {}

    values = {
        key: value
        for key, value in dotenv_values(path).items()
        if key.startswith(ENV_PREFIX) and value is not None
    }
    logger.debug("Read %d tally setting(s) from %s", len(values), path)
    return values


def load_layered_env(
    project_dir: Path | None = None,
    *,
    paths: Iterable[Path] | None = None,
) -> dict[str, str]:
    """
    Export TALLY_* settings from the layered .env files.

    Args:
        project_dir: Project whose .env files are read (defaults to cwd)
        paths: Explicit files to read instead, least specific first

    Returns:
        The variables that were exported, excluding those the shell had set
    """
    if paths is None:
        paths = get_env_file_paths(project_dir or Path.cwd())

    merged: dict[str, str] = {}
    for path in paths:
        merged.update(read_tally_env(Path(path)))

    exported = {key: value for key, value in merged.items() if key not in os.environ}
    os.environ.update(exported)
    if exported:
        logger.debug("Exported from .env: %s", ", ".join(sorted(exported)))
    return exported
