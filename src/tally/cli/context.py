"""
Shared wiring for CLI commands: project discovery, config and services.

Each command runs in its own process, so one set of registries per
invocation is the single instance the locks rely on.
"""

import logging
import sys
from pathlib import Path

import typer

from tally.cli.errors import ExitCode, print_not_project_root_error
from tally.core.config.loader import load_config
from tally.core.config.models import TallyConfig
from tally.core.ids.counters import OrgCounterRegistry
from tally.core.items.service import ItemService
from tally.core.projects.registry import ProjectRegistry
from tally.utils.project import find_project_root


def setup_logging(debug: bool = False, level: str = "WARNING") -> None:
    """
    Configure logging for CLI commands.

    Args:
        debug: If True, enable DEBUG level logging regardless of config
        level: Configured level name used otherwise
    """
    logging.basicConfig(
        level=logging.DEBUG if debug else getattr(logging, level, logging.WARNING),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def resolve_project(allow_uninitialized: bool = False) -> Path:
    """
    Find the project root for the current directory.

    With ``allow_uninitialized`` the current directory is used when no
    marker is found (for ``tally init``).
    """
    root = find_project_root()
    if root is not None:
        return root
    if allow_uninitialized:
        return Path.cwd()
    print_not_project_root_error()
    raise typer.Exit(ExitCode.USER_ERROR)


def get_config(project: Path) -> TallyConfig:
    return load_config(project, use_cache=False)


def get_item_service(project: Path, config: TallyConfig) -> ItemService:
    """Build an item service with fresh registries for this invocation."""
    return ItemService(
        project,
        OrgCounterRegistry.from_config(config),
        ProjectRegistry.from_config(config),
        config,
    )
