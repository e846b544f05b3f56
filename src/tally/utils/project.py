"""
Project layout and discovery utilities for tally.

This module knows where tally keeps its data inside a project
(``.tally/issues``) and provides functions for discovering project
boundaries by searching for marker files.
"""

from datetime import datetime, timezone
from pathlib import Path

TALLY_DIR = ".tally"
ITEMS_DIR = "issues"

# Markers that indicate a project root, in order of priority
PROJECT_ROOT_MARKERS = [
    TALLY_DIR,  # Tally data directory
    ".git",  # Git repository
]


def get_tally_path(project_path: Path) -> Path:
    """Return the ``.tally`` directory of a project."""
    return Path(project_path) / TALLY_DIR


def get_items_path(project_path: Path) -> Path:
    """Return the directory holding a project's item files."""
    return get_tally_path(project_path) / ITEMS_DIR


def is_initialized(project_path: Path) -> bool:
    """Check whether tally has been initialized in a project."""
    return get_tally_path(project_path).is_dir()


def now_iso() -> str:
    """
    Current UTC time as an ISO-8601 string with a ``Z`` suffix.

    Microsecond precision keeps lexicographic order equal to time order.
    """
    return datetime.now(timezone.utc).isoformat(timespec="microseconds").replace("+00:00", "Z")


def find_project_root(start: Path | None = None) -> Path | None:
    """
    Find the project root directory by searching upward for marker files.

    Args:
        start: Directory to start searching from. Defaults to current working directory.

    Returns:
        Path to the project root directory, or None if not found.

    Example:
        >>> find_project_root()  # From /project/src/module/
        PosixPath('/project')
    """
    if start is None:
        start = Path.cwd()

    current = start.resolve()
    while True:
        for marker in PROJECT_ROOT_MARKERS:
            if (current / marker).exists():
                return current
        if current == current.parent:  # Filesystem root
            return None
        current = current.parent

