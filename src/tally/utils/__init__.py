"""Utility modules for tally."""

from .project import (
    find_project_root,
    get_items_path,
    get_tally_path,
    is_initialized,
    now_iso,
)

__all__ = [
    "find_project_root",
    "get_items_path",
    "get_tally_path",
    "is_initialized",
    "now_iso",
]
