"""
Shared exception types for tally.

The taxonomy follows the four failure families the core distinguishes:
malformed content, not-found, precondition failures and sync failures.
Plain ``OSError`` is left to propagate for raw I/O problems.
"""

from __future__ import annotations

from pathlib import Path


class TallyError(Exception):
    """Base class for all tally errors."""


class MalformedItemError(TallyError):
    """Raised when an item file exists but its metadata cannot be parsed."""

    def __init__(self, path: Path, reason: str):
        super().__init__(f"Malformed item at {path}: {reason}")
        self.path = path
        self.reason = reason


class ItemNotFoundError(TallyError):
    """Raised when no item with the requested id exists in a project."""

    def __init__(self, item_id: str):
        super().__init__(f"Item not found: {item_id}")
        self.item_id = item_id


class DisplayNumberNotFoundError(TallyError):
    """Raised when no item carries the requested display number."""

    def __init__(self, display_number: int):
        super().__init__(f"No item with display number {display_number}")
        self.display_number = display_number


class ItemValidationError(TallyError):
    """Raised when create/update input is rejected (title, status, priority)."""


class ProjectNotInitializedError(TallyError):
    """Raised when a project has no .tally directory."""

    def __init__(self, project_path: Path | str):
        super().__init__(f"Project not initialized: {project_path}. Run 'tally init' first.")
        self.project_path = str(project_path)


class NoOrganizationError(TallyError):
    """Raised when an org-scoped operation targets a project without an organization."""

    def __init__(self, project_path: Path | str):
        super().__init__(f"Project has no organization: {project_path}")
        self.project_path = str(project_path)


class SyncFailedError(TallyError):
    """Raised when replicating an item into a single sibling project fails."""
