"""
Standardized error handling and exit codes for the tally CLI.

This module provides consistent error messaging with actionable guidance
and standardized exit codes across all CLI commands.
"""

from enum import IntEnum

from rich.console import Console

console = Console(stderr=True)


class ExitCode(IntEnum):
    """Standard exit codes for tally CLI operations."""

    SUCCESS = 0
    """Operation completed successfully."""

    GENERAL_ERROR = 1
    """Generic error (I/O, corrupt registry files)."""

    USER_ERROR = 2
    """User configuration or input error (actionable by user)."""


def print_error(
    problem: str,
    *,
    reason: str | None = None,
    solution: str | None = None,
) -> None:
    """
    Print a standardized error message with actionable guidance.

    Args:
        problem: Brief description of what went wrong
        reason: Optional explanation of why it happened
        solution: Optional command or action to fix it

    Example:
        >>> print_error(
        ...     "Project not initialized",
        ...     reason="No .tally directory found",
        ...     solution="tally init",
        ... )
    """
    console.print(f"[red]Error:[/red] {problem}")

    if reason:
        console.print(f"[dim]{reason}[/dim]")

    if solution:
        console.print(f"[cyan]→ Try:[/cyan] {solution}")


def print_not_initialized_error() -> None:
    """Print error when the project has no .tally directory."""
    print_error(
        "Project not initialized",
        reason="No .tally directory found in the project",
        solution="tally init",
    )


def print_not_project_root_error() -> None:
    """Print error when no project root can be found."""
    print_error(
        "Not in a project directory",
        reason="Could not find .tally/ or .git/ in this directory or any parent",
        solution="tally init  # or cd to your project root",
    )
