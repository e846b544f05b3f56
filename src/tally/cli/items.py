"""
Tally CLI - Item commands.

init, create, list, reconcile and next-number operate on the project
containing the current directory.
"""

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from tally.cli.context import get_config, get_item_service, resolve_project
from tally.cli.errors import ExitCode, print_error, print_not_initialized_error
from tally.core.errors import (
    ItemValidationError,
    NoOrganizationError,
    ProjectNotInitializedError,
    TallyError,
)
from tally.core.ids.allocator import next_display_number
from tally.core.ids.reconcile import reconcile_display_numbers
from tally.core.items.service import CreateItemOptions
from tally.core.items.store import ItemStore
from tally.core.sync.models import SyncResult
from tally.utils.project import is_initialized

console = Console()


def _require_initialized(project: Path) -> None:
    if not is_initialized(project):
        print_not_initialized_error()
        raise typer.Exit(ExitCode.USER_ERROR)


def _print_sync_results(results: list[SyncResult]) -> None:
    if not results:
        return

    table = Table(title="Sync")
    table.add_column("Project", style="cyan")
    table.add_column("Result")
    for result in results:
        outcome = "[green]ok[/green]" if result.success else f"[red]{result.error}[/red]"
        table.add_row(result.target_project_path, outcome)
    console.print(table)


def init() -> None:
    """
    Initialize tally in the current project.

    Creates .tally/issues and registers the project.
    """
    project = resolve_project(allow_uninitialized=True)
    service = get_item_service(project, get_config(project))

    try:
        items_path = asyncio.run(service.init_project())
    except (TallyError, OSError) as e:
        print_error("Failed to initialize project", reason=str(e))
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    console.print(f"[green]Initialized[/green] {items_path}")


def create(
    title: str = typer.Argument(..., help="Item title"),
    body: str = typer.Option("", "--body", "-b", help="Markdown body"),
    status: str | None = typer.Option(None, "--status", "-s", help="Initial status"),
    priority: int | None = typer.Option(None, "--priority", "-p", help="Priority (1 = highest)"),
    org: bool = typer.Option(
        False,
        "--org",
        help="Create an organization item and sync it to sibling projects",
    ),
    draft: bool = typer.Option(False, "--draft", help="Mark the item as a draft"),
) -> None:
    """
    Create an item.

    Examples:
        tally create "Fix login redirect"
        tally create "Rotate API keys" --org --priority 1
    """
    project = resolve_project()
    service = get_item_service(project, get_config(project))
    options = CreateItemOptions(
        title=title, body=body, status=status, priority=priority, draft=draft, is_org_item=org
    )

    try:
        result = asyncio.run(service.create_item(options))
    except ProjectNotInitializedError:
        print_not_initialized_error()
        raise typer.Exit(ExitCode.USER_ERROR)
    except NoOrganizationError as e:
        print_error(str(e), solution="tally org join <slug>")
        raise typer.Exit(ExitCode.USER_ERROR)
    except ItemValidationError as e:
        print_error("Invalid item", reason=str(e))
        raise typer.Exit(ExitCode.USER_ERROR)
    except (TallyError, OSError) as e:
        print_error("Failed to create item", reason=str(e))
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    item = result.item
    label = f"#{item.display_number}"
    if item.org_display_number is not None:
        label += f" ({item.org_slug}-{item.org_display_number})"
    console.print(f"[green]Created[/green] {label} {item.title}")
    console.print(f"[dim]{item.id}[/dim]")
    _print_sync_results(result.sync_results)


def list_items(
    all_items: bool = typer.Option(False, "--all", "-a", help="Include deleted items"),
) -> None:
    """List items by display number."""
    project = resolve_project()
    service = get_item_service(project, get_config(project))

    try:
        items = asyncio.run(service.list_items(include_deleted=all_items))
    except ProjectNotInitializedError:
        print_not_initialized_error()
        raise typer.Exit(ExitCode.USER_ERROR)
    except (TallyError, OSError) as e:
        print_error("Failed to list items", reason=str(e))
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    if not items:
        console.print("[yellow]No items.[/yellow]")
        return

    table = Table()
    table.add_column("#", justify="right", style="cyan")
    table.add_column("Title")
    table.add_column("Status")
    table.add_column("Priority", justify="right")
    for item in items:
        title = f"[strike]{item.title}[/strike]" if item.is_deleted else item.title
        table.add_row(str(item.display_number), title, item.status, str(item.priority))
    console.print(table)


def reconcile() -> None:
    """
    Repair duplicate and missing display numbers.

    The oldest item of each duplicate group keeps its number; the others
    get fresh numbers above the current maximum. Running it again changes
    nothing.
    """
    project = resolve_project()
    _require_initialized(project)

    try:
        report = asyncio.run(reconcile_display_numbers(ItemStore.for_project(project)))
    except OSError as e:
        print_error("Reconciliation failed", reason=str(e))
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    for skipped in report.skipped:
        console.print(f"[yellow]Skipped[/yellow] {skipped.name}: {skipped.reason}")

    if not report.reassignments:
        console.print("[green]Display numbers are consistent.[/green]")
        return

    table = Table(title="Reassigned")
    table.add_column("Item", style="cyan")
    table.add_column("Old", justify="right")
    table.add_column("New", justify="right")
    for change in report.reassignments:
        table.add_row(change.item_id, str(change.old_number), str(change.new_number))
    console.print(table)
    console.print(f"{report.reassigned_count} item(s) reassigned")


def next_number() -> None:
    """Print the next display number of the project."""
    project = resolve_project()
    _require_initialized(project)
    console.print(asyncio.run(next_display_number(ItemStore.for_project(project))))
