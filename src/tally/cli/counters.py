"""
Tally CLI - Org counter commands.
"""

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from tally.cli.context import get_config, resolve_project
from tally.cli.errors import ExitCode, print_error
from tally.core.ids.counters import CounterAllocationError, OrgCounterRegistry

app = typer.Typer(
    name="counters",
    help="Inspect and allocate organization display numbers",
    no_args_is_help=True,
)

console = Console()


def _registry() -> OrgCounterRegistry:
    project = resolve_project(allow_uninitialized=True)
    return OrgCounterRegistry.from_config(get_config(project))


@app.command()
def show(
    org: str | None = typer.Argument(None, help="Organization slug (all if omitted)"),
) -> None:
    """Show the next org display number per organization."""
    registry = _registry()
    try:
        state = asyncio.run(registry.read())
    except CounterAllocationError as e:
        print_error("Cannot read org counters", reason=str(e))
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    if org is not None:
        console.print(state.peek(org))
        return

    if not state.next_display_number:
        console.print("[yellow]No org counters yet.[/yellow]")
        return

    table = Table()
    table.add_column("Organization", style="cyan")
    table.add_column("Next", justify="right")
    for slug, value in sorted(state.next_display_number.items()):
        table.add_row(slug, str(value))
    console.print(table)


@app.command()
def allocate(
    org: str = typer.Argument(..., help="Organization slug"),
) -> None:
    """Allocate and print the next org display number."""
    registry = _registry()
    try:
        number = asyncio.run(registry.allocate(org))
    except CounterAllocationError as e:
        print_error(f"Cannot allocate a number for {org}", reason=str(e))
        raise typer.Exit(ExitCode.GENERAL_ERROR)
    console.print(number)
