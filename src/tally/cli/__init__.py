"""
Tally CLI - Main application entry point.

This module sets up the Typer CLI application with all subcommands.
"""

import typer
from pydantic import ValidationError

from tally import __version__
from tally.cli import counters, items, org
from tally.cli.context import get_config, resolve_project, setup_logging
from tally.cli.errors import ExitCode, print_error
from tally.core.config.env import load_layered_env

app = typer.Typer(
    name="tally",
    help="Offline-safe issue numbering and organization sync",
    no_args_is_help=True,
    add_completion=False,
    context_settings={"help_option_names": ["--help", "-h"]},
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"tally {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug output with detailed logging",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """
    Tally - display numbers for file-per-item issue trackers.

    Quick Start:
        1. tally init                  # Initialize your project
        2. tally create "Title"        # Create an item
        3. tally reconcile             # Repair numbers after a merge

    Organizations:
        tally org create acme          # Register an organization
        tally org join acme            # Add this project to it
        tally create "Title" --org     # Create and sync to siblings
    """
    # Precedence: OS env > project .env > user .env
    project = resolve_project(allow_uninitialized=True)
    load_layered_env(project_dir=project)

    try:
        config = get_config(project)
    except ValidationError as e:
        print_error("Invalid configuration", reason=str(e))
        raise typer.Exit(ExitCode.USER_ERROR)

    setup_logging(debug, config.logging.level)
    ctx.obj = {"debug": debug}


app.command(name="init")(items.init)
app.command(name="create")(items.create)
app.command(name="list")(items.list_items)
app.command(name="reconcile")(items.reconcile)
app.command(name="next-number")(items.next_number)
app.add_typer(counters.app, name="counters")
app.add_typer(org.app, name="org")


__all__ = ["app", "main"]
