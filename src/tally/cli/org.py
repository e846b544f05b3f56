"""
Tally CLI - Organization commands.
"""

import asyncio

import typer
from rich.console import Console

from tally.cli.context import get_config, resolve_project
from tally.cli.errors import ExitCode, print_error
from tally.core.projects.registry import ProjectRegistry, ProjectRegistryError

app = typer.Typer(
    name="org",
    help="Manage organizations and project membership",
    no_args_is_help=True,
)

console = Console()


@app.command()
def create(
    slug: str = typer.Argument(..., help="Organization slug"),
    name: str | None = typer.Option(None, "--name", "-n", help="Display name (defaults to slug)"),
) -> None:
    """Register an organization."""
    project = resolve_project(allow_uninitialized=True)
    registry = ProjectRegistry.from_config(get_config(project))
    try:
        asyncio.run(registry.create_organization(slug, name or slug))
    except ProjectRegistryError as e:
        print_error("Cannot create organization", reason=str(e))
        raise typer.Exit(ExitCode.GENERAL_ERROR)
    console.print(f"[green]Created organization[/green] {slug}")


@app.command()
def join(
    slug: str = typer.Argument(..., help="Organization slug"),
) -> None:
    """Add the current project to an organization."""
    project = resolve_project()
    registry = ProjectRegistry.from_config(get_config(project))
    try:
        asyncio.run(registry.track_project(project, organization_slug=slug))
    except ProjectRegistryError as e:
        print_error(f"Cannot join {slug}", reason=str(e), solution=f"tally org create {slug}")
        raise typer.Exit(ExitCode.USER_ERROR)
    console.print(f"[green]{project.name}[/green] is now part of {slug}")
