"""Image cache management CLI commands."""

import logging
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from tpibox.cache.models import CacheLocation
from tpibox.cli.app import AppContext
from tpibox.cli.decorators import handle_errors
from tpibox.core.errors import ConfigError


logger = logging.getLogger(__name__)
console = Console()

cache_app = typer.Typer(help="Image cache management", no_args_is_help=True)

LocationOption = Annotated[
    str, typer.Option("--location", "-l", help="Cache location: local or bmc")
]


def _format_size(size_bytes: float) -> str:
    """Format size in human readable format."""
    for unit in ["B", "KB", "MB", "GB"]:
        if size_bytes < 1024.0:
            return f"{size_bytes:.1f} {unit}"
        size_bytes /= 1024.0
    return f"{size_bytes:.1f} TB"


def _parse_location(value: str) -> CacheLocation:
    location = CacheLocation.parse(value)
    if location is CacheLocation.NONE:
        raise ConfigError("Cache location must be 'local' or 'bmc'")
    return location


@cache_app.command(name="show")
@handle_errors
def cache_show(ctx: typer.Context, location: LocationOption = "local") -> None:
    """List cached images."""
    app_ctx: AppContext = ctx.obj
    cache_location = _parse_location(location)
    store = app_ctx.provision_context.store_for(cache_location)
    entries = store.list_entries()

    if not entries:
        console.print(f"[yellow]No images in the {cache_location.value} cache[/yellow]")
        return

    table = Table(
        title=f"Cached images ({cache_location.value})",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("SHA256", style="cyan", no_wrap=True)
    table.add_column("Size", justify="right")
    table.add_column("Path", style="dim")
    for entry in entries:
        table.add_row(entry.content_hash, _format_size(entry.size), entry.path)
    console.print(table)
    total = sum(entry.size for entry in entries)
    console.print(f"{len(entries)} image(s), {_format_size(total)}")


@cache_app.command(name="clear")
@handle_errors
def cache_clear(
    ctx: typer.Context,
    location: LocationOption,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Force deletion without confirmation"),
    ] = False,
) -> None:
    """Remove every cached image from a location."""
    app_ctx: AppContext = ctx.obj
    cache_location = _parse_location(location)

    if not force:
        confirm = typer.confirm(f"Clear the {cache_location.value} image cache?")
        if not confirm:
            console.print("[yellow]Cancelled[/yellow]")
            return

    store = app_ctx.provision_context.store_for(cache_location)
    removed = store.clear()
    console.print(
        f"[green]Cleared {removed} image(s) from the {cache_location.value} cache[/green]"
    )


def register_commands(app: typer.Typer) -> None:
    """Register cache commands with the main app."""
    app.add_typer(cache_app, name="cache")
