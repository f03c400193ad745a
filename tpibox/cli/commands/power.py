"""Node power commands for tpibox CLI."""

from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from tpibox.cli.app import AppContext
from tpibox.cli.decorators import handle_errors


console = Console()

power_app = typer.Typer(help="Node power control", no_args_is_help=True)

NodeArgument = Annotated[int, typer.Argument(help="Node number (1-4)")]


def _set_power(ctx: typer.Context, node: int, on: bool) -> None:
    app_ctx: AppContext = ctx.obj
    state = "on" if on else "off"
    if app_ctx.node_state().ensure_power(node, on):
        console.print(f"[green]Node {node} powered {state}[/green]")
    else:
        console.print(f"[yellow]Node {node} is already {state}[/yellow]")


@power_app.command(name="on")
@handle_errors
def power_on(ctx: typer.Context, node: NodeArgument) -> None:
    """Power a node on (no-op if it is already on)."""
    _set_power(ctx, node, True)


@power_app.command(name="off")
@handle_errors
def power_off(ctx: typer.Context, node: NodeArgument) -> None:
    """Power a node off (no-op if it is already off)."""
    _set_power(ctx, node, False)


@power_app.command(name="status")
@handle_errors
def power_status(ctx: typer.Context) -> None:
    """Show the power state of every node."""
    app_ctx: AppContext = ctx.obj
    status = app_ctx.node_state().power_status()

    table = Table(title="Node power", show_header=True, header_style="bold cyan")
    table.add_column("Node", style="cyan")
    table.add_column("Power")
    for node, on in sorted(status.items()):
        table.add_row(str(node), "[green]on[/green]" if on else "[dim]off[/dim]")
    console.print(table)


def register_commands(app: typer.Typer) -> None:
    """Register power commands with the main app."""
    app.add_typer(power_app, name="power")
