"""USB routing commands for tpibox CLI."""

from typing import Annotated

import typer
from rich.console import Console

from tpibox.bmc.models import UsbMode
from tpibox.cli.app import AppContext
from tpibox.cli.decorators import handle_errors
from tpibox.core.errors import ConfigError


console = Console()

usb_app = typer.Typer(help="Node USB routing", no_args_is_help=True)


@usb_app.command(name="set")
@handle_errors
def usb_set(
    ctx: typer.Context,
    node: Annotated[int, typer.Argument(help="Node number (1-4)")],
    mode: Annotated[str, typer.Argument(help="USB mode: host, device or flash")],
    bmc: Annotated[
        bool, typer.Option("--bmc", help="Route the node's USB to the BMC")
    ] = False,
) -> None:
    """Set the USB mode of a node (no-op if already set)."""
    app_ctx: AppContext = ctx.obj
    try:
        usb_mode = UsbMode.parse(mode)
    except ValueError as e:
        raise ConfigError(str(e)) from e

    if app_ctx.node_state().ensure_usb(node, usb_mode, bmc_route=bmc):
        console.print(f"[green]Node {node} USB set to {usb_mode.value}[/green]")
    else:
        console.print(f"[yellow]Node {node} USB is already {usb_mode.value}[/yellow]")


@usb_app.command(name="status")
@handle_errors
def usb_status(ctx: typer.Context) -> None:
    """Show the current USB routing."""
    app_ctx: AppContext = ctx.obj
    status = app_ctx.node_state().usb_status()
    route = "BMC" if status.route_bmc else "USB-A"
    console.print(
        f"Node [cyan]{status.node}[/cyan]: mode [bold]{status.mode.value}[/bold], "
        f"routed to {route}"
    )


def register_commands(app: typer.Typer) -> None:
    """Register USB commands with the main app."""
    app.add_typer(usb_app, name="usb")
