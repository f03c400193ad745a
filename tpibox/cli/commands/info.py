"""BMC info command for tpibox CLI."""

import json
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from tpibox.cli.app import AppContext
from tpibox.cli.decorators import handle_errors


console = Console()


@handle_errors
def info_command(
    ctx: typer.Context,
    output_format: Annotated[
        str, typer.Option("--format", help="Output format: text or json")
    ] = "text",
) -> None:
    """Show BMC firmware and network information."""
    app_ctx: AppContext = ctx.obj
    bmc = app_ctx.provision_context.bmc
    data = {**bmc.about(), **bmc.info()}

    if output_format.lower() == "json":
        print(json.dumps(data, indent=2, sort_keys=True))
        return

    table = Table(
        title=f"BMC {app_ctx.user_config.data.bmc.host}",
        show_header=False,
    )
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Value")
    for key, value in sorted(data.items()):
        table.add_row(key, value)
    console.print(table)


def register_commands(app: typer.Typer) -> None:
    """Register info command with the main app."""
    app.command(name="info")(info_command)
