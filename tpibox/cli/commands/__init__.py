"""CLI command modules."""

import typer

from tpibox.cli.commands.cache import register_commands as register_cache_commands
from tpibox.cli.commands.flash import register_commands as register_flash_commands
from tpibox.cli.commands.info import register_commands as register_info_commands
from tpibox.cli.commands.power import register_commands as register_power_commands
from tpibox.cli.commands.usb import register_commands as register_usb_commands


def register_all_commands(app: typer.Typer) -> None:
    """Register all CLI commands with the main app.

    Args:
        app: The main Typer app
    """
    register_flash_commands(app)
    register_power_commands(app)
    register_usb_commands(app)
    register_cache_commands(app)
    register_info_commands(app)
