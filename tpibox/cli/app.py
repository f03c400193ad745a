"""Main CLI application for tpibox."""

import logging
import sys
from importlib.metadata import distribution
from typing import Annotated

import typer

from tpibox.cli.decorators.error_handling import print_stack_trace_if_verbose
from tpibox.config.user_config import UserConfig, create_user_config
from tpibox.core.errors import ConfigError
from tpibox.core.logging import setup_logging
from tpibox.provision.node_state import NodeStateService, create_node_state_service
from tpibox.provision.service import ProvisionContext, create_provision_context


__all__ = ["AppContext", "app", "main", "__version__", "setup_logging"]


__version__ = distribution("tpibox").version

logger = logging.getLogger(__name__)


class AppContext:
    """Application context for storing shared state.

    BMC connections are created on first use, so commands that never touch
    the board (``--help``, ``cache show --location local``) stay offline.
    """

    def __init__(
        self,
        verbose: int = 0,
        log_file: str | None = None,
        config_file: str | None = None,
    ):
        self.verbose = verbose
        self.log_file = log_file
        self.config_file = config_file
        self.user_config: UserConfig = create_user_config(cli_config_path=config_file)
        self._provision_context: ProvisionContext | None = None

    @property
    def provision_context(self) -> ProvisionContext:
        if self._provision_context is None:
            self._provision_context = create_provision_context(self.user_config.data)
        return self._provision_context

    def node_state(self) -> NodeStateService:
        return create_node_state_service(self.provision_context.bmc)

    def close(self) -> None:
        if self._provision_context is not None:
            self._provision_context.close()
            self._provision_context = None


app = typer.Typer(
    name="tpibox",
    help=f"""tpibox v{__version__}

Provision Turing Pi compute modules through the board's BMC.

Images are fetched once, verified by SHA-256 and optionally cached locally or
on the BMC, so re-flashing the same image skips the download and the upload.

Common workflows:
  • Flash a node:     tpibox flash 1 --url https://example.com/os.img.xz --sha256 ... --cache bmc
  • Power a node on:  tpibox power on 1
  • USB to device:    tpibox usb set 1 device
  • Show BMC cache:   tpibox cache show --location bmc""",
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "-v",
            "--verbose",
            count=True,
            help="Increase verbosity (-v=INFO, -vv=DEBUG)",
        ),
    ] = 0,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Enable debug logging (equivalent to -vv)"),
    ] = False,
    log_file: Annotated[
        str | None, typer.Option("--log-file", help="Log to file")
    ] = None,
    config_file: Annotated[
        str | None,
        typer.Option("-c", "--config", help="Path to configuration file"),
    ] = None,
    version: Annotated[
        bool, typer.Option("--version", help="Show version and exit")
    ] = False,
) -> None:
    """tpibox: Turing Pi image provisioning."""
    if version:
        print(f"tpibox v{__version__}")
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        print(ctx.get_help())
        raise typer.Exit()

    try:
        app_context = AppContext(
            verbose=verbose, log_file=log_file, config_file=config_file
        )
    except ConfigError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e
    ctx.obj = app_context
    ctx.call_on_close(app_context.close)

    # CLI flags win over the configured level
    if debug:
        log_level = logging.DEBUG
    elif verbose == 1:
        log_level = logging.INFO
    elif verbose >= 2:
        log_level = logging.DEBUG
    else:
        log_level = app_context.user_config.get_log_level_int()

    setup_logging(level=log_level, log_file=log_file)
    logger.debug("Using configuration %s", app_context.user_config.config_path)


def main() -> int:
    """Main CLI entry point."""
    try:
        from tpibox.cli.commands import register_all_commands

        register_all_commands(app)

        app()
        return 0

    except SystemExit as e:
        return e.code if isinstance(e.code, int) else 0

    except Exception as e:
        logger.exception("Unexpected error: %s", e)
        print_stack_trace_if_verbose()
        return 1


if __name__ == "__main__":
    sys.exit(main())
