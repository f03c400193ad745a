"""Flash command for tpibox CLI."""

import json
import logging
from pathlib import Path
from typing import Annotated

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from tpibox.cache.models import CacheLocation
from tpibox.cli.app import AppContext
from tpibox.cli.decorators import handle_errors
from tpibox.core.errors import ConfigError, TpiboxError
from tpibox.image.models import ImageSource, LocalImageSource, RemoteImageSource
from tpibox.provision.models import ProvisionResult, ProvisionStatus
from tpibox.provision.service import FlashOrchestrator


logger = logging.getLogger(__name__)
console = Console()


def _build_source(url: str | None, path: Path | None, sha256: str | None) -> ImageSource:
    if (url is None) == (path is None):
        raise ConfigError("Exactly one of --url or --path is required")
    try:
        if url is not None:
            return RemoteImageSource(url=url, expected_hash=sha256)
        return LocalImageSource(path=path, expected_hash=sha256)
    except ValidationError as e:
        messages = "; ".join(error["msg"] for error in e.errors())
        raise ConfigError(f"Invalid image source: {messages}") from e


def _print_result(result: ProvisionResult) -> None:
    table = Table(title=f"Node {result.node} flashed", show_header=False)
    table.add_column("Field", style="cyan", no_wrap=True)
    table.add_column("Value")
    table.add_row("SHA256", result.content_hash or "")
    table.add_row("Cache", result.cache_location.value)
    table.add_row("Cache hit", "yes" if result.cache_hit else "no")
    table.add_row("Image", result.image_path or "")
    table.add_row("Source on BMC", "yes" if result.on_bmc else "no")
    console.print(table)


@handle_errors
def flash_command(
    ctx: typer.Context,
    node: Annotated[int, typer.Argument(help="Node to flash (1-4)")],
    url: Annotated[
        str | None, typer.Option("--url", help="HTTP(S) URL of the image")
    ] = None,
    path: Annotated[
        Path | None, typer.Option("--path", help="Local image file")
    ] = None,
    sha256: Annotated[
        str | None,
        typer.Option("--sha256", help="Expected SHA-256 of the decompressed image"),
    ] = None,
    cache: Annotated[
        str | None,
        typer.Option("--cache", help="Cache location: local, bmc or none"),
    ] = None,
    skip_verification: Annotated[
        bool,
        typer.Option(
            "--skip-verification",
            help="Trust --sha256 for local files and skip the BMC's CRC check",
        ),
    ] = False,
    timeout: Annotated[
        float | None,
        typer.Option("--timeout", help="Timeout in seconds for the whole run"),
    ] = None,
    output_format: Annotated[
        str, typer.Option("--format", help="Output format: text or json")
    ] = "text",
) -> None:
    """Flash an OS image to a node.

    The image is verified by SHA-256 and, with --cache, reused on later runs.
    """
    app_ctx: AppContext = ctx.obj
    config = app_ctx.user_config.data

    output_format = output_format.lower()
    if output_format not in ("text", "json"):
        raise ConfigError(f"Unknown format {output_format!r}, expected text or json")

    source = _build_source(url, path, sha256)
    location = CacheLocation.parse(cache or config.default_cache)
    orchestrator = FlashOrchestrator(app_ctx.provision_context)

    try:
        result = orchestrator.provision(
            node,
            source,
            cache_location=location,
            skip_verification=skip_verification,
            timeout=timeout or config.flash_timeout,
        )
    except TpiboxError as e:
        if output_format == "json":
            failed = {
                "node": node,
                "status": ProvisionStatus.FAILED.value,
                "content_hash": None,
                "phase": e.phase,
                "errors": [str(e)],
            }
            print(json.dumps(failed, indent=2))
        raise

    if output_format == "json":
        print(json.dumps(result.to_dict_full(), indent=2))
    else:
        _print_result(result)


def register_commands(app: typer.Typer) -> None:
    """Register flash command with the main app.

    Args:
        app: The main Typer app
    """
    app.command(name="flash")(flash_command)
