"""Command-line interface for tpibox."""

from tpibox.cli.app import app, main


__all__ = ["app", "main"]
