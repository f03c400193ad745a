"""XDG Base Directory specification helpers."""

import os
from pathlib import Path


APP_NAME = "tpibox"


def get_xdg_config_dir() -> Path:
    """Get XDG config directory for tpibox.

    Returns:
        Path to config directory: $XDG_CONFIG_HOME/tpibox or ~/.config/tpibox
    """
    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config) / APP_NAME
    return Path.home() / ".config" / APP_NAME


def get_xdg_cache_dir() -> Path:
    """Get XDG cache directory for tpibox.

    Returns:
        Path to cache directory: $XDG_CACHE_HOME/tpibox or ~/.cache/tpibox
    """
    xdg_cache = os.environ.get("XDG_CACHE_HOME")
    if xdg_cache:
        return Path(xdg_cache) / APP_NAME
    return Path.home() / ".cache" / APP_NAME


def get_image_cache_dir() -> Path:
    """Default root of the local content-addressed image cache."""
    return get_xdg_cache_dir() / "images"
