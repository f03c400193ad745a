"""
User configuration management for tpibox.

This module handles user-specific configuration settings with multiple sources:
1. Environment variables (highest precedence)
2. Command-line provided config file
3. Config file in current directory
4. User's XDG config directory
5. Default values (lowest precedence)
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from tpibox.config.models import UserConfigData
from tpibox.core.errors import ConfigError
from tpibox.core.logging import level_from_name
from tpibox.utils.xdg import get_xdg_config_dir


logger = logging.getLogger(__name__)

ENV_PREFIX = "TPIBOX_"


class UserConfig:
    """Manages user-specific configuration for tpibox using Pydantic Settings."""

    def __init__(self, cli_config_path: str | Path | None = None):
        """
        Initialize the user configuration handler.

        Args:
            cli_config_path: Optional config file path provided via CLI
        """
        self._config_sources: dict[str, str] = {}
        self._main_config_path: Path | None = None
        self._cli_config_path = (
            Path(cli_config_path).expanduser().resolve() if cli_config_path else None
        )
        self._config_paths = self._generate_config_paths()
        self._load_config()

    def _generate_config_paths(self) -> list[Path]:
        """Generate a list of config paths to search in order of precedence."""
        config_paths = []

        if self._cli_config_path:
            config_paths.append(self._cli_config_path)

        config_paths.extend([Path.cwd() / "tpibox.yaml", Path.cwd() / ".tpibox.yml"])

        xdg_dir = get_xdg_config_dir()
        config_paths.extend([xdg_dir / "config.yaml", xdg_dir / "config.yml"])

        return config_paths

    def _read_yaml(self, path: Path) -> dict[str, Any]:
        try:
            with path.open(encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in config file {path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Cannot read config file {path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        return data

    def _load_config(self) -> None:
        """Load configuration from config files and environment variables."""
        if self._cli_config_path and not self._cli_config_path.exists():
            raise ConfigError(f"Config file not found: {self._cli_config_path}")

        logger.debug("Config search paths: %s", [str(p) for p in self._config_paths])

        config_data: dict[str, Any] = {}
        for path in self._config_paths:
            if path.is_file():
                config_data = self._read_yaml(path)
                self._main_config_path = path
                self._track_file_sources(config_data, path.name)
                logger.debug("Loaded user configuration from %s", path)
                break
        else:
            logger.debug("No user configuration files found, using defaults")

        try:
            self._config = UserConfigData(**config_data)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

        self._track_env_var_sources()

    def _track_file_sources(
        self, data: dict[str, Any], filename: str, prefix: str = ""
    ) -> None:
        """Recursively track sources for file-based configuration values."""
        for key, value in data.items():
            current_key = f"{prefix}.{key}" if prefix else key
            if isinstance(value, dict):
                self._track_file_sources(value, filename, current_key)
            else:
                self._config_sources[current_key] = f"file:{filename}"

    def _track_env_var_sources(self) -> None:
        """Track which configuration values came from environment variables."""
        for env_name in os.environ:
            if not env_name.upper().startswith(ENV_PREFIX):
                continue
            config_key = env_name[len(ENV_PREFIX) :].lower().replace("__", ".")
            self._config_sources[config_key] = "environment"

    @property
    def data(self) -> UserConfigData:
        return self._config

    @property
    def config_path(self) -> Path | None:
        return self._main_config_path

    def get_source(self, key: str) -> str:
        """Get the source of a configuration value (environment, file:name, default)."""
        return self._config_sources.get(key, "default")

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value by dotted key, e.g. ``bmc.host``."""
        value: Any = self._config
        for part in key.split("."):
            if not hasattr(value, part):
                return default
            value = getattr(value, part)
        return value

    def get_log_level_int(self) -> int:
        """Get the log level as an integer value for use with logging module."""
        return level_from_name(self._config.log_level, default=logging.WARNING)


def create_user_config(cli_config_path: str | Path | None = None) -> UserConfig:
    """Create a UserConfig instance.

    Args:
        cli_config_path: Optional config file path provided via CLI

    Returns:
        Configured UserConfig instance
    """
    return UserConfig(cli_config_path=cli_config_path)
