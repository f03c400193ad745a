"""User configuration models."""

from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tpibox.utils.xdg import get_image_cache_dir

from .bmc import BMCConfig


VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
VALID_CACHE_LOCATIONS = ["local", "bmc", "none"]


class UserConfigData(BaseSettings):
    """User configuration data model with automatic environment variable support.

    Precedence order (highest to lowest):
    1. Environment variables (highest)
    2. Constructor arguments (file data)
    3. .env file
    4. Default values (lowest)
    """

    model_config = SettingsConfigDict(
        env_prefix="TPIBOX_",
        env_nested_delimiter="__",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: Any,
        env_settings: Any,
        dotenv_settings: Any,
        file_secret_settings: Any,
    ) -> tuple[Any, ...]:
        """Return sources in priority order: env > init > dotenv > file_secret."""
        return (
            env_settings,
            init_settings,
            dotenv_settings,
            file_secret_settings,
        )

    log_level: str = "WARNING"

    cache_path: Path = Field(
        default_factory=get_image_cache_dir,
        description="Directory of the local content-addressed image cache",
    )
    default_cache: str = Field(
        default="none",
        description="Cache location used when none is given: 'local', 'bmc' or 'none'",
    )
    flash_timeout: float = Field(
        default=3 * 60 * 60,
        gt=0,
        description="Timeout in seconds for a whole provisioning run",
    )

    bmc: BMCConfig = Field(default_factory=BMCConfig)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        upper_v = v.strip().upper()
        if upper_v not in VALID_LOG_LEVELS:
            raise ValueError(f"Log level must be one of {VALID_LOG_LEVELS}")
        return upper_v

    @field_validator("default_cache")
    @classmethod
    def validate_default_cache(cls, v: str) -> str:
        lower_v = v.strip().lower()
        if lower_v not in VALID_CACHE_LOCATIONS:
            raise ValueError(f"Cache location must be one of {VALID_CACHE_LOCATIONS}")
        return lower_v

    @field_validator("cache_path", mode="before")
    @classmethod
    def expand_cache_path(cls, v: Any) -> Any:
        if isinstance(v, str | Path):
            return Path(v).expanduser()
        return v
