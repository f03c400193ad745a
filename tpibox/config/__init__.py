"""Configuration loading for tpibox."""

from tpibox.config.models import BMCConfig, UserConfigData
from tpibox.config.user_config import UserConfig, create_user_config


__all__ = ["BMCConfig", "UserConfig", "UserConfigData", "create_user_config"]
