"""Configuration models."""

from .bmc import DEFAULT_REMOTE_CACHE_DIR, BMCConfig
from .user import UserConfigData


__all__ = ["BMCConfig", "DEFAULT_REMOTE_CACHE_DIR", "UserConfigData"]
