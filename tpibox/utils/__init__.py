"""Utility helpers."""

from tpibox.utils.xdg import get_image_cache_dir, get_xdg_cache_dir, get_xdg_config_dir


__all__ = ["get_image_cache_dir", "get_xdg_cache_dir", "get_xdg_config_dir"]
