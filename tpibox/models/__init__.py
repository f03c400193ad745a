"""Shared pydantic models."""

from tpibox.models.base import TpiboxBaseModel
from tpibox.models.results import BaseResult


__all__ = ["BaseResult", "TpiboxBaseModel"]
