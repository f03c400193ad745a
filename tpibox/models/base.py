"""Base model for all tpibox Pydantic models.

This module provides a base model class that enforces consistent serialization
behavior across all tpibox models.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict


class TpiboxBaseModel(BaseModel):
    """Base model class for all tpibox Pydantic models.

    Serialization defaults:
    - by_alias=True: Use field aliases for serialization
    - exclude_unset=True: Exclude fields that weren't explicitly set
    - mode="json": Use JSON-compatible serialization (e.g., datetime -> string)
    """

    model_config = ConfigDict(
        extra="forbid",
        str_strip_whitespace=True,
        use_enum_values=False,
        validate_assignment=True,
    )

    def to_dict(self) -> dict[str, Any]:
        """Convert model to dictionary with consistent serialization parameters."""
        return self.model_dump(by_alias=True, exclude_unset=True, mode="json")

    def to_dict_full(self) -> dict[str, Any]:
        """Convert model to dictionary including all fields (even unset ones)."""
        return self.model_dump(by_alias=True, exclude_unset=False, mode="json")
