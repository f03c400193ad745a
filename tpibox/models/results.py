"""Result model shared by provisioning operations."""

from datetime import datetime

from pydantic import Field, model_validator

from tpibox.core.structlog_logger import get_struct_logger
from tpibox.models.base import TpiboxBaseModel


logger = get_struct_logger(__name__)


class BaseResult(TpiboxBaseModel):
    """Outcome of one operation plus notes shown by the CLI.

    A result carrying errors is never successful.
    """

    success: bool
    timestamp: datetime = Field(default_factory=datetime.now)
    messages: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def errors_imply_failure(self) -> "BaseResult":
        if self.errors and self.success:
            logger.warning("result_has_errors", error_count=len(self.errors))
            # validate_assignment would re-run this validator
            object.__setattr__(self, "success", False)
        return self

    def add_message(self, message: str) -> None:
        self.messages.append(message)
        logger.debug("result_message", message=message)


__all__ = ["BaseResult"]
