"""Provisioning models."""

from datetime import datetime
from enum import Enum

from pydantic import Field

from tpibox.bmc.models import NODE_COUNT
from tpibox.cache.models import CacheLocation
from tpibox.models.base import TpiboxBaseModel
from tpibox.models.results import BaseResult


class ProvisionStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


class FlashJob(TpiboxBaseModel):
    """The single flash operation a provisioning run resolves to.

    Rebuilt on every run: the BMC cannot report what a node currently holds.
    """

    node: int = Field(ge=1, le=NODE_COUNT)
    resolved_path: str
    content_hash: str
    cache_location: CacheLocation
    on_bmc: bool = Field(
        default=False, description="resolved_path is a file on the BMC filesystem"
    )


class ProvisionResult(BaseResult):
    """Outcome of provisioning one node."""

    node: int = Field(ge=1, le=NODE_COUNT)
    content_hash: str | None = None
    status: ProvisionStatus = ProvisionStatus.SUCCESS
    cache_hit: bool = False
    cache_location: CacheLocation = CacheLocation.NONE
    image_path: str | None = None
    on_bmc: bool = False
    flashed_at: datetime | None = None
