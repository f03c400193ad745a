"""BMC data models."""

from enum import Enum

from pydantic import Field

from tpibox.models.base import TpiboxBaseModel


NODE_COUNT = 4


class RemoteFileInfo(TpiboxBaseModel):
    """Entry of a directory listing on the BMC."""

    name: str
    size: int = Field(default=0, ge=0)
    is_dir: bool = False


class UsbMode(str, Enum):
    """USB role of a node."""

    HOST = "host"
    DEVICE = "device"
    FLASH = "flash"

    @classmethod
    def parse(cls, value: str) -> "UsbMode":
        """Parse user input or the BMC's capitalised mode names."""
        try:
            return cls(value.strip().lower())
        except ValueError:
            valid = ", ".join(mode.value for mode in cls)
            raise ValueError(f"Unknown USB mode {value!r}, expected one of: {valid}") from None


class UsbStatus(TpiboxBaseModel):
    """Current USB routing as reported by the BMC."""

    mode: UsbMode
    node: int = Field(ge=1, le=NODE_COUNT)
    route_bmc: bool = False


class FlashState(str, Enum):
    """Progress states reported while the BMC writes an image."""

    TRANSFERRING = "transferring"
    DONE = "done"
    ERROR = "error"
    IDLE = "idle"


class FlashProgress(TpiboxBaseModel):
    state: FlashState
    bytes_written: int | None = None
    size: int | None = None
    message: str | None = None
