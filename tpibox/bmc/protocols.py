"""Protocol definitions for the BMC collaborators.

The provisioning core only depends on these protocols, so tests and
alternative transports can stand in for the real HTTP client and SSH
connection.
"""

from pathlib import Path
from typing import Protocol, runtime_checkable

from tpibox.bmc.models import RemoteFileInfo, UsbMode, UsbStatus
from tpibox.core.deadline import Deadline


@runtime_checkable
class RemoteTransportProtocol(Protocol):
    """File and command access to the BMC filesystem."""

    def list_dir(self, path: str) -> list[RemoteFileInfo]:
        """List a remote directory.

        Raises:
            FileNotFoundError: If the directory does not exist
        """
        ...

    def upload_file(
        self, local_path: Path, remote_path: str, deadline: Deadline | None = None
    ) -> None:
        """Upload a local file to ``remote_path``.

        Raises:
            ProvisionTimeoutError: If ``deadline`` expires mid-transfer
        """
        ...

    def exec_command(self, command: str) -> str:
        """Run a shell command on the BMC and return its output.

        Raises:
            RemoteCommandError: If the command exits non-zero
        """
        ...


@runtime_checkable
class BMCClientProtocol(Protocol):
    """Device operations exposed by the BMC."""

    def flash_from_local_file(
        self,
        node: int,
        path: Path,
        content_hash: str,
        skip_crc: bool = False,
        deadline: Deadline | None = None,
    ) -> None:
        """Upload ``path`` and write it to ``node``."""
        ...

    def flash_from_remote_path(
        self, node: int, remote_path: str, deadline: Deadline | None = None
    ) -> None:
        """Write an image already stored on the BMC to ``node``."""
        ...

    def power_status(self) -> dict[int, bool]:
        """Power state of every node, keyed 1..4."""
        ...

    def power_on(self, node: int) -> None: ...

    def power_off(self, node: int) -> None: ...

    def usb_status(self) -> UsbStatus: ...

    def usb_set(self, node: int, mode: UsbMode, bmc_route: bool = False) -> None: ...
