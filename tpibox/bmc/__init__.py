"""BMC access: HTTP management API and SSH filesystem transport."""

from tpibox.bmc.client import BMCClient, create_bmc_client, validate_node
from tpibox.bmc.models import NODE_COUNT, RemoteFileInfo, UsbMode, UsbStatus
from tpibox.bmc.protocols import BMCClientProtocol, RemoteTransportProtocol
from tpibox.bmc.ssh_transport import SSHTransport, create_ssh_transport


__all__ = [
    "BMCClient",
    "BMCClientProtocol",
    "NODE_COUNT",
    "RemoteFileInfo",
    "RemoteTransportProtocol",
    "SSHTransport",
    "UsbMode",
    "UsbStatus",
    "create_bmc_client",
    "create_ssh_transport",
    "validate_node",
]
