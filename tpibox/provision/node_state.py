"""Idempotent power and USB reconciliation for nodes."""

import logging

from tpibox.bmc.client import validate_node
from tpibox.bmc.models import UsbMode, UsbStatus
from tpibox.bmc.protocols import BMCClientProtocol


logger = logging.getLogger(__name__)


class NodeStateService:
    """Brings node power and USB routing to a desired state.

    The current state is read first and a command is only sent when it
    differs from the desired one.
    """

    def __init__(self, bmc: BMCClientProtocol):
        self.bmc = bmc

    def power_status(self) -> dict[int, bool]:
        return self.bmc.power_status()

    def usb_status(self) -> UsbStatus:
        return self.bmc.usb_status()

    def ensure_power(self, node: int, on: bool) -> bool:
        """Set the power state of ``node``.

        Returns:
            True if a command was sent, False if the node was already in that state
        """
        validate_node(node)
        current = self.bmc.power_status().get(node)
        if current is on:
            logger.info("Node %d already powered %s", node, "on" if on else "off")
            return False

        if on:
            self.bmc.power_on(node)
        else:
            self.bmc.power_off(node)
        return True

    def ensure_usb(self, node: int, mode: UsbMode, bmc_route: bool = False) -> bool:
        """Route USB for ``node``.

        Returns:
            True if a command was sent, False if routing already matched
        """
        validate_node(node)
        status = self.bmc.usb_status()
        if status.node == node and status.mode is mode and status.route_bmc == bmc_route:
            logger.info("USB of node %d already in %s mode", node, mode.value)
            return False

        self.bmc.usb_set(node, mode, bmc_route)
        return True


def create_node_state_service(bmc: BMCClientProtocol) -> NodeStateService:
    """Create a NodeStateService for a BMC client."""
    return NodeStateService(bmc)
