"""Provisioning: image resolution, flash dispatch and node state."""

from tpibox.provision.models import (
    FlashJob,
    ProvisionResult,
    ProvisionStatus,
)
from tpibox.provision.node_state import NodeStateService, create_node_state_service
from tpibox.provision.service import (
    DEFAULT_TIMEOUT,
    FlashOrchestrator,
    ProvisionContext,
    create_flash_orchestrator,
    create_provision_context,
)


__all__ = [
    "DEFAULT_TIMEOUT",
    "FlashJob",
    "FlashOrchestrator",
    "NodeStateService",
    "ProvisionContext",
    "ProvisionResult",
    "ProvisionStatus",
    "create_flash_orchestrator",
    "create_node_state_service",
    "create_provision_context",
]
