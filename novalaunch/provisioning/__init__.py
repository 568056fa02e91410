"""Server provisioning: selectors, request building, the wait loops and providers."""

from novalaunch.provisioning.cancel import CancellationSignal
from novalaunch.provisioning.errors import (
    ActivationTimeoutError,
    EndpointNotFoundError,
    InstanceInBadStateError,
    NetworkUnreachableError,
    NoMatchingFlavorError,
    NoMatchingImageError,
    NoMatchingNetworkError,
    ProvisioningError,
    ReachabilityCheckFailedError,
)
from novalaunch.provisioning.openstack import OpenStackClient, public_address
from novalaunch.provisioning.orchestrate import ProvisioningOrchestrator
from novalaunch.provisioning.request import build_instance_request, encode_user_data
from novalaunch.provisioning.resolver import find_matching
from novalaunch.provisioning.ssh import SSHCommunicator
from novalaunch.provisioning.state import FileMachineState
from novalaunch.provisioning.types import (
    ACTIVE_WAIT,
    REACHABLE_WAIT,
    InstanceHandle,
    InstanceRequest,
    ProvisioningOutcome,
    ProvisioningState,
    RawRecord,
    TypedResource,
    WaitPolicy,
)
from novalaunch.provisioning.ui import ConsoleUI

__all__ = [
    "ACTIVE_WAIT",
    "REACHABLE_WAIT",
    "ActivationTimeoutError",
    "CancellationSignal",
    "ConsoleUI",
    "EndpointNotFoundError",
    "FileMachineState",
    "InstanceHandle",
    "InstanceInBadStateError",
    "InstanceRequest",
    "NetworkUnreachableError",
    "NoMatchingFlavorError",
    "NoMatchingImageError",
    "NoMatchingNetworkError",
    "OpenStackClient",
    "ProvisioningError",
    "ProvisioningOrchestrator",
    "ProvisioningOutcome",
    "ProvisioningState",
    "RawRecord",
    "ReachabilityCheckFailedError",
    "SSHCommunicator",
    "TypedResource",
    "WaitPolicy",
    "build_instance_request",
    "encode_user_data",
    "find_matching",
    "public_address",
]
