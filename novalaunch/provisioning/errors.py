"""Classified provisioning failures."""


class ProvisioningError(Exception):
    """Base class for fatal provisioning errors."""


class _NoMatchingResourceError(ProvisioningError):
    kind = "resource"

    def __init__(self, selector):
        self.selector = selector
        pattern = getattr(selector, "pattern", None)
        shown = f"/{pattern}/" if pattern is not None else repr(selector)
        super().__init__(f"No matching {self.kind} was found for {shown}")


class NoMatchingFlavorError(_NoMatchingResourceError):
    kind = "flavor"


class NoMatchingImageError(_NoMatchingResourceError):
    kind = "image"


class NoMatchingNetworkError(_NoMatchingResourceError):
    kind = "network"


class EndpointNotFoundError(ProvisioningError):
    """The service catalog has no usable endpoint for a service."""

    def __init__(self, service_type, message):
        self.service_type = service_type
        super().__init__(message)


class InstanceInBadStateError(ProvisioningError):
    """The platform reported the server in its error state."""

    def __init__(self, state):
        self.state = state
        super().__init__(f"Server entered a bad state while building: '{state}'")


class ActivationTimeoutError(ProvisioningError):
    def __init__(self, instance_id, polls):
        self.instance_id = instance_id
        self.polls = polls
        super().__init__(f"Server {instance_id} did not become active after {polls} status polls")


class ReachabilityCheckFailedError(ProvisioningError):
    """Fatal failure of the remote command readiness check."""


class NetworkUnreachableError(OSError):
    """The instance network cannot be reached yet; retried by the caller."""
