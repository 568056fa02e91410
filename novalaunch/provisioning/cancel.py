"""Cooperative cancellation for provisioning waits."""


class CancellationSignal:
    """Flag set by the caller (e.g. on SIGINT) and read by the orchestrator."""

    def __init__(self):
        self._cancelled = False

    def set(self):
        self._cancelled = True

    def is_set(self) -> bool:
        return self._cancelled
