"""Collaborators the provisioning orchestrator is written against."""

from abc import ABC, abstractmethod

from novalaunch.provisioning.types import InstanceHandle, InstanceRequest, RawRecord, TypedResource


class CatalogSource(ABC):
    """Lists the resources a server can be built from."""

    @abstractmethod
    async def list_flavors(self) -> list[TypedResource]: ...

    @abstractmethod
    async def list_images(self) -> list[TypedResource]: ...

    @abstractmethod
    async def list_networks(self) -> list[RawRecord]: ...


class ComputeAPI(ABC):
    """Server lifecycle calls."""

    @abstractmethod
    async def create_instance(self, request: InstanceRequest) -> InstanceHandle: ...

    @abstractmethod
    async def get_instance(self, instance_id: str) -> InstanceHandle: ...


class Communicator(ABC):
    """Remote command channel readiness."""

    @abstractmethod
    async def is_ready(self) -> bool:
        """Return True once remote commands can run.

        Raises NetworkUnreachableError while the network path is not up yet.
        """


class MachineState(ABC):
    """Caller-owned record of which server backs a logical machine."""

    @property
    @abstractmethod
    def id(self) -> str | None: ...

    @abstractmethod
    def set_instance_id(self, instance_id: str) -> None: ...


class ProgressUI(ABC):
    """Advisory user feedback; never affects control flow."""

    @abstractmethod
    def info(self, message: str) -> None: ...

    @abstractmethod
    def report_progress(self, current: int, total: int) -> None: ...

    @abstractmethod
    def clear_line(self) -> None: ...
