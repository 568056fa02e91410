"""Shared data types for server provisioning."""

import re
from dataclasses import dataclass, field
from enum import Enum

# A selector is either an exact id/name or a compiled pattern matched against names.
Selector = str | re.Pattern


@dataclass(frozen=True)
class TypedResource:
    """A flavor or image as reported by the platform."""

    id: str
    name: str


@dataclass(frozen=True)
class RawRecord:
    """A loosely structured catalog record (networks are listed this way)."""

    fields: dict = field(default_factory=dict)

    @property
    def id(self):
        return self.fields.get("id")

    @property
    def name(self):
        return self.fields.get("name")

    def __getitem__(self, key):
        return self.fields[key]


CatalogEntry = TypedResource | RawRecord


@dataclass(frozen=True)
class InstanceRequest:
    """Resolved, ready-to-submit server creation payload."""

    flavor_ref: str
    image_ref: str
    name: str
    key_name: str | None
    user_data_encoded: str
    networks: tuple[dict, ...] = ()

    def to_payload(self) -> dict:
        """Nova ``POST /servers`` body."""
        server = {
            "name": self.name,
            "flavorRef": self.flavor_ref,
            "imageRef": self.image_ref,
            "networks": [dict(n) for n in self.networks],
        }
        if self.key_name:
            server["key_name"] = self.key_name
        if self.user_data_encoded:
            server["user_data"] = self.user_data_encoded
        return {"server": server}


@dataclass
class InstanceHandle:
    """Local view of a server; ``state`` is refreshed by re-fetching."""

    id: str
    state: str = ""
    addresses: dict = field(default_factory=dict)


@dataclass(frozen=True)
class WaitPolicy:
    """Polling interval and retry budget for a wait loop.

    ``attempts`` polls make up one window; the loop gives up after
    ``windows`` windows. The reachability wait ignores both and polls
    until ready or cancelled.
    """

    interval: float
    attempts: int | None = None
    windows: int = 1


ACTIVE_WAIT = WaitPolicy(interval=1, attempts=60, windows=200)
REACHABLE_WAIT = WaitPolicy(interval=2)


class ProvisioningState(Enum):
    RESOLVING = "resolving"
    REQUESTING = "requesting"
    CREATED = "created"
    AWAITING_ACTIVE = "awaiting_active"
    AWAITING_REACHABLE = "awaiting_reachable"
    DONE = "done"
    INTERRUPTED = "interrupted"
    FAILED = "failed"


@dataclass(frozen=True)
class ProvisioningOutcome:
    """Terminal result of a run that did not fail."""

    status: ProvisioningState
    instance_id: str | None = None

    @property
    def interrupted(self) -> bool:
        return self.status is ProvisioningState.INTERRUPTED
