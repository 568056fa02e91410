"""Configuration dataclass types."""

import re
from dataclasses import dataclass, field

from novalaunch.provisioning.types import Selector


def _selector(value) -> Selector | None:
    """A plain string, or ``{regex: ...}`` compiled to a pattern."""
    if isinstance(value, dict):
        if "regex" not in value:
            raise ValueError(f"Selector mapping must have a 'regex' key, got: {sorted(value)}")
        return re.compile(value["regex"])
    if value is None:
        return None
    return str(value)



def config_section(d: dict, key: str) -> dict:
    """The *key* mapping of *d*; an empty or missing section is ``{}``."""
    value = d.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"Config section '{key}' must be a mapping, got {type(value).__name__}")
    return value

@dataclass
class OpenStackConfig:
    """Keystone credentials and region."""

    auth_url: str = ""
    username: str = ""
    password: str = ""
    project: str = ""
    domain: str = "Default"
    region: str | None = None


@dataclass
class ServerConfig:
    """What to build: selectors for the resources plus server options."""

    flavor: Selector | None = None
    image: Selector | None = None
    network: str | None = None
    name: str | None = None
    keypair_name: str | None = None
    user_data: str | bytes | None = None


@dataclass
class SSHConfig:
    """How to reach the server once it is up."""

    username: str | None = None
    private_key_path: str | None = None
    port: int = 22


@dataclass
class LaunchConfig:
    """Complete configuration for one machine."""

    machine: str = "default"
    openstack: OpenStackConfig = field(default_factory=OpenStackConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    ssh: SSHConfig = field(default_factory=SSHConfig)

    @classmethod
    def from_dict(cls, d: dict) -> "LaunchConfig":
        """Build a LaunchConfig from a (post-env-merge) config dict."""
        os_dict = config_section(d, "openstack")
        openstack = OpenStackConfig(
            auth_url=os_dict.get("auth_url", ""),
            username=os_dict.get("username", ""),
            password=os_dict.get("password", ""),
            project=os_dict.get("project", ""),
            domain=os_dict.get("domain") or "Default",
            region=os_dict.get("region"),
        )

        server_dict = config_section(d, "server")
        network = server_dict.get("network")
        server = ServerConfig(
            flavor=_selector(server_dict.get("flavor")),
            image=_selector(server_dict.get("image")),
            network=None if network is None else str(network),
            name=server_dict.get("name"),
            keypair_name=server_dict.get("keypair_name"),
            user_data=server_dict.get("user_data"),
        )

        ssh_dict = config_section(d, "ssh")
        ssh = SSHConfig(
            username=ssh_dict.get("username"),
            private_key_path=ssh_dict.get("private_key_path"),
            port=int(ssh_dict.get("port", 22)),
        )

        return cls(
            machine=str(d.get("machine") or "default"),
            openstack=openstack,
            server=server,
            ssh=ssh,
        )

    def validate(self):
        """Raise ValueError listing every missing required field."""
        required = {
            "openstack.auth_url": self.openstack.auth_url,
            "openstack.username": self.openstack.username,
            "openstack.password": self.openstack.password,
            "openstack.project": self.openstack.project,
            "server.flavor": self.server.flavor,
            "server.image": self.server.image,
            "server.network": self.server.network,
        }
        missing = [key for key, value in required.items() if not value]
        if missing:
            raise ValueError(f"Missing required configuration: {', '.join(missing)}")
