"""Configuration loading."""

from novalaunch.config.loader import DEFAULT_CONFIG_PATH, deep_merge, load_config
from novalaunch.config.types import LaunchConfig, OpenStackConfig, ServerConfig, SSHConfig

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "LaunchConfig",
    "OpenStackConfig",
    "SSHConfig",
    "ServerConfig",
    "deep_merge",
    "load_config",
]
