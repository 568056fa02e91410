"""Config loading: YAML file, OS_* environment fallbacks, user data files."""

import os

import yaml

from novalaunch.config.types import LaunchConfig, config_section
from novalaunch.redact import register_secret

DEFAULT_CONFIG_PATH = "novalaunch.yaml"

# openstack.<key> -> env vars tried in order when the key is not in the file
ENV_FALLBACKS = {
    "auth_url": ["OS_AUTH_URL"],
    "username": ["OS_USERNAME"],
    "password": ["OS_PASSWORD"],
    "project": ["OS_PROJECT_NAME", "OS_TENANT_NAME"],
    "domain": ["OS_USER_DOMAIN_NAME"],
    "region": ["OS_REGION_NAME"],
}


def deep_merge(base, override):
    """Recursive dict merge. Override wins for scalars."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _env_defaults(environ):
    defaults = {}
    for key, names in ENV_FALLBACKS.items():
        for name in names:
            if environ.get(name):
                defaults[key] = environ[name]
                break
    return {"openstack": defaults}


def _normalize(d, base_dir):
    """Apply key aliases and inline ``server.user_data_file``."""
    openstack = d["openstack"] = config_section(d, "openstack")
    if "tenant" in openstack and "project" not in openstack:
        openstack["project"] = openstack.pop("tenant")

    server = d["server"] = config_section(d, "server")
    d["ssh"] = config_section(d, "ssh")
    user_data_file = server.pop("user_data_file", None)
    if user_data_file:
        if "user_data" in server:
            raise ValueError("Set only one of server.user_data and server.user_data_file")
        path = os.path.join(base_dir, os.path.expanduser(user_data_file))
        with open(path, "rb") as f:
            server["user_data"] = f.read()
    return d


def load_config(config_path=DEFAULT_CONFIG_PATH, machine=None, environ=None):
    """Load a LaunchConfig from *config_path*.

    Values missing from the file fall back to the OS_* environment
    variables. *machine* overrides the logical machine name.
    """
    environ = os.environ if environ is None else environ
    if not os.path.isfile(config_path):
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Config file must contain a mapping: {config_path}")

    raw = _normalize(raw, os.path.dirname(os.path.abspath(config_path)))
    config_dict = deep_merge(_env_defaults(environ), raw)
    if machine:
        config_dict["machine"] = machine

    config = LaunchConfig.from_dict(config_dict)
    if config.openstack.password:
        register_secret(config.openstack.password)
    return config
