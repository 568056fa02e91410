"""Shared pytest fixtures for all test modules."""

import os
import subprocess
import sys

import pytest
import yaml

from novalaunch.provisioning.interfaces import CatalogSource, Communicator, ComputeAPI, MachineState, ProgressUI
from novalaunch.provisioning.types import InstanceHandle, RawRecord, TypedResource

PROJECT_ROOT = os.path.normpath(os.path.join(os.path.dirname(__file__), ".."))


@pytest.fixture(scope="session")
def project_root():
    """Absolute path to the project root directory."""
    return PROJECT_ROOT


@pytest.fixture(scope="session")
def run_cli(project_root):
    """Return a callable that invokes the novalaunch CLI as a subprocess."""

    def _run(*args, env=None):
        result = subprocess.run(
            [sys.executable, "-m", "novalaunch.novalaunch", *args],
            capture_output=True,
            text=True,
            cwd=project_root,
            env=env,
        )
        return result.returncode, result.stdout, result.stderr

    return _run


@pytest.fixture
def make_config(tmp_path):
    """Return a factory that writes a novalaunch.yaml and returns its path."""

    def _make(overrides=None, filename="novalaunch.yaml"):
        config = {
            "machine": "web",
            "openstack": {
                "auth_url": "https://keystone.test:5000/v3",
                "username": "demo",
                "password": "s3cret-password",
                "project": "demo-project",
            },
            "server": {
                "flavor": "m1.small",
                "image": "ubuntu-22.04",
                "network": "public",
                "keypair_name": "demo-key",
                "user_data": "echo hi",
            },
            "ssh": {"username": "ubuntu", "private_key_path": "~/.ssh/id_rsa"},
        }
        for section, values in (overrides or {}).items():
            if isinstance(values, dict) and isinstance(config.get(section), dict):
                config[section].update(values)
            else:
                config[section] = values
        path = tmp_path / filename
        with open(path, "w") as f:
            yaml.dump(config, f)
        return str(path)

    return _make


# ── Provisioning fakes ──────────────────────────────────────────────


class FakeCloud(CatalogSource, ComputeAPI):
    """In-memory catalog plus a scripted sequence of server states."""

    def __init__(self, flavors=None, images=None, networks=None, states=None, instance_id="srv-1", events=None):
        self.flavors = flavors if flavors is not None else [TypedResource("42", "m1.small"), TypedResource("43", "m1.large")]
        self.images = images if images is not None else [TypedResource("img-1", "ubuntu-22.04")]
        self.networks = networks if networks is not None else [RawRecord({"id": "net-1", "name": "public"})]
        self.states = list(states or ["ACTIVE"])
        self.instance_id = instance_id
        self.events = events if events is not None else []
        self.created = []
        self.polls = 0

    async def list_flavors(self):
        self.events.append("list_flavors")
        return self.flavors

    async def list_images(self):
        self.events.append("list_images")
        return self.images

    async def list_networks(self):
        self.events.append("list_networks")
        return self.networks

    async def create_instance(self, request):
        self.events.append("create")
        self.created.append(request)
        return InstanceHandle(id=self.instance_id, state="BUILD")

    async def get_instance(self, instance_id):
        self.events.append("poll")
        self.polls += 1
        state = self.states.pop(0) if len(self.states) > 1 else self.states[0]
        return InstanceHandle(id=instance_id, state=state)


class FakeCommunicator(Communicator):
    """Replays *results*: booleans are returned, exceptions are raised."""

    def __init__(self, results=None, events=None):
        self.results = list(results or [True])
        self.events = events if events is not None else []
        self.calls = 0

    async def is_ready(self):
        self.events.append("ready?")
        self.calls += 1
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, BaseException):
            raise result
        return result


class RecordingMachine(MachineState):
    def __init__(self, events=None):
        self._id = None
        self.events = events if events is not None else []
        self.set_calls = 0

    @property
    def id(self):
        return self._id

    def set_instance_id(self, instance_id):
        self.events.append("set_id")
        self.set_calls += 1
        self._id = instance_id


class RecordingUI(ProgressUI):
    def __init__(self):
        self.messages = []
        self.progress = []
        self.clears = 0

    def info(self, message):
        self.messages.append(message)

    def report_progress(self, current, total):
        self.progress.append((current, total))

    def clear_line(self):
        self.clears += 1


@pytest.fixture
def events():
    """Shared call log across fakes, for ordering assertions."""
    return []


@pytest.fixture
def make_cloud(events):
    """Factory for FakeCloud sharing the ``events`` log."""

    def _make(**kwargs):
        return FakeCloud(events=events, **kwargs)

    return _make


@pytest.fixture
def make_communicator(events):
    """Factory for FakeCommunicator sharing the ``events`` log."""

    def _make(results=None):
        return FakeCommunicator(results=results, events=events)

    return _make


@pytest.fixture
def machine(events):
    return RecordingMachine(events=events)


@pytest.fixture
def ui():
    return RecordingUI()


@pytest.fixture
def no_sleep():
    """Sleep replacement that records requested delays and returns at once."""
    delays = []

    async def _sleep(seconds):
        delays.append(seconds)

    _sleep.delays = delays
    return _sleep
