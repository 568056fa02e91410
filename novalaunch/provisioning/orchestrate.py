"""Server provisioning: resolve, create, wait for ACTIVE, wait for SSH.

Drives one server from user configuration to a reachable machine. All
platform, SSH and UI access goes through the collaborators in
``novalaunch.provisioning.interfaces`` so the whole flow can run against
fakes with an instant ``sleep``.
"""

import asyncio
import logging

from novalaunch.provisioning.cancel import CancellationSignal
from novalaunch.provisioning.errors import (
    ActivationTimeoutError,
    InstanceInBadStateError,
    NetworkUnreachableError,
    NoMatchingFlavorError,
    NoMatchingImageError,
    NoMatchingNetworkError,
)
from novalaunch.provisioning.request import build_instance_request
from novalaunch.provisioning.resolver import find_matching
from novalaunch.provisioning.types import (
    ACTIVE_WAIT,
    REACHABLE_WAIT,
    ProvisioningOutcome,
    ProvisioningState,
)

logger = logging.getLogger(__name__)

ACTIVE_STATE = "ACTIVE"
ERROR_STATE = "ERROR"


class ProvisioningOrchestrator:
    """Runs the provisioning state machine for a single server.

    Args:
        catalog: CatalogSource used for flavor/image/network lookup.
        compute: ComputeAPI used to create and poll the server.
        communicator: Communicator whose ``is_ready()`` gates the final phase.
        machine: MachineState that receives the server id right after creation.
        ui: ProgressUI for user feedback.
        cancel: CancellationSignal checked before every poll and check.
        active_wait / reachable_wait: WaitPolicy for the two wait loops.
        sleep: coroutine function used between polls (default ``asyncio.sleep``).
    """

    def __init__(
        self,
        catalog,
        compute,
        communicator,
        machine,
        ui,
        cancel=None,
        active_wait=ACTIVE_WAIT,
        reachable_wait=REACHABLE_WAIT,
        sleep=None,
    ):
        self.catalog = catalog
        self.compute = compute
        self.communicator = communicator
        self.machine = machine
        self.ui = ui
        self.cancel = cancel if cancel is not None else CancellationSignal()
        self.active_wait = active_wait
        self.reachable_wait = reachable_wait
        self.sleep = sleep or asyncio.sleep
        self.state = ProvisioningState.RESOLVING

    async def run(self, server_config, machine_name, next_stage=None) -> ProvisioningOutcome:
        """Provision a server for *machine_name* as described by *server_config*.

        Returns a DONE or INTERRUPTED outcome. Classified failures are raised
        as ProvisioningError subclasses; the state is left at FAILED.

        *next_stage*, if given, is awaited with the outcome once the server
        is ready.
        """
        try:
            outcome = await self._provision(server_config, machine_name)
        except Exception:
            self.state = ProvisioningState.FAILED
            raise

        if next_stage is not None and not outcome.interrupted:
            await next_stage(outcome)
        return outcome

    async def _provision(self, server_config, machine_name):
        self.state = ProvisioningState.RESOLVING

        self.ui.info("Finding flavor for server...")
        flavor = find_matching(await self.catalog.list_flavors(), server_config.flavor)
        if flavor is None:
            raise NoMatchingFlavorError(server_config.flavor)

        self.ui.info("Finding image for server...")
        image = find_matching(await self.catalog.list_images(), server_config.image)
        if image is None:
            raise NoMatchingImageError(server_config.image)

        self.ui.info("Finding network for server...")
        network = find_matching(await self.catalog.list_networks(), server_config.network)
        if network is None:
            raise NoMatchingNetworkError(server_config.network)

        self.state = ProvisioningState.REQUESTING
        request = build_instance_request(
            flavor,
            image,
            network,
            key_name=server_config.keypair_name,
            user_data=server_config.user_data,
            server_name=server_config.name,
            fallback_name=machine_name,
        )

        self.ui.info("Launching a server with the following settings...")
        self.ui.info(f" -- Flavor: {flavor.name}")
        self.ui.info(f" -- Image: {image.name}")
        self.ui.info(f" -- Network: {network.name}")
        self.ui.info(f" -- Name: {request.name}")

        if self.cancel.is_set():
            return self._interrupted(None)

        handle = await self.compute.create_instance(request)

        # Record the id before waiting so a failed wait never orphans the server
        self.state = ProvisioningState.CREATED
        self.machine.set_instance_id(handle.id)
        logger.debug(f"Server created (id={handle.id})")

        self.state = ProvisioningState.AWAITING_ACTIVE
        self.ui.info("Waiting for the server to be built...")
        active = await self._wait_for_active(handle.id)
        self.ui.clear_line()
        if active is None:
            return self._interrupted(handle.id)

        self.state = ProvisioningState.AWAITING_REACHABLE
        self.ui.info("Waiting for SSH to become available...")
        if not await self._wait_for_reachable():
            return self._interrupted(handle.id)

        self.state = ProvisioningState.DONE
        self.ui.info("The server is ready!")
        return ProvisioningOutcome(ProvisioningState.DONE, handle.id)

    async def _wait_for_active(self, instance_id):
        """Poll the server until it is ACTIVE.

        Returns the refreshed handle, or None if cancellation was requested.
        """
        policy = self.active_wait
        for window in range(1, policy.windows + 1):
            for attempt in range(1, policy.attempts + 1):
                if self.cancel.is_set():
                    return None

                self.ui.clear_line()
                self.ui.report_progress(attempt, policy.attempts)

                handle = await self.compute.get_instance(instance_id)
                if handle.state == ERROR_STATE:
                    raise InstanceInBadStateError(handle.state)
                if handle.state == ACTIVE_STATE:
                    return handle

                if window < policy.windows or attempt < policy.attempts:
                    await self.sleep(policy.interval)

            logger.debug(f"Server {instance_id} not active after window {window}/{policy.windows}, retrying")

        raise ActivationTimeoutError(instance_id, policy.attempts * policy.windows)

    async def _wait_for_reachable(self):
        """Wait for the communicator with no attempt limit.

        Returns True once ready, False if cancellation was requested.
        """
        attempt = 0
        while True:
            if self.cancel.is_set():
                return False

            attempt += 1
            try:
                if await self.communicator.is_ready():
                    return True
            except NetworkUnreachableError as e:
                logger.debug(f"Network unreachable (attempt {attempt}): {e}")

            await self.sleep(self.reachable_wait.interval)

    def _interrupted(self, instance_id):
        self.state = ProvisioningState.INTERRUPTED
        logger.debug(f"Provisioning interrupted; server {instance_id} left running")
        return ProvisioningOutcome(ProvisioningState.INTERRUPTED, instance_id)
