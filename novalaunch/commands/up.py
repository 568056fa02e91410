"""Up command: build the configured server and wait until SSH is ready."""

import asyncio
import logging
import signal
import sys

import httpx

from novalaunch.config import DEFAULT_CONFIG_PATH, load_config
from novalaunch.provisioning.cancel import CancellationSignal
from novalaunch.provisioning.errors import ProvisioningError
from novalaunch.provisioning.openstack import OpenStackClient, public_address
from novalaunch.provisioning.orchestrate import ProvisioningOrchestrator
from novalaunch.provisioning.request import build_instance_request
from novalaunch.provisioning.ssh import SSHCommunicator
from novalaunch.provisioning.state import DEFAULT_DATA_DIR, FileMachineState
from novalaunch.provisioning.types import RawRecord, TypedResource
from novalaunch.provisioning.ui import ConsoleUI

logger = logging.getLogger(__name__)

EXIT_INTERRUPTED = 130


def _selector_text(selector):
    pattern = getattr(selector, "pattern", None)
    return f"/{pattern}/" if pattern is not None else str(selector)


def _make_client(config, dry_run=False):
    os_config = config.openstack
    return OpenStackClient(
        auth_url=os_config.auth_url,
        username=os_config.username,
        password=os_config.password,
        project=os_config.project,
        domain=os_config.domain,
        region=os_config.region,
        dry_run=dry_run,
    )


async def _dry_run(config):
    """Log the settings and the create request without contacting the cloud.

    Selectors are not resolved, so the request carries them as placeholders.
    """
    server = config.server
    flavor = _selector_text(server.flavor)
    image = _selector_text(server.image)
    logger.info(f"[dry-run] machine: {config.machine}")
    logger.info(f"[dry-run] auth: {config.openstack.username}@{config.openstack.auth_url} (project {config.openstack.project})")
    logger.info(f"[dry-run] flavor: {flavor}, image: {image}, network: {server.network}")

    request = build_instance_request(
        TypedResource(id=f"<flavor {flavor}>", name=flavor),
        TypedResource(id=f"<image {image}>", name=image),
        RawRecord({"id": f"<network {server.network}>", "name": server.network}),
        key_name=server.keypair_name,
        user_data=server.user_data,
        server_name=server.name,
        fallback_name=config.machine,
    )
    await _make_client(config, dry_run=True).create_instance(request)
    logger.info("[dry-run] Would wait for ACTIVE status, then for SSH.")


async def _provision(config, machine):
    client = _make_client(config)

    async def resolve_host():
        return public_address(await client.get_instance(machine.id))

    communicator = SSHCommunicator(
        resolve_host,
        username=config.ssh.username,
        ssh_key=config.ssh.private_key_path,
        ssh_port=config.ssh.port,
    )
    cancel = CancellationSignal()
    orchestrator = ProvisioningOrchestrator(client, client, communicator, machine, ConsoleUI(), cancel)

    def _interrupt():
        logger.info("Interrupt received; stopping after the current check...")
        cancel.set()

    loop = asyncio.get_running_loop()
    loop.add_signal_handler(signal.SIGINT, _interrupt)
    try:
        outcome = await orchestrator.run(config.server, config.machine)
    finally:
        loop.remove_signal_handler(signal.SIGINT)

    if outcome.interrupted:
        if outcome.instance_id is None:
            logger.info("Interrupted before the server was created.")
        else:
            logger.info(f"Interrupted. Server {outcome.instance_id} was left running.")
        return EXIT_INTERRUPTED

    host = public_address(await client.get_instance(outcome.instance_id))
    logger.info(f"Server:   {outcome.instance_id}")
    if host:
        user = f"{config.ssh.username}@" if config.ssh.username else ""
        logger.info(f"Connect:  ssh {user}{host}")
    return 0


async def _handle_up(args):
    try:
        config = load_config(args.config, machine=args.machine)
        config.validate()
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Error: {e}")
        return 1

    if args.dry_run:
        await _dry_run(config)
        return 0

    machine = FileMachineState(config.machine, args.data_dir)
    if machine.id:
        logger.error(f"Error: machine '{config.machine}' is already backed by server {machine.id} ({machine.path}).")
        return 1

    try:
        return await _provision(config, machine)
    except (ProvisioningError, httpx.HTTPError) as e:
        logger.error(f"Error: {e}")
        if machine.id:
            logger.error(f"Server {machine.id} was created and is still recorded in {machine.path}.")
        return 1


def handle_up(args):
    """CLI handler for 'up'."""
    rc = asyncio.run(_handle_up(args))
    if rc:
        sys.exit(rc)


def register_up_command(subparsers):
    """Register the up subcommand."""
    parser = subparsers.add_parser("up", help="Create the configured server and wait for SSH")
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help=f"Config file (default: {DEFAULT_CONFIG_PATH})")
    parser.add_argument("--machine", default=None, help="Logical machine name (overrides 'machine' in the config)")
    parser.add_argument("--data-dir", default=DEFAULT_DATA_DIR, help=f"Machine state directory (default: {DEFAULT_DATA_DIR})")
    parser.add_argument("--dry-run", action="store_true", help="Print the request without contacting the cloud")
    parser.set_defaults(func=handle_up)
