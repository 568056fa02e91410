"""SSH readiness check for a freshly built server."""

import asyncio
import logging
import os

from novalaunch.provisioning.errors import NetworkUnreachableError, ReachabilityCheckFailedError
from novalaunch.provisioning.interfaces import Communicator

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT = 5


def ssh_base_args(server, ssh_key, ssh_port):
    """Build base SSH arguments."""
    args = [
        "ssh",
        "-o", "StrictHostKeyChecking=no",
        "-o", "UserKnownHostsFile=/dev/null",
        "-o", "BatchMode=yes",
        "-o", f"ConnectTimeout={CONNECT_TIMEOUT}",
    ]
    if ssh_key:
        args += ["-i", os.path.expanduser(ssh_key)]
    if ssh_port and ssh_port != 22:
        args += ["-p", str(ssh_port)]
    args.append(server)
    return args


class SSHCommunicator(Communicator):
    """Checks that ``ssh <host> true`` succeeds.

    Args:
        resolve_host: coroutine function returning the current host address,
            or None if the server has none yet.
    """

    def __init__(self, resolve_host, username=None, ssh_key=None, ssh_port=22):
        self.resolve_host = resolve_host
        self.username = username
        self.ssh_key = ssh_key
        self.ssh_port = ssh_port

    async def is_ready(self):
        host = await self.resolve_host()
        if not host:
            logger.debug("Server has no address yet")
            return False

        address = f"{self.username}@{host}" if self.username else host
        args = ssh_base_args(address, self.ssh_key, self.ssh_port)
        args.append("true")
        proc = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        _, stderr_bytes = await proc.communicate()
        if proc.returncode == 0:
            return True

        stderr = stderr_bytes.decode(errors="replace").strip() if stderr_bytes else ""
        if "Network is unreachable" in stderr:
            raise NetworkUnreachableError(stderr)
        if "Permission denied" in stderr:
            raise ReachabilityCheckFailedError(f"SSH authentication to {address}:{self.ssh_port} failed: {stderr}")

        logger.debug(f"SSH to {address}:{self.ssh_port} not ready (rc={proc.returncode}): {stderr}")
        return False
