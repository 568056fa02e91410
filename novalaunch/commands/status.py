"""Status command: show which server backs a machine."""

import logging

from novalaunch.provisioning.state import DEFAULT_DATA_DIR, FileMachineState

logger = logging.getLogger(__name__)


def handle_status(args):
    machine = FileMachineState(args.machine, args.data_dir)
    instance_id = machine.id
    if instance_id is None:
        logger.info(f"{args.machine}: not created")
    else:
        logger.info(f"{args.machine}: {instance_id}")


def register_status_command(subparsers):
    """Register the status subcommand."""
    parser = subparsers.add_parser("status", help="Show the recorded server id for a machine")
    parser.add_argument("--machine", default="default", help="Logical machine name (default: default)")
    parser.add_argument("--data-dir", default=DEFAULT_DATA_DIR, help=f"Machine state directory (default: {DEFAULT_DATA_DIR})")
    parser.set_defaults(func=handle_status)
