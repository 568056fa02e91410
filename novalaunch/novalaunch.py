#!/usr/bin/env python3
"""novalaunch — CLI entrypoint."""

import argparse

from novalaunch.commands.status import register_status_command
from novalaunch.commands.up import register_up_command
from novalaunch.logging_setup import setup_cli_logging


def main():
    parser = argparse.ArgumentParser(description="Launch an OpenStack server and wait until it is reachable")
    parser.add_argument("--verbose", action="store_true", help="Show debug output")
    subparsers = parser.add_subparsers(dest="command", required=True)

    register_up_command(subparsers)
    register_status_command(subparsers)

    args = parser.parse_args()
    setup_cli_logging(verbose=args.verbose)
    args.func(args)


if __name__ == "__main__":
    main()
