"""Switchboard CLI — route inspection and configuration checks.

Entry point registered as ``switchboard`` in ``pyproject.toml``::

    [project.scripts]
    switchboard = "switchboard.cli:main"
"""

import argparse
import sys


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``switchboard`` command."""
    parser = argparse.ArgumentParser(
        prog="switchboard",
        description="Switchboard — a platform-agnostic message router for bots.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # -- switchboard routes -----------------------------------------------
    routes_parser = subparsers.add_parser("routes", help="Print the compiled route tree")
    routes_parser.add_argument(
        "core",
        help="Import string (e.g. mybot:core or mybot:app)",
    )

    # -- switchboard check ------------------------------------------------
    check_parser = subparsers.add_parser("check", help="Validate routes, properties, and interfaces")
    check_parser.add_argument(
        "core",
        help="Import string (e.g. mybot:core or mybot:app)",
    )

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "routes":
        from switchboard.cli._routes import run_routes

        run_routes(args)
    elif args.command == "check":
        from switchboard.cli._check import run_check

        run_check(args)
