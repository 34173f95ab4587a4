"""``switchboard check`` — configuration validation command.

Resolves an import string to a Core and freezes it, which validates every
condition, static output name, and interface registration. Exits with
code 1 on the first configuration error.
"""

import argparse
import sys

from switchboard.cli._resolve import resolve_core
from switchboard.errors import ConfigurationError, UnknownOutputError


def run_check(args: argparse.Namespace) -> None:
    """Validate the configuration of a switchboard Core."""
    try:
        core = resolve_core(args.core)
    except (ModuleNotFoundError, AttributeError, TypeError, ConfigurationError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    try:
        core.freeze()
    except (ConfigurationError, UnknownOutputError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    nodes = sum(1 for _ in core.router.walk())
    interfaces = ", ".join(i.name for i in core.interfaces) or "none"
    print(f"OK: {nodes} routes, interfaces: {interfaces}")
