"""``switchboard routes`` — print the compiled route tree.

Resolves an import string to a Core, freezes it, and prints every route
node indented by depth, in matching order, with its response actions.
"""

import argparse
import sys

from switchboard.cli._resolve import resolve_core
from switchboard.errors import ConfigurationError, UnknownOutputError
from switchboard.routing.route import ResponseAction


def _actions(actions: tuple[ResponseAction, ...]) -> str:
    return ", ".join(a.label for a in actions) or "-"


def run_routes(args: argparse.Namespace) -> None:
    """List the route tree of a switchboard Core."""
    try:
        core = resolve_core(args.core)
        core.freeze()
    except (
        ModuleNotFoundError,
        AttributeError,
        TypeError,
        ConfigurationError,
        UnknownOutputError,
    ) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    router = core.router
    rows = [("  " * depth + node.label, _actions(node.actions)) for depth, node in router.walk()]
    if not rows:
        print("No routes registered.")
    else:
        width = max(max(len(r[0]) for r in rows), 5)  # "ROUTE" header
        fmt = f"{{:<{width}}}  {{}}"
        print(fmt.format("ROUTE", "ACTIONS"))
        print("-" * min(width + 2 + max(len(r[1]) for r in rows), 80))
        for route, actions in rows:
            print(fmt.format(route, actions))

    print()
    print(f"default: {_actions(router.default_actions)}")
    print(f"error:   {_actions(router.error_actions)}")
