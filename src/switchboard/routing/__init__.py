"""Routing — condition tree with depth-first, leftmost-match semantics.

Routes are registered during setup through builders and compiled into an
immutable tree when the core freezes.
"""

from switchboard.routing.builder import ResponseList, RouteBuilder
from switchboard.routing.route import ResponseAction, RouteMatch, RouteNode
from switchboard.routing.router import Router

__all__ = [
    "ResponseAction",
    "ResponseList",
    "RouteBuilder",
    "RouteMatch",
    "RouteNode",
    "Router",
]
