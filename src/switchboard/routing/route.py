"""RouteNode, ResponseAction, and RouteMatch frozen dataclasses."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from switchboard._internal.types import ResponseBody
from switchboard.conditions import Condition


@dataclass(frozen=True, slots=True)
class ResponseAction:
    """One unit of output production.

    ``outputs`` are static property values applied first; ``body`` (if any)
    is then called as ``body(input, output)`` and may add or overwrite
    values. ``deferred`` actions run detached from the request.
    """

    body: ResponseBody | None = None
    outputs: tuple[tuple[str, Any], ...] = ()
    deferred: bool = False

    @classmethod
    def create(
        cls,
        body: ResponseBody | None = None,
        outputs: Mapping[str, Any] | None = None,
        *,
        deferred: bool = False,
    ) -> ResponseAction:
        if body is not None and not callable(body):
            msg = f"Response body must be callable, got {type(body).__name__}"
            raise TypeError(msg)
        return cls(body=body, outputs=tuple((outputs or {}).items()), deferred=deferred)

    @property
    def output_names(self) -> tuple[str, ...]:
        return tuple(name for name, _ in self.outputs)

    @property
    def label(self) -> str:
        kind = "respond_async" if self.deferred else "respond"
        if self.body is not None:
            return f"{kind}({getattr(self.body, '__name__', repr(self.body))})"
        return f"{kind}({', '.join(self.output_names)})"

    def __repr__(self) -> str:
        return self.label


@dataclass(frozen=True, slots=True)
class RouteNode:
    """A node in the condition tree.

    Created by ``RouteBuilder``, compiled into the router at freeze time.
    All ``conditions`` must pass for the node to match. ``catch_all`` is
    set at compile time when every condition is a catch-all kind.
    """

    conditions: tuple[Condition, ...]
    actions: tuple[ResponseAction, ...] = ()
    children: tuple[RouteNode, ...] = ()
    catch_all: bool = False

    @property
    def label(self) -> str:
        return " & ".join(str(c) for c in self.conditions) or "<root>"

    def walk(self, depth: int = 0) -> Iterator[tuple[int, RouteNode]]:
        """Yield ``(depth, node)`` for this node and its descendants, pre-order."""
        yield depth, self
        for child in self.children:
            yield from child.walk(depth + 1)


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful match: the selected node and its ancestor chain."""

    node: RouteNode
    path: tuple[RouteNode, ...]

    @property
    def actions(self) -> tuple[ResponseAction, ...]:
        return self.node.actions

    @property
    def depth(self) -> int:
        return len(self.path) - 1
