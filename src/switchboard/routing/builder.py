"""Route builders — the registration API.

Builders are mutable during setup and turned into frozen ``RouteNode``
trees when the router compiles. Nesting mirrors the condition tree::

    with core.router.configure() as routes:
        with routes.on("chat", command="help") as help_:
            help_.on("chat", text="working hours").respond(chat_text="10-19")
            help_.on("flow", "any").respond(chat_text="Try /help working hours")

        @routes.on("chat", command="weather").responder()
        def weather(input, output):
            output["chat_text"] = f"Weather for {input['chat_text']}"

Declared order is preserved at every level.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Self

from switchboard._internal.types import ResponseBody
from switchboard.conditions import Condition
from switchboard.routing.route import ResponseAction


class ResponseList:
    """An ordered list of response actions under construction."""

    __slots__ = ("_actions", "_check")

    def __init__(self, check: Callable[[], None]) -> None:
        self._actions: list[ResponseAction] = []
        self._check = check

    def respond(self, body: ResponseBody | None = None, /, **outputs: Any) -> Self:
        """Append an immediate action. Returns ``self`` for chaining.

        Args:
            body: Optional callable ``body(input, output)``, sync or async.
            outputs: Static output property values, set before ``body`` runs.
        """
        return self._append(body, outputs, deferred=False)

    def respond_async(self, body: ResponseBody | None = None, /, **outputs: Any) -> Self:
        """Append a deferred action, run detached from the request."""
        return self._append(body, outputs, deferred=True)

    def responder(self, *, deferred: bool = False) -> Callable[[ResponseBody], ResponseBody]:
        """Append a response body via decorator.

        Usage::

            @node.responder(deferred=True)
            def report(input, output):
                time.sleep(5)
                output["chat_text"] = "Done"
        """

        def decorator(func: ResponseBody) -> ResponseBody:
            self._append(func, {}, deferred=deferred)
            return func

        return decorator

    def _append(self, body: ResponseBody | None, outputs: dict[str, Any], *, deferred: bool) -> Self:
        self._check()
        if body is None and not outputs:
            msg = "A response needs a body, output values, or both."
            raise TypeError(msg)
        self._actions.append(ResponseAction.create(body, outputs, deferred=deferred))
        return self

    @property
    def actions(self) -> tuple[ResponseAction, ...]:
        return tuple(self._actions)

    def __len__(self) -> int:
        return len(self._actions)


class RouteBuilder(ResponseList):
    """A route node under construction. Also usable as a context manager."""

    __slots__ = ("_children", "conditions")

    def __init__(self, conditions: tuple[Condition, ...], check: Callable[[], None]) -> None:
        super().__init__(check)
        self.conditions = conditions
        self._children: list[RouteBuilder] = []

    def on(self, pack: str, /, *kinds: str, **arguments: Any) -> RouteBuilder:
        """Add a child route and return its builder.

        Each positional ``kind`` becomes an argument-less condition and
        each keyword becomes a condition with that argument, all in the
        same ``pack``. All of them must pass for the child to match::

            routes.on("flow", "any")
            routes.on("chat", command="help", text="x")
        """
        conditions = tuple(Condition(pack, kind) for kind in kinds) + tuple(
            Condition(pack, kind, argument) for kind, argument in arguments.items()
        )
        return self.on_conditions(*conditions)

    def on_conditions(self, *conditions: Condition) -> RouteBuilder:
        """Add a child route from explicit ``Condition`` objects (any packs)."""
        self._check()
        if not conditions:
            msg = "A route needs at least one condition."
            raise TypeError(msg)
        child = RouteBuilder(tuple(conditions), self._check)
        self._children.append(child)
        return child

    @property
    def children(self) -> tuple[RouteBuilder, ...]:
        return tuple(self._children)

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *args: object) -> None:
        return None

    def __repr__(self) -> str:
        conds = ", ".join(str(c) for c in self.conditions)
        return f"RouteBuilder({conds}; {len(self._actions)} actions, {len(self._children)} children)"
