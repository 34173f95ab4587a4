"""Condition-tree router.

Routes are registered during setup through builders and compiled into an
immutable tree of ``RouteNode`` objects when the Core freezes. Compilation
validates every condition and every static output name, so configuration
mistakes surface at startup instead of on the first message.

Matching is depth-first, leftmost-match: at each level the first node whose
conditions all pass wins and the router descends into its children. A
level's winner is final; the router never backtracks to an ancestor's
siblings. The deepest node reached is the match, even if it has no
response actions.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from switchboard.conditions import ConditionRegistry
from switchboard.properties import Input, PropertyRegistry
from switchboard.routing.builder import ResponseList, RouteBuilder
from switchboard.routing.route import ResponseAction, RouteMatch, RouteNode

logger = logging.getLogger("switchboard.routing")


class Router:
    """Compiled condition-tree router with default and error responses.

    Usage::

        router = Router()
        with router.configure() as routes:
            routes.on("chat", command="help").respond(chat_text="Help!")
        router.default.respond(chat_text="Unknown command")
        router.compile(conditions, properties)
        match = router.match(input)
    """

    __slots__ = (
        "_compiled",
        "_conditions",
        "_default",
        "_default_actions",
        "_error",
        "_error_actions",
        "_root",
        "_roots",
    )

    def __init__(self) -> None:
        self._compiled = False
        self._root = RouteBuilder((), self._check_not_compiled)
        self._default = ResponseList(self._check_not_compiled)
        self._error = ResponseList(self._check_not_compiled)

        # Compiled state — set during compile()
        self._roots: tuple[RouteNode, ...] = ()
        self._default_actions: tuple[ResponseAction, ...] = ()
        self._error_actions: tuple[ResponseAction, ...] = ()
        self._conditions: ConditionRegistry | None = None

    # -- Registration --

    @contextmanager
    def configure(self) -> Iterator[RouteBuilder]:
        """Yield the top-level builder. May be used more than once; routes append."""
        self._check_not_compiled()
        yield self._root

    def on(self, pack: str, /, *kinds: str, **arguments: object) -> RouteBuilder:
        """Add a top-level route. Shortcut for ``configure()`` + ``on()``."""
        return self._root.on(pack, *kinds, **arguments)

    @property
    def default(self) -> ResponseList:
        """Actions run when no top-level route matches."""
        return self._default

    @property
    def error(self) -> ResponseList:
        """Actions run when an immediate action fails."""
        return self._error

    # -- Compilation --

    @property
    def compiled(self) -> bool:
        return self._compiled

    def compile(
        self,
        conditions: ConditionRegistry,
        properties: PropertyRegistry,
        *,
        catch_all_last: bool = True,
    ) -> None:
        """Validate and freeze the route tree. No more routes can be added.

        Raises ``UnknownConditionError`` / ``ConfigurationError`` for bad
        conditions and ``UnknownOutputError`` for unknown static outputs.
        """
        if self._compiled:
            return
        roots = tuple(
            self._build(child, conditions, properties, catch_all_last=catch_all_last)
            for child in self._root.children
        )
        self._roots = self._order(roots, catch_all_last)
        self._default_actions = self._validate_actions(self._default.actions, properties)
        self._error_actions = self._validate_actions(self._error.actions, properties)
        self._conditions = conditions
        self._compiled = True

    def _build(
        self,
        builder: RouteBuilder,
        conditions: ConditionRegistry,
        properties: PropertyRegistry,
        *,
        catch_all_last: bool = True,
    ) -> RouteNode:
        definitions = [conditions.validate(c) for c in builder.conditions]
        children = tuple(
            self._build(child, conditions, properties, catch_all_last=catch_all_last)
            for child in builder.children
        )
        return RouteNode(
            conditions=builder.conditions,
            actions=self._validate_actions(builder.actions, properties),
            children=self._order(children, catch_all_last),
            catch_all=all(d.catch_all for d in definitions),
        )

    @staticmethod
    def _validate_actions(
        actions: tuple[ResponseAction, ...],
        properties: PropertyRegistry,
    ) -> tuple[ResponseAction, ...]:
        for action in actions:
            properties.validate_outputs(action.output_names)
        return actions

    @staticmethod
    def _order(nodes: tuple[RouteNode, ...], catch_all_last: bool) -> tuple[RouteNode, ...]:
        """Apply the catch-all policy to one level of siblings."""
        if catch_all_last:
            specific = tuple(n for n in nodes if not n.catch_all)
            general = tuple(n for n in nodes if n.catch_all)
            return specific + general

        for index, node in enumerate(nodes[:-1]):
            if node.catch_all:
                unreachable = ", ".join(n.label for n in nodes[index + 1 :])
                logger.warning(
                    "Catch-all route %s makes later siblings unreachable: %s",
                    node.label,
                    unreachable,
                )
                break
        return nodes

    # -- Matching --

    def match(self, input: Input) -> RouteMatch | None:
        """Return the selected match chain for ``input``, or ``None``.

        Exceptions raised by condition predicates propagate to the caller.
        """
        if self._conditions is None:
            msg = "Router must be compiled before matching."
            raise RuntimeError(msg)

        path: list[RouteNode] = []
        candidates = self._roots
        while candidates:
            for node in candidates:
                if self._passes(node, input):
                    path.append(node)
                    candidates = node.children
                    break
            else:
                break

        if not path:
            return None
        return RouteMatch(node=path[-1], path=tuple(path))

    def _passes(self, node: RouteNode, input: Input) -> bool:
        assert self._conditions is not None
        # all() short-circuits: later conditions are not evaluated once one fails
        return all(self._conditions.matches(c, input) for c in node.conditions)

    # -- Introspection --

    @property
    def routes(self) -> tuple[RouteNode, ...]:
        """Compiled top-level nodes, in matching order."""
        return self._roots

    @property
    def default_actions(self) -> tuple[ResponseAction, ...]:
        return self._default_actions

    @property
    def error_actions(self) -> tuple[ResponseAction, ...]:
        return self._error_actions

    def walk(self) -> Iterator[tuple[int, RouteNode]]:
        """Yield ``(depth, node)`` over the compiled tree, pre-order."""
        for root in self._roots:
            yield from root.walk()

    def _check_not_compiled(self) -> None:
        if self._compiled:
            msg = (
                "Cannot modify routes after the router has been compiled. "
                "Register routes before the core handles its first input."
            )
            raise RuntimeError(msg)
