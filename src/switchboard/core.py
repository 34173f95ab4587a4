"""Switchboard core — the composition root.

Mutable during setup (interfaces, plugins, routes, hooks, loggers).
Frozen when ``freeze()`` runs, at the latest when the first input is
handled; from then on the route tree, response lists, registries and
logger list are read-only and shared by every concurrent request.

Typical wiring::

    core = Core(CoreConfig(max_deferred=8), loggers=[logging.getLogger("bot")])
    chat = ChatInterface(core)

    with core.router.configure() as routes:
        routes.on("chat", command="ping").respond(chat_text="pong")
    core.router.default.respond(chat_text="Unknown command")
    core.router.error.respond(chat_text="Something went wrong")

    async with core.running():
        result = await chat.receive(event)
"""

from __future__ import annotations

import logging
import threading
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from switchboard._internal.invoke import invoke
from switchboard._internal.types import Hook
from switchboard.batteries import Batteries
from switchboard.conditions import ConditionRegistry
from switchboard.config import CoreConfig
from switchboard.deferred import DeferredExecutor, DeferredResult, PendingBundle
from switchboard.dispatch import BundleOrPending, Dispatcher, DispatchOutcome
from switchboard.errors import ConfigurationError, DeliveryError, DispatchError
from switchboard.logs import (
    DEFERRED_COMPLETE,
    DEFERRED_FAILURE,
    DISPATCH_ERROR,
    ERROR_PATH_FAILURE,
    ROUTE_MISS,
    LogSink,
    RouterEvent,
    Severity,
)
from switchboard.properties import Input, OutputBundle, PropertyRegistry
from switchboard.routing.route import ResponseAction, RouteMatch
from switchboard.routing.router import Router

if TYPE_CHECKING:
    from switchboard.interfaces.base import Interface


class Plugin(Protocol):
    """Protocol for plugins: anything with a ``name`` and ``setup(core)``.

    No base class required. Plugins register properties and condition
    packs; each plugin name is set up at most once per core.
    """

    name: str

    def setup(self, core: Core) -> None: ...


@dataclass(frozen=True, slots=True)
class HandleResult:
    """Outcome of handling one input.

    ``bundles`` holds delivered ``OutputBundle`` objects and
    ``PendingBundle`` handles for deferred actions, in declared order,
    followed by the error path's bundles if ``error`` is set.
    """

    matched: bool
    bundles: tuple[BundleOrPending, ...] = ()
    match: RouteMatch | None = None
    error: DispatchError | None = None

    @property
    def delivered(self) -> tuple[OutputBundle, ...]:
        """Bundles delivered before ``handle`` returned."""
        return tuple(b for b in self.bundles if isinstance(b, OutputBundle))

    @property
    def pending(self) -> tuple[PendingBundle, ...]:
        return tuple(b for b in self.bundles if isinstance(b, PendingBundle))


class Core:
    """Binds one Router to its interfaces, plugins, and loggers.

    Thread safety:
        Setup is single-threaded. The freeze transition uses a Lock +
        double-check so exactly one caller compiles the router.
    """

    __slots__ = (
        "_dispatcher",
        "_executor",
        "_freeze_lock",
        "_frozen",
        "_input_hooks",
        "_interfaces",
        "_output_hooks",
        "_plugins",
        "_shutdown_hooks",
        "_sink",
        "_startup_hooks",
        "conditions",
        "config",
        "properties",
        "router",
    )

    def __init__(
        self,
        config: CoreConfig | None = None,
        *,
        loggers: list[logging.Logger] | tuple[logging.Logger, ...] = (),
    ) -> None:
        self.config: CoreConfig = config or CoreConfig()
        self.properties = PropertyRegistry()
        self.conditions = ConditionRegistry()
        self.router = Router()
        self._sink = LogSink(loggers)
        self._interfaces: dict[str, Interface] = {}
        self._plugins: dict[str, Plugin] = {}
        self._input_hooks: list[Hook] = []
        self._output_hooks: list[Hook] = []
        self._startup_hooks: list[Hook] = []
        self._shutdown_hooks: list[Hook] = []
        self._executor = DeferredExecutor(
            report=self._report_deferred,
            max_concurrent=self.config.max_deferred,
        )
        self._frozen = False
        self._freeze_lock = threading.Lock()

        # Compiled state — set during _freeze()
        self._dispatcher: Dispatcher | None = None

    # -- Loggers --

    def add_logger(self, logger: logging.Logger) -> None:
        """Attach a logger that receives structured router events."""
        self._check_not_frozen()
        self._sink.add(logger)

    @property
    def loggers(self) -> tuple[logging.Logger, ...]:
        return self._sink.loggers

    # -- Plugins and interfaces --

    def register_plugin(self, plugin: Plugin) -> bool:
        """Set up ``plugin`` unless one with the same name already is.

        Returns ``True`` if the plugin was set up by this call.
        """
        self._check_not_frozen()
        if plugin.name in self._plugins:
            return False
        plugin.setup(self)
        self._plugins[plugin.name] = plugin
        return True

    def register_interface(self, interface: Interface) -> None:
        """Register ``interface`` and run its ``setup``.

        Called by ``Interface.__init__``; the batteries plugin is set up
        first so interfaces can build on it.
        """
        self._check_not_frozen()
        if interface.name in self._interfaces:
            msg = f"An interface named {interface.name!r} is already registered"
            raise ConfigurationError(msg)
        self.register_plugin(Batteries())
        interface.setup(self)
        self._interfaces[interface.name] = interface

    def interface(self, name: str) -> Interface:
        try:
            return self._interfaces[name]
        except KeyError:
            msg = f"No interface named {name!r}"
            raise KeyError(msg) from None

    @property
    def interfaces(self) -> tuple[Interface, ...]:
        return tuple(self._interfaces.values())

    @property
    def plugins(self) -> tuple[str, ...]:
        return tuple(self._plugins)

    # -- Hooks --

    def on_input(self, func: Hook) -> Hook:
        """Register a hook run with each ``Input`` before routing.

        Usage::

            @core.on_input
            def audit(input):
                log.info("message from %s", input.source)
        """
        self._check_not_frozen()
        self._input_hooks.append(func)
        return func

    def on_output(self, func: Hook) -> Hook:
        """Register a hook run with ``(input, output)`` before each bundle is finalized."""
        self._check_not_frozen()
        self._output_hooks.append(func)
        return func

    def on_startup(self, func: Hook) -> Hook:
        """Register a hook run when ``running()`` is entered."""
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Hook) -> Hook:
        """Register a hook run when ``running()`` exits, after deferred work drains."""
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    # -- Lifecycle --

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        """Validate and compile the configuration.

        Raises ``ConfigurationError`` (or a subclass) for any mistake.
        Safe to call more than once.
        """
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """MUST only be called while holding _freeze_lock."""
        # 1. Every interface must be able to match and to answer
        for interface in self._interfaces.values():
            _, outputs = self.properties.owned_by(interface.name)
            if not self.conditions.packs_owned_by(interface.name):
                msg = f"Interface {interface.name!r} registers no condition pack"
                raise ConfigurationError(msg)
            if not outputs:
                msg = f"Interface {interface.name!r} registers no output property"
                raise ConfigurationError(msg)

        # 2. Compile route table (conditions and static outputs validated here)
        self.router.compile(
            self.conditions,
            self.properties,
            catch_all_last=self.config.catch_all_last,
        )

        # 3. Registries, logger list, and dispatcher are fixed from now on
        self.properties.freeze()
        self.conditions.freeze()
        self._sink.freeze()
        self._dispatcher = Dispatcher(
            self.properties,
            self._executor,
            self._deliver,
            output_hooks=self._output_hooks,
        )
        self._frozen = True

    @asynccontextmanager
    async def running(self) -> AsyncIterator[Core]:
        """Freeze, run startup hooks, and host deferred work.

        Exiting waits for all deferred actions, then runs shutdown hooks.
        """
        self.freeze()
        for hook in self._startup_hooks:
            await invoke(hook)
        try:
            async with self._executor.running():
                yield self
        finally:
            for hook in self._shutdown_hooks:
                await invoke(hook)

    @property
    def running_now(self) -> bool:
        return self._executor.running_now

    async def join(self) -> None:
        """Wait until every in-flight deferred action has finished."""
        await self._executor.join()

    # -- Handling --

    async def handle(self, input: Input) -> HandleResult:
        """Route ``input`` and dispatch the selected actions.

        Never raises for per-request failures: they are reported to the
        attached loggers and, for immediate-action failures, answered by
        the router's error actions.
        """
        self.freeze()
        if not self._executor.running_now:
            msg = "Core is not running; handle input inside 'async with core.running():'."
            raise RuntimeError(msg)
        assert self._dispatcher is not None

        try:
            for hook in self._input_hooks:
                await invoke(hook, input)
            match = self.router.match(input)
        except Exception as exc:
            error = DispatchError(None, "Routing failed")
            error.__cause__ = exc
            self._report_dispatch_error(error, input)
            bundles = await self._run_error_path(input)
            return HandleResult(matched=False, bundles=bundles, error=error)

        if match is None:
            self._emit(ROUTE_MISS, Severity.INFO, "No route matched; using default response", input)
            actions: tuple[ResponseAction, ...] = self.router.default_actions
        else:
            actions = match.actions

        outcome: DispatchOutcome = await self._dispatcher.dispatch(actions, input)
        bundles = outcome.bundles
        if outcome.error is not None:
            self._report_dispatch_error(outcome.error, input)
            bundles += await self._run_error_path(input)

        return HandleResult(
            matched=match is not None,
            bundles=bundles,
            match=match,
            error=outcome.error,
        )

    async def _run_error_path(self, input: Input) -> tuple[BundleOrPending, ...]:
        assert self._dispatcher is not None
        outcome = await self._dispatcher.dispatch(self.router.error_actions, input)
        if outcome.error is not None:
            self._emit(
                ERROR_PATH_FAILURE,
                Severity.ERROR,
                f"Error response failed: {outcome.error.action!r}",
                input,
                error=outcome.error,
            )
        return outcome.bundles

    async def _deliver(self, bundle: OutputBundle) -> None:
        interface = self._resolve_interface(bundle.source)
        try:
            await invoke(interface.deliver, bundle)
        except DeliveryError:
            raise
        except Exception as exc:
            raise DeliveryError(interface.name, str(exc)) from exc

    def _resolve_interface(self, source: str | None) -> Interface:
        if source is None and len(self._interfaces) == 1:
            return next(iter(self._interfaces.values()))
        interface = self._interfaces.get(source) if source is not None else None
        if interface is None:
            raise DeliveryError(str(source), "no interface registered under that name")
        return interface

    # -- Reporting --

    def _report_dispatch_error(self, error: DispatchError, input: Input) -> None:
        self._emit(DISPATCH_ERROR, Severity.ERROR, str(error), input, error=error)

    def _report_deferred(self, result: DeferredResult) -> None:
        if result.error is not None:
            self._sink.emit(
                RouterEvent(
                    DEFERRED_FAILURE,
                    Severity.ERROR,
                    str(result.error),
                    source=result.source,
                    error=result.error,
                    detail={"action": result.action.label},
                )
            )
        elif self.config.report_deferred_success:
            self._sink.emit(
                RouterEvent(
                    DEFERRED_COMPLETE,
                    Severity.DEBUG,
                    f"Deferred response {result.action.label} completed",
                    source=result.source,
                    detail={"action": result.action.label, "delivered": result.bundle is not None},
                )
            )

    def _emit(
        self,
        kind: str,
        severity: Severity,
        message: str,
        input: Input,
        *,
        error: BaseException | None = None,
    ) -> None:
        self._sink.emit(RouterEvent(kind, severity, message, source=input.source, error=error))

    # -- Internal --

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the core after it has started handling input. "
                "Register interfaces, plugins, hooks, and loggers first."
            )
            raise RuntimeError(msg)

