"""Dispatcher — runs response actions and hands bundles to delivery.

Actions run in declared order:

- **Immediate** actions run on the calling task. Each builds an
  ``OutputBundle`` and delivers it before the next action starts. The
  first failure stops the sequence; already delivered bundles stay
  delivered.
- **Deferred** actions are submitted to the ``DeferredExecutor`` at their
  declared position and never awaited here. Sync bodies run in a worker
  thread. Their failures are the executor's to report.

An action whose body leaves the output empty produces no bundle and no
delivery.
"""

import functools
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import TypeAlias

from switchboard._internal.invoke import invoke, invoke_in_thread
from switchboard._internal.types import Hook
from switchboard.deferred import DeferredExecutor, PendingBundle
from switchboard.errors import DispatchError
from switchboard.properties import Input, OutputBundle, PropertyRegistry
from switchboard.routing.route import ResponseAction

Deliver: TypeAlias = Callable[[OutputBundle], Awaitable[None]]
BundleOrPending: TypeAlias = OutputBundle | PendingBundle


@dataclass(frozen=True, slots=True)
class DispatchOutcome:
    """Bundles produced by one dispatch, in declared order.

    ``error`` is set when an immediate action failed; the actions after
    it did not run.
    """

    bundles: tuple[BundleOrPending, ...] = ()
    error: DispatchError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class Dispatcher:
    """Executes response action lists for one Core.

    Stateless between calls; safe to share across concurrent requests.
    """

    __slots__ = ("_deliver", "_executor", "_output_hooks", "_properties")

    def __init__(
        self,
        properties: PropertyRegistry,
        executor: DeferredExecutor,
        deliver: Deliver,
        *,
        output_hooks: Sequence[Hook] = (),
    ) -> None:
        self._properties = properties
        self._executor = executor
        self._deliver = deliver
        self._output_hooks = tuple(output_hooks)

    async def dispatch(
        self,
        actions: Sequence[ResponseAction],
        input: Input,
    ) -> DispatchOutcome:
        """Run ``actions`` for ``input`` and return what was produced."""
        bundles: list[BundleOrPending] = []
        for action in actions:
            if action.deferred:
                work = functools.partial(self.produce, action, input)
                bundles.append(self._executor.submit(action, input.source, work))
                continue

            try:
                bundle = await self.produce(action, input)
            except Exception as exc:
                error = DispatchError(action)
                error.__cause__ = exc
                return DispatchOutcome(tuple(bundles), error)

            if bundle is not None:
                bundles.append(bundle)

        return DispatchOutcome(tuple(bundles))

    async def produce(self, action: ResponseAction, input: Input) -> OutputBundle | None:
        """Build one action's bundle and deliver it. Returns ``None`` if empty."""
        output = self._properties.new_output(input.source, input=input)
        output.update(dict(action.outputs))

        if action.body is not None:
            if action.deferred:
                await invoke_in_thread(
                    action.body, input, output, limiter=self._executor.thread_limiter
                )
            else:
                await invoke(action.body, input, output)

        for hook in self._output_hooks:
            await invoke(hook, input, output)

        if not output:
            return None

        bundle = output.finalize()
        await self._deliver(bundle)
        return bundle
