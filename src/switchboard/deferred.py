"""Deferred work — detached execution of background response actions.

A deferred action is submitted to the ``DeferredExecutor`` as a work item
and never awaited by the request that declared it. The executor owns a
long-lived anyio task group, opened by ``running()`` and drained when it
exits, so every submitted item runs to completion or failure.

Completion is reported as a ``DeferredResult`` message to the ``report``
callback given at construction (the Core forwards it to the log sink).
The request side holds a ``PendingBundle`` per deferred action and may
await it, but never has to.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TypeAlias

import anyio
from anyio.abc import TaskGroup

from switchboard.errors import DeferredActionError
from switchboard.properties import OutputBundle
from switchboard.routing.route import ResponseAction

logger = logging.getLogger("switchboard.deferred")

DeferredWork: TypeAlias = Callable[[], Awaitable[OutputBundle | None]]


class PendingBundle:
    """Handle for the future result of one deferred action.

    ``bundle`` is the delivered bundle (``None`` if the action produced no
    output), ``error`` the ``DeferredActionError`` if it failed.
    """

    __slots__ = ("_done", "action", "bundle", "error")

    def __init__(self, action: ResponseAction) -> None:
        self.action = action
        self.bundle: OutputBundle | None = None
        self.error: DeferredActionError | None = None
        self._done = anyio.Event()

    @property
    def done(self) -> bool:
        return self._done.is_set()

    async def wait(self) -> OutputBundle | None:
        """Wait for the action to finish and return its bundle (or ``None``)."""
        await self._done.wait()
        return self.bundle

    def _resolve(self, bundle: OutputBundle | None, error: DeferredActionError | None) -> None:
        self.bundle = bundle
        self.error = error
        self._done.set()

    def __repr__(self) -> str:
        state = "failed" if self.error else ("done" if self.done else "pending")
        return f"PendingBundle({self.action.label}, {state})"


@dataclass(frozen=True, slots=True)
class DeferredResult:
    """Completion message for one deferred action."""

    action: ResponseAction
    source: str | None
    bundle: OutputBundle | None = None
    error: DeferredActionError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class DeferredExecutor:
    """Runs deferred work items on an anyio task group.

    Each item runs shielded from cancellation, so a host block that exits
    with an exception still waits for in-flight work instead of cutting
    it short. Submissions are accepted until the group has drained; after
    that, ``submit`` resolves the handle with a ``DeferredActionError``.

    Usage::

        executor = DeferredExecutor(report=print, max_concurrent=4)
        async with executor.running():
            pending = executor.submit(action, "chat", work)
            ...
        # leaving the block waits for every submitted item
    """

    __slots__ = ("_idle", "_in_flight", "_limiter", "_report", "_task_group", "thread_limiter")

    def __init__(
        self,
        *,
        report: Callable[[DeferredResult], None],
        max_concurrent: int | None = None,
    ) -> None:
        self._report = report
        self._limiter = (
            anyio.CapacityLimiter(max_concurrent) if max_concurrent is not None else None
        )
        # Worker threads for sync bodies; None uses anyio's default limiter (40 threads)
        self.thread_limiter = (
            anyio.CapacityLimiter(max_concurrent) if max_concurrent is not None else None
        )
        self._task_group: TaskGroup | None = None
        self._in_flight = 0
        self._idle: anyio.Event | None = None

    @property
    def running_now(self) -> bool:
        return self._task_group is not None

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @asynccontextmanager
    async def running(self) -> AsyncIterator[DeferredExecutor]:
        """Open the task group. Exiting waits for all in-flight work."""
        if self._task_group is not None:
            msg = "DeferredExecutor is already running."
            raise RuntimeError(msg)
        try:
            async with anyio.create_task_group() as tg:
                self._task_group = tg
                yield self
        except BaseExceptionGroup as group:
            # Work items never raise, so the group only holds the host's error
            if len(group.exceptions) == 1:
                raise group.exceptions[0] from None
            raise
        finally:
            self._task_group = None

    def submit(
        self,
        action: ResponseAction,
        source: str | None,
        work: DeferredWork,
    ) -> PendingBundle:
        """Schedule ``work`` and return its pending handle immediately.

        Never raises: if the executor has already shut down, the handle is
        resolved with a ``DeferredActionError`` and the failure is reported.
        """
        pending = PendingBundle(action)
        if self._task_group is None:
            error = DeferredActionError(
                action, f"Deferred response action {action!r} submitted after shutdown"
            )
            self._finish(action, source, pending, None, error)
            return pending
        self._in_flight += 1
        self._task_group.start_soon(self._run, action, source, work, pending)
        return pending

    async def _run(
        self,
        action: ResponseAction,
        source: str | None,
        work: DeferredWork,
        pending: PendingBundle,
    ) -> None:
        bundle: OutputBundle | None = None
        error: DeferredActionError | None = None
        try:
            with anyio.CancelScope(shield=True):
                try:
                    if self._limiter is not None:
                        async with self._limiter:
                            bundle = await work()
                    else:
                        bundle = await work()
                except Exception as exc:
                    error = DeferredActionError(action)
                    error.__cause__ = exc
        finally:
            self._finish(action, source, pending, bundle, error)
            self._in_flight -= 1
            if self._in_flight == 0 and self._idle is not None:
                self._idle.set()
                self._idle = None

    def _finish(
        self,
        action: ResponseAction,
        source: str | None,
        pending: PendingBundle,
        bundle: OutputBundle | None,
        error: DeferredActionError | None,
    ) -> None:
        pending._resolve(bundle, error)
        try:
            self._report(DeferredResult(action, source, bundle, error))
        except Exception:
            logger.exception("Deferred result reporter failed for %s", action.label)

    async def join(self) -> None:
        """Wait until no deferred work is in flight."""
        if self._in_flight == 0:
            return
        if self._idle is None:
            self._idle = anyio.Event()
        await self._idle.wait()
