"""Structured router events and the attached-logger sink.

The Core reports what happens to each request as a ``RouterEvent``:
route misses, dispatch failures, deferred-action completions. Events are
fanned out to every attached ``logging.Logger``; the library never
configures handlers or formatters itself.

Free-threading safety:
    - RouterEvent is a frozen dataclass (immutable, safe to share)
    - LogSink's logger tuple is fixed once the Core is frozen
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class Severity(IntEnum):
    """Severity of a router event. Values are ``logging`` levels."""

    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR


# Event kinds
ROUTE_MISS = "route-miss"
DISPATCH_ERROR = "dispatch-error"
ERROR_PATH_FAILURE = "error-path-failure"
DEFERRED_FAILURE = "deferred-failure"
DEFERRED_COMPLETE = "deferred-complete"


@dataclass(frozen=True, slots=True)
class RouterEvent:
    """A single structured event emitted while handling a request."""

    kind: str
    severity: Severity
    message: str
    source: str | None = None
    error: BaseException | None = None
    detail: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)
    event_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])


class LogSink:
    """Fan-out of router events to attached loggers.

    Loggers are appended during setup and read-only afterwards::

        sink = LogSink([logging.getLogger("bot")])
        sink.emit(RouterEvent(ROUTE_MISS, Severity.INFO, "No route matched"))
    """

    __slots__ = ("_frozen", "_loggers")

    def __init__(self, loggers: list[logging.Logger] | tuple[logging.Logger, ...] = ()) -> None:
        self._loggers: list[logging.Logger] = list(loggers)
        self._frozen = False

    def add(self, logger: logging.Logger) -> None:
        if self._frozen:
            msg = "Cannot attach loggers after the core has started handling input."
            raise RuntimeError(msg)
        self._loggers.append(logger)

    def freeze(self) -> None:
        self._frozen = True

    @property
    def loggers(self) -> tuple[logging.Logger, ...]:
        return tuple(self._loggers)

    def emit(self, event: RouterEvent) -> None:
        """Send ``event`` to every attached logger at its severity."""
        exc_info = None
        if event.error is not None:
            exc_info = (type(event.error), event.error, event.error.__traceback__)
        message = f"[{event.kind}] {event.message}"
        for logger in self._loggers:
            logger.log(
                int(event.severity),
                message,
                exc_info=exc_info,
                extra={"router_event": event},
            )

    def __len__(self) -> int:
        return len(self._loggers)
