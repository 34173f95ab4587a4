"""Switchboard exception hierarchy.

Shared across the registries, Router, Dispatcher, and interfaces so every
module raises and catches the same types.

Configuration-time errors (``ConfigurationError`` and its subclasses) are
raised while the Core is being built or frozen and must stop the process.
Runtime errors (``DispatchError``, ``DeliveryError``, ``DeferredActionError``)
are raised inside a single request and recovered by the Core.
"""

from typing import Any


class SwitchboardError(Exception):
    """Base for all switchboard-specific errors."""


class ConfigurationError(SwitchboardError):
    """Raised when routes, properties, or plugins are configured incorrectly.

    Typically surfaces from ``Core.freeze()`` at startup.
    """


class DuplicatePropertyError(ConfigurationError):
    """A property name is already registered in that direction by another owner."""

    def __init__(self, name: str, direction: str, owner: str, existing_owner: str) -> None:
        self.name = name
        self.direction = direction
        self.owner = owner
        self.existing_owner = existing_owner
        super().__init__(
            f"{direction.capitalize()} property {name!r} registered by {owner!r} "
            f"is already registered by {existing_owner!r}"
        )


class UnknownConditionError(ConfigurationError):
    """A route uses a ``(pack, kind)`` pair no plugin registered."""

    def __init__(self, pack: str, kind: str, detail: str = "") -> None:
        self.pack = pack
        self.kind = kind
        msg = f"Unknown condition {pack}.{kind}"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)


class UnknownOutputError(SwitchboardError):
    """An output property name was written that no owner registered."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown output property: {name!r}")


class UnknownPropertyError(SwitchboardError, KeyError):  # noqa: N818
    """An input property name was read that no owner registered."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(name)

    def __str__(self) -> str:
        return f"Unknown input property: {self.name!r}"


class PropertyError(SwitchboardError):
    """An input extractor raised while computing its value."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Extractor for input property {name!r} failed")


class DispatchError(SwitchboardError):
    """An immediate response action failed.

    Wraps the original exception (available as ``__cause__``). Recovered
    by the Core, which runs the Router's error actions.
    """

    def __init__(self, action: Any, detail: str = "") -> None:
        self.action = action
        super().__init__(detail or f"Response action {action!r} failed")


class DeliveryError(SwitchboardError):
    """An interface failed to deliver a bundle to its platform.

    Raised by ``Interface.deliver``. Inside an immediate action it is
    handled like any other ``DispatchError`` cause; inside a deferred
    action it is logged only.
    """

    def __init__(self, interface: str, detail: str = "") -> None:
        self.interface = interface
        self.detail = detail
        msg = f"Delivery through {interface!r} failed"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)


class DeferredActionError(SwitchboardError):
    """A deferred response action failed. Never propagates."""

    def __init__(self, action: Any, detail: str = "") -> None:
        self.action = action
        super().__init__(detail or f"Deferred response action {action!r} failed")
