"""Switchboard — a platform-agnostic message router for conversational bots.

Matches each inbound message against a tree of declarative conditions and
answers with one or more outbound messages, some delivered right away and
some computed in the background.

Basic usage::

    from switchboard import Core

    core = Core()
    chat = ChatInterface(core)  # any Interface subclass

    with core.router.configure() as routes:
        with routes.on("chat", command="help") as help_:
            help_.on("chat", text="hours").respond(chat_text="10:00-19:00")
            help_.on("flow", "any").respond(chat_text="Try /help hours")

    core.router.default.respond(chat_text="I don't know that one yet.")

    async with core.running():
        await chat.receive(event)
"""

__version__ = "0.1.0"
__all__ = [
    "Condition",
    "ConditionPack",
    "ConfigurationError",
    "Core",
    "CoreConfig",
    "DeferredActionError",
    "DeliveryError",
    "DispatchError",
    "DuplicatePropertyError",
    "HandleResult",
    "Input",
    "Interface",
    "Output",
    "OutputBundle",
    "PendingBundle",
    "RouterEvent",
    "Severity",
    "SwitchboardError",
    "UnknownConditionError",
    "UnknownOutputError",
    "WebhookInterface",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import switchboard`` fast while providing a clean top-level API.
    """
    if name in ("Core", "HandleResult"):
        from switchboard import core as _core

        return getattr(_core, name)

    if name == "CoreConfig":
        from switchboard.config import CoreConfig

        return CoreConfig

    if name in ("Condition", "ConditionPack"):
        from switchboard import conditions as _conditions

        return getattr(_conditions, name)

    if name in ("Input", "Output", "OutputBundle"):
        from switchboard import properties as _properties

        return getattr(_properties, name)

    if name == "PendingBundle":
        from switchboard.deferred import PendingBundle

        return PendingBundle

    if name in ("Interface", "WebhookInterface"):
        from switchboard import interfaces as _interfaces

        return getattr(_interfaces, name)

    if name in ("RouterEvent", "Severity"):
        from switchboard import logs as _logs

        return getattr(_logs, name)

    if name in (
        "ConfigurationError",
        "DeferredActionError",
        "DeliveryError",
        "DispatchError",
        "DuplicatePropertyError",
        "SwitchboardError",
        "UnknownConditionError",
        "UnknownOutputError",
    ):
        from switchboard import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
