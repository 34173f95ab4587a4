"""Core resolution for the CLI — ``"module:attribute"`` to a wired Core.

Shared by ``switchboard routes`` and ``switchboard check``. The attribute
may name a Core, any Interface bound to one (a webhook bot's ASGI ``app``
is an interface), or a zero-argument factory returning either.
"""

import importlib
from typing import Any

from switchboard.core import Core
from switchboard.errors import ConfigurationError
from switchboard.interfaces.base import Interface

# Tried in order when the import string has no ":attribute" part
DEFAULT_ATTRIBUTES = ("core", "app")


def _core_of(obj: Any) -> Core | None:
    if isinstance(obj, Core):
        return obj
    if isinstance(obj, Interface):
        return obj.core
    return None


def _lookup(module: Any, module_path: str, attr_name: str) -> Any:
    if attr_name:
        return getattr(module, attr_name)
    for name in DEFAULT_ATTRIBUTES:
        if hasattr(module, name):
            return getattr(module, name)
    tried = " or ".join(repr(name) for name in DEFAULT_ATTRIBUTES)
    msg = f"Module {module_path!r} has no attribute {tried}"
    raise AttributeError(msg)


def resolve_core(import_string: str) -> Core:
    """Resolve ``import_string`` to the Core a bot module wires up.

    ``"mybot"`` looks for ``mybot.core``, then ``mybot.app``.

    Raises:
        ModuleNotFoundError: If the module cannot be imported.
        AttributeError: If the attribute does not exist on the module.
        TypeError: If the object is neither a Core, an Interface, nor a
            factory returning one.
        ConfigurationError: If the Core has no interfaces, so nothing
            could ever reach its routes.

    """
    module_path, _, attr_name = import_string.partition(":")
    module = importlib.import_module(module_path)
    obj = _lookup(module, module_path, attr_name)

    core = _core_of(obj)
    if core is None and callable(obj):
        try:
            obj = obj()
        except Exception as exc:
            msg = f"Factory function {import_string!r} raised an error: {exc}"
            raise TypeError(msg) from exc
        core = _core_of(obj)

    if core is None:
        msg = f"{import_string!r} resolved to {type(obj).__name__}, not a switchboard.Core instance"
        raise TypeError(msg)

    if not core.interfaces:
        msg = f"Core from {import_string!r} has no interfaces; construct one with it first"
        raise ConfigurationError(msg)

    return core
