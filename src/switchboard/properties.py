"""Property registry — named input and output fields contributed by plugins.

Interfaces expose platform-specific fields under generic names so routes
and response bodies never touch raw platform payloads:

- **Input properties** are computed from the inbound event by an extractor.
  Each extractor runs at most once per request; the value is memoized on
  the ``Input`` for the rest of matching and dispatch.
- **Output properties** are written by response bodies into an ``Output``
  builder, then finalized into one immutable ``OutputBundle`` that the
  interface delivers as a single outbound message.

Free-threading safety:
    - PropertyDef and OutputBundle are immutable
    - The registry dicts are only mutated during setup
    - Input guards its memo with a Lock (deferred bodies may read it from
      a worker thread while the request task is still running)
"""

import threading
from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, TypeAlias

from switchboard.errors import (
    DuplicatePropertyError,
    PropertyError,
    UnknownOutputError,
    UnknownPropertyError,
)

INPUT = "input"
OUTPUT = "output"

Extractor: TypeAlias = Callable[[Any], Any]
Converter: TypeAlias = Callable[[Any], Any]


def _identity(value: Any) -> Any:
    return value


@dataclass(frozen=True, slots=True)
class PropertyDef:
    """A registered property.

    ``func`` is the extractor for input properties and the converter
    applied on write for output properties.
    """

    name: str
    direction: str
    owner: str
    func: Callable[[Any], Any]
    description: str = ""


_MISSING = object()


class Input(Mapping[str, Any]):
    """Read-only, lazily computed view of one inbound event.

    Usage in conditions and response bodies::

        input["chat_text"]
        input.get("chat_command", "")
        input.source  # name of the interface that received the event
    """

    __slots__ = ("_cache", "_defs", "_lock", "event", "source")

    def __init__(self, defs: Mapping[str, PropertyDef], event: Any, source: str | None) -> None:
        self._defs = defs
        self._cache: dict[str, Any] = {}
        self._lock = threading.Lock()
        self.event = event
        self.source = source

    def __getitem__(self, name: str) -> Any:
        value = self._cache.get(name, _MISSING)
        if value is not _MISSING:
            return value
        prop = self._defs.get(name)
        if prop is None:
            raise UnknownPropertyError(name)
        with self._lock:
            # Another thread may have filled it while we waited
            value = self._cache.get(name, _MISSING)
            if value is _MISSING:
                try:
                    value = prop.func(self.event)
                except Exception as exc:
                    raise PropertyError(name) from exc
                self._cache[name] = value
        return value

    def __iter__(self) -> Iterator[str]:
        return iter(self._defs)

    def __len__(self) -> int:
        return len(self._defs)

    def __contains__(self, name: object) -> bool:
        return name in self._defs

    def snapshot(self) -> dict[str, Any]:
        """Compute every property and return a plain dict copy."""
        return {name: self[name] for name in self._defs}

    def __repr__(self) -> str:
        return f"Input(source={self.source!r}, computed={sorted(self._cache)})"


class OutputBundle(Mapping[str, Any]):
    """Finalized output properties for one deliverable message. Immutable.

    ``input`` is the request that produced the bundle, so interfaces can
    address the reply (chat id, user id) without an extra output property.
    """

    __slots__ = ("_values", "input", "source")

    def __init__(
        self,
        values: Mapping[str, Any],
        source: str | None = None,
        input: Input | None = None,
    ) -> None:
        self._values = MappingProxyType(dict(values))
        self.source = source
        self.input = input

    def __getitem__(self, name: str) -> Any:
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, OutputBundle):
            return self.source == other.source and dict(self._values) == dict(other._values)
        if isinstance(other, Mapping):
            return dict(self._values) == dict(other)
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"OutputBundle({dict(self._values)!r}, source={self.source!r})"


class Output:
    """Write-side builder for one response action's bundle.

    Each write is validated against the registry and passed through the
    property's converter. Writing the same name twice keeps the last value::

        output["chat_text"] = "Hello"
        output.set("chat_file_path", "./report.pdf")
    """

    __slots__ = ("_defs", "_values", "input", "source")

    def __init__(
        self,
        defs: Mapping[str, PropertyDef],
        source: str | None,
        input: Input | None = None,
    ) -> None:
        self._defs = defs
        self._values: dict[str, Any] = {}
        self.source = source
        self.input = input

    def set(self, name: str, value: Any) -> None:
        prop = self._defs.get(name)
        if prop is None:
            raise UnknownOutputError(name)
        self._values[name] = prop.func(value)

    def update(self, values: Mapping[str, Any]) -> None:
        for name, value in values.items():
            self.set(name, value)

    def __setitem__(self, name: str, value: Any) -> None:
        self.set(name, value)

    def __getitem__(self, name: str) -> Any:
        return self._values[name]

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def __bool__(self) -> bool:
        return bool(self._values)

    def finalize(self) -> OutputBundle:
        return OutputBundle(self._values, source=self.source, input=self.input)


class PropertyRegistry:
    """Input and output property definitions, keyed by name per direction.

    Mutable during setup, read-only once the Core is frozen.
    """

    __slots__ = ("_frozen", "_inputs", "_outputs")

    def __init__(self) -> None:
        self._inputs: dict[str, PropertyDef] = {}
        self._outputs: dict[str, PropertyDef] = {}
        self._frozen = False

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register_input(
        self,
        name: str,
        extractor: Extractor,
        *,
        owner: str,
        description: str = "",
    ) -> PropertyDef:
        """Register an input property computed by ``extractor(event)``.

        Raises ``DuplicatePropertyError`` if another owner already
        registered ``name`` as an input.
        """
        return self._register(self._inputs, INPUT, name, extractor, owner, description)

    def register_output(
        self,
        name: str,
        converter: Converter | None = None,
        *,
        owner: str,
        description: str = "",
    ) -> PropertyDef:
        """Register an output property; ``converter`` is applied on every write."""
        return self._register(
            self._outputs, OUTPUT, name, converter or _identity, owner, description
        )

    def _register(
        self,
        table: dict[str, PropertyDef],
        direction: str,
        name: str,
        func: Callable[[Any], Any],
        owner: str,
        description: str,
    ) -> PropertyDef:
        if self._frozen:
            msg = (
                f"Cannot register {direction} property {name!r} "
                "after the core has started handling input."
            )
            raise RuntimeError(msg)
        if not name.isidentifier():
            msg = f"Property names must be identifiers, got {name!r}"
            raise ValueError(msg)
        existing = table.get(name)
        if existing is not None and existing.owner != owner:
            raise DuplicatePropertyError(name, direction, owner, existing.owner)
        prop = PropertyDef(name, direction, owner, func, description)
        table[name] = prop
        return prop

    def snapshot_inputs(self, event: Any, *, source: str | None = None) -> Input:
        """Build the per-request ``Input`` for ``event``."""
        return Input(self._inputs, event, source)

    def new_output(self, source: str | None = None, *, input: Input | None = None) -> Output:
        return Output(self._outputs, source, input)

    def validate_outputs(self, names: Iterable[str]) -> None:
        """Raise ``UnknownOutputError`` for the first unregistered name."""
        for name in names:
            if name not in self._outputs:
                raise UnknownOutputError(name)

    def inputs(self) -> list[PropertyDef]:
        return list(self._inputs.values())

    def outputs(self) -> list[PropertyDef]:
        return list(self._outputs.values())

    def owned_by(self, owner: str) -> tuple[list[PropertyDef], list[PropertyDef]]:
        """Return ``(inputs, outputs)`` registered by ``owner``."""
        return (
            [p for p in self._inputs.values() if p.owner == owner],
            [p for p in self._outputs.values() if p.owner == owner],
        )
