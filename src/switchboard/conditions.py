"""Conditions — named, parameterized predicates over an ``Input``.

A ``Condition`` is the frozen reference stored on a route node: a pack
(namespace), a kind, and an optional argument. The predicate itself lives
in a ``ConditionPack`` registered by a plugin or interface::

    pack = ConditionPack("chat")

    @pack.condition("command")
    def command(input, argument):
        return input["chat_command"] == argument

    core.conditions.register_pack(pack, owner="chat")

Predicates must not mutate the ``Input`` they receive and must be
deterministic for a given input and argument. ``Input`` exposes no
mutation API; the rest is the predicate author's obligation.

Unknown ``(pack, kind)`` pairs are rejected by ``ConditionRegistry.validate``
when the router compiles, never at match time.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeAlias

from switchboard.errors import ConfigurationError, UnknownConditionError
from switchboard.properties import Input

Predicate: TypeAlias = Callable[[Input, Any], bool]


class _NoArgument:
    __slots__ = ()

    def __repr__(self) -> str:
        return "NO_ARGUMENT"


# None is a legitimate argument
NO_ARGUMENT: Any = _NoArgument()


@dataclass(frozen=True, slots=True)
class Condition:
    """Reference to a registered predicate, with its argument."""

    pack: str
    kind: str
    argument: Any = NO_ARGUMENT

    @property
    def has_argument(self) -> bool:
        return self.argument is not NO_ARGUMENT

    def __str__(self) -> str:
        if self.has_argument:
            return f"{self.pack}.{self.kind}={self.argument!r}"
        return f"{self.pack}.{self.kind}"


@dataclass(frozen=True, slots=True)
class ConditionDef:
    """A predicate definition inside a pack."""

    kind: str
    predicate: Predicate
    takes_argument: bool = True
    catch_all: bool = False


class ConditionPack:
    """A namespace of related condition kinds."""

    __slots__ = ("_conditions", "_frozen", "name")

    def __init__(self, name: str) -> None:
        self.name = name
        self._conditions: dict[str, ConditionDef] = {}
        self._frozen = False

    def add(
        self,
        kind: str,
        predicate: Predicate,
        *,
        takes_argument: bool = True,
        catch_all: bool = False,
    ) -> ConditionDef:
        if self._frozen:
            msg = f"Cannot add {self.name}.{kind} after the core has started handling input."
            raise RuntimeError(msg)
        if kind in self._conditions:
            msg = f"Condition {self.name}.{kind} is already defined"
            raise ConfigurationError(msg)
        if catch_all and takes_argument:
            msg = f"Catch-all condition {self.name}.{kind} cannot take an argument"
            raise ConfigurationError(msg)
        definition = ConditionDef(kind, predicate, takes_argument, catch_all)
        self._conditions[kind] = definition
        return definition

    def condition(
        self,
        kind: str,
        *,
        takes_argument: bool = True,
        catch_all: bool = False,
    ) -> Callable[[Predicate], Predicate]:
        """Register a predicate via decorator."""

        def decorator(func: Predicate) -> Predicate:
            self.add(kind, func, takes_argument=takes_argument, catch_all=catch_all)
            return func

        return decorator

    def get(self, kind: str) -> ConditionDef | None:
        return self._conditions.get(kind)

    @property
    def kinds(self) -> list[str]:
        return list(self._conditions)

    def __contains__(self, kind: str) -> bool:
        return kind in self._conditions

    def __len__(self) -> int:
        return len(self._conditions)


class ConditionRegistry:
    """All condition packs known to a Core, keyed by pack name."""

    __slots__ = ("_frozen", "_owners", "_packs")

    def __init__(self) -> None:
        self._packs: dict[str, ConditionPack] = {}
        self._owners: dict[str, str] = {}
        self._frozen = False

    def freeze(self) -> None:
        """Reject further registration; registered packs are frozen too."""
        self._frozen = True
        for pack in self._packs.values():
            pack._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register_pack(self, pack: ConditionPack, *, owner: str) -> None:
        if self._frozen:
            msg = "Cannot register condition packs after the core has started handling input."
            raise RuntimeError(msg)
        existing = self._owners.get(pack.name)
        if existing is not None and existing != owner:
            msg = (
                f"Condition pack {pack.name!r} registered by {owner!r} "
                f"is already registered by {existing!r}"
            )
            raise ConfigurationError(msg)
        self._packs[pack.name] = pack
        self._owners[pack.name] = owner

    def get_pack(self, name: str) -> ConditionPack | None:
        return self._packs.get(name)

    def packs_owned_by(self, owner: str) -> list[ConditionPack]:
        return [self._packs[name] for name, o in self._owners.items() if o == owner]

    def resolve(self, condition: Condition) -> ConditionDef:
        """Return the definition for ``condition``.

        Raises ``UnknownConditionError`` if the pack or kind is unknown.
        """
        pack = self._packs.get(condition.pack)
        if pack is None:
            raise UnknownConditionError(condition.pack, condition.kind, "no such pack")
        definition = pack.get(condition.kind)
        if definition is None:
            raise UnknownConditionError(condition.pack, condition.kind)
        return definition

    def validate(self, condition: Condition) -> ConditionDef:
        """Check that ``condition`` is registered and called correctly."""
        definition = self.resolve(condition)
        if definition.takes_argument and not condition.has_argument:
            msg = f"Condition {condition} requires an argument"
            raise ConfigurationError(msg)
        if not definition.takes_argument and condition.has_argument:
            msg = f"Condition {condition.pack}.{condition.kind} takes no argument"
            raise ConfigurationError(msg)
        return definition

    def is_catch_all(self, condition: Condition) -> bool:
        return self.resolve(condition).catch_all

    def matches(self, condition: Condition, input: Input) -> bool:
        """Evaluate ``condition`` against ``input``."""
        definition = self.resolve(condition)
        if definition.takes_argument:
            return bool(definition.predicate(input, condition.argument))
        return bool(definition.predicate(input, None))
