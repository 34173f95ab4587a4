"""Interface — the boundary between a messaging platform and the core.

An interface adapts one platform to the router's normalized contract. It
must:

1. turn an inbound platform event into the normalized form its input
   extractors read (``normalize``, identity by default);
2. register at least one condition pack (in ``setup``);
3. register at least one output property (in ``setup``);
4. deliver one finalized ``OutputBundle`` (``deliver``), raising
   ``DeliveryError`` on transport failure.

Receiving events (webhook endpoint, polling loop) is the interface's own
business; it only has to call ``receive`` once per event::

    class ConsoleInterface(Interface):
        name = "console"

        def setup(self, core):
            self.register_input("console_text", lambda event: event["body"])
            self.register_output("console_text")
            pack = ConditionPack("console")
            pack.add("text", lambda input, text: input["console_text"] == text)
            self.register_pack(pack)

        def deliver(self, bundle):
            print(bundle["console_text"])
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, ClassVar

from switchboard.conditions import ConditionPack
from switchboard.properties import Converter, Extractor, OutputBundle, PropertyDef

if TYPE_CHECKING:
    from switchboard.core import Core, HandleResult


class Interface(ABC):
    """Base class for platform interfaces.

    Constructing an interface registers it with ``core``; ``setup`` runs
    immediately, so property and pack conflicts surface at construction.
    """

    name: ClassVar[str] = ""

    def __init__(self, core: Core, *, name: str | None = None) -> None:
        if name is not None:
            self.name = name  # type: ignore[misc]
        if not self.name:
            msg = f"{type(self).__name__} must define a non-empty 'name'"
            raise TypeError(msg)
        self.core = core
        core.register_interface(self)

    # -- Registration helpers (owner = this interface) --

    def register_input(self, name: str, extractor: Extractor, *, description: str = "") -> PropertyDef:
        return self.core.properties.register_input(
            name, extractor, owner=self.name, description=description
        )

    def register_output(
        self,
        name: str,
        converter: Converter | None = None,
        *,
        description: str = "",
    ) -> PropertyDef:
        return self.core.properties.register_output(
            name, converter, owner=self.name, description=description
        )

    def register_pack(self, pack: ConditionPack) -> None:
        self.core.conditions.register_pack(pack, owner=self.name)

    # -- Contract --

    @abstractmethod
    def setup(self, core: Core) -> None:
        """Register this interface's properties and condition packs."""

    @abstractmethod
    def deliver(self, bundle: OutputBundle) -> Any:
        """Send one bundle to the platform. May be sync or async."""

    def normalize(self, event: Any) -> Any:
        """Convert a raw platform event for the input extractors."""
        return event

    async def receive(self, event: Any) -> HandleResult:
        """Route one inbound event through the core."""
        input = self.core.properties.snapshot_inputs(self.normalize(event), source=self.name)
        return await self.core.handle(input)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"
