"""In-memory interface for tests.

``RecordingInterface`` reads ``command`` and ``text`` from plain dict
events, exposes a pack named after itself, and records every delivered
bundle instead of sending it anywhere::

    core = Core()
    chat = RecordingInterface(core)
    core.router.on("recording", command="help").respond(text="Help!")

    async with core.running():
        await chat.receive({"command": "help", "text": ""})
    assert chat.texts == ["Help!"]
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from switchboard.conditions import ConditionPack
from switchboard.errors import DeliveryError
from switchboard.interfaces.base import Interface
from switchboard.properties import OutputBundle

if TYPE_CHECKING:
    from switchboard.core import Core


def _field(name: str) -> Callable[[Any], Any]:
    def extract(event: Any) -> Any:
        if isinstance(event, Mapping):
            return event.get(name, "")
        return getattr(event, name, "")

    return extract


class RecordingInterface(Interface):
    """Interface that records deliveries in ``deliveries``.

    Args:
        core: The core to register with.
        name: Interface and pack name.
        fail_when: Optional predicate; deliveries it accepts raise
            ``DeliveryError`` instead of being recorded.
    """

    name = "recording"

    def __init__(
        self,
        core: Core,
        *,
        name: str | None = None,
        fail_when: Callable[[OutputBundle], bool] | None = None,
    ) -> None:
        self.deliveries: list[OutputBundle] = []
        self.fail_when = fail_when
        self._lock = threading.Lock()
        super().__init__(core, name=name)

    def setup(self, core: Core) -> None:
        self.register_input("command", _field("command"), description="Command without slash")
        self.register_input("text", _field("text"), description="Text after the command")
        self.register_output("text", str, description="Message text")
        self.register_output("attachment", description="Attachment path")

        pack = ConditionPack(self.name)
        pack.add("command", lambda input, command: input["command"] == command)
        pack.add("text", lambda input, text: input["text"] == text)
        self.register_pack(pack)

    def deliver(self, bundle: OutputBundle) -> None:
        if self.fail_when is not None and self.fail_when(bundle):
            raise DeliveryError(self.name, "delivery rejected by fail_when")
        with self._lock:
            self.deliveries.append(bundle)

    @property
    def texts(self) -> list[Any]:
        """The ``text`` (or batteries ``body``) of each delivery, in order."""
        with self._lock:
            return [b.get("text", b.get("body")) for b in self.deliveries]
