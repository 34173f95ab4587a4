"""Batteries — general-purpose properties and conditions every interface gets.

Registered automatically (once) by ``Core.register_interface``:

- input property ``body``: the message text, read from the normalized
  event's ``"body"`` key (or ``.body`` attribute); ``""`` when absent
- output property ``body``: plain message text, stored as ``str``
- pack ``flow``: ``any`` — the catch-all, always true
- pack ``source``: ``equals`` — name of the interface that received the event
- pack ``body``: ``equals``, ``contains``, ``contains_one_of``,
  ``starts_with``, ``ends_with``, ``matches`` (``re.search``)

Usage::

    routes.on("flow", "any").respond(body="I don't know that one yet.")
    routes.on("body", starts_with="/start").respond(body="Welcome!")
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from switchboard.conditions import ConditionPack
from switchboard.properties import Input

if TYPE_CHECKING:
    from switchboard.core import Core

BATTERIES = "batteries"


def _event_body(event: Any) -> str:
    if isinstance(event, Mapping):
        value = event.get("body")
    else:
        value = getattr(event, "body", None)
    return "" if value is None else str(value)


def _body(input: Input) -> str:
    return input.get("body") or ""


def flow_pack() -> ConditionPack:
    pack = ConditionPack("flow")
    pack.add("any", lambda input, _: True, takes_argument=False, catch_all=True)
    return pack


def source_pack() -> ConditionPack:
    pack = ConditionPack("source")
    pack.add("equals", lambda input, name: input.source == name)
    return pack


def body_pack() -> ConditionPack:
    pack = ConditionPack("body")

    @pack.condition("equals")
    def equals(input: Input, text: str) -> bool:
        return _body(input) == text

    @pack.condition("contains")
    def contains(input: Input, text: str) -> bool:
        return text in _body(input)

    @pack.condition("contains_one_of")
    def contains_one_of(input: Input, texts: Iterable[str]) -> bool:
        body = _body(input)
        return any(text in body for text in texts)

    @pack.condition("starts_with")
    def starts_with(input: Input, text: str) -> bool:
        return _body(input).startswith(text)

    @pack.condition("ends_with")
    def ends_with(input: Input, text: str) -> bool:
        return _body(input).endswith(text)

    @pack.condition("matches")
    def matches(input: Input, pattern: str | re.Pattern[str]) -> bool:
        return re.search(pattern, _body(input)) is not None

    return pack


class Batteries:
    """Plugin registering the general-purpose properties and packs."""

    name = BATTERIES

    def setup(self, core: Core) -> None:
        core.properties.register_input(
            "body", _event_body, owner=self.name, description="Message text"
        )
        core.properties.register_output("body", str, owner=self.name, description="Message text")
        for pack in (flow_pack(), source_pack(), body_pack()):
            core.conditions.register_pack(pack, owner=self.name)
