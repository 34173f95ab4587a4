"""Tests for switchboard.routing.router — compiled condition-tree router."""

import logging

import pytest

from switchboard.batteries import flow_pack
from switchboard.conditions import Condition, ConditionPack, ConditionRegistry
from switchboard.errors import ConfigurationError, UnknownConditionError, UnknownOutputError
from switchboard.properties import Input, PropertyRegistry
from switchboard.routing.router import Router


def _registries() -> tuple[ConditionRegistry, PropertyRegistry]:
    properties = PropertyRegistry()
    properties.register_input("command", lambda e: e.get("command", ""), owner="chat")
    properties.register_input("text", lambda e: e.get("text", ""), owner="chat")
    properties.register_output("text", str, owner="chat")

    chat = ConditionPack("chat")
    chat.add("command", lambda input, command: input["command"] == command)
    chat.add("text", lambda input, text: input["text"] == text)

    conditions = ConditionRegistry()
    conditions.register_pack(chat, owner="chat")
    conditions.register_pack(flow_pack(), owner="batteries")
    return conditions, properties


def _compile(router: Router, *, catch_all_last: bool = True) -> PropertyRegistry:
    conditions, properties = _registries()
    router.compile(conditions, properties, catch_all_last=catch_all_last)
    return properties


def _input(properties: PropertyRegistry, **event: str) -> Input:
    return properties.snapshot_inputs(event, source="chat")


def _texts(router: Router, input: Input) -> list[str]:
    match = router.match(input)
    assert match is not None
    return [dict(a.outputs)["text"] for a in match.actions]


class TestMatching:
    def test_top_level_match(self) -> None:
        router = Router()
        router.on("chat", command="help").respond(text="Help!")
        properties = _compile(router)
        assert _texts(router, _input(properties, command="help")) == ["Help!"]

    def test_no_match(self) -> None:
        router = Router()
        router.on("chat", command="help").respond(text="Help!")
        properties = _compile(router)
        assert router.match(_input(properties, command="start")) is None

    def test_all_conditions_must_pass(self) -> None:
        router = Router()
        router.on("chat", command="help", text="x").respond(text="both")
        properties = _compile(router)
        assert router.match(_input(properties, command="help", text="y")) is None
        assert _texts(router, _input(properties, command="help", text="x")) == ["both"]

    def test_first_sibling_wins(self) -> None:
        router = Router()
        router.on("chat", command="help").respond(text="first")
        router.on("chat", command="help").respond(text="second")
        properties = _compile(router)
        assert _texts(router, _input(properties, command="help")) == ["first"]

    def test_descends_into_children(self) -> None:
        router = Router()
        with router.configure() as routes:
            with routes.on("chat", command="help") as help_:
                help_.respond(text="general help")
                help_.on("chat", text="working hours").respond(text="10-19")
        properties = _compile(router)

        match = router.match(_input(properties, command="help", text="working hours"))
        assert match is not None
        assert match.depth == 1
        assert [dict(a.outputs)["text"] for a in match.actions] == ["10-19"]

    def test_parent_selected_when_no_child_passes(self) -> None:
        router = Router()
        with router.on("chat", command="help") as help_:
            help_.respond(text="general help")
            help_.on("chat", text="working hours").respond(text="10-19")
        properties = _compile(router)
        assert _texts(router, _input(properties, command="help", text="other")) == [
            "general help"
        ]

    def test_no_backtracking(self) -> None:
        router = Router()
        with router.on("chat", command="help") as help_:
            help_.on("chat", text="never")
        router.on("chat", text="x").respond(text="sibling")
        properties = _compile(router)

        match = router.match(_input(properties, command="help", text="x"))
        assert match is not None
        assert match.node.label == "chat.command='help'"
        assert match.actions == ()

    def test_actionless_match_still_a_match(self) -> None:
        router = Router()
        router.on("chat", command="silent")
        router.default.respond(text="default")
        properties = _compile(router)

        match = router.match(_input(properties, command="silent"))
        assert match is not None
        assert match.actions == ()

    def test_subtree_order_matters(self) -> None:
        forward = Router()
        forward.on("chat", command="help").respond(text="help")
        forward.on("chat", text="x").respond(text="text")
        backward = Router()
        backward.on("chat", text="x").respond(text="text")
        backward.on("chat", command="help").respond(text="help")

        properties = _compile(forward)
        _compile(backward)
        input = _input(properties, command="help", text="x")
        assert _texts(forward, input) == ["help"]
        assert _texts(backward, input) == ["text"]

    def test_catch_all_after_specific_child(self) -> None:
        router = Router()
        with router.on("chat", command="help") as help_:
            help_.on("chat", text="working hours").respond(text="10-19")
            help_.on("flow", "any").respond(text="Try /help working hours")
        properties = _compile(router)
        assert _texts(router, _input(properties, command="help", text="x")) == [
            "Try /help working hours"
        ]

    def test_later_conditions_skipped_after_failure(self) -> None:
        calls: list[str] = []
        conditions, properties = _registries()
        spy = ConditionPack("spy")
        spy.add("record", lambda input, name: calls.append(name) or True)
        conditions.register_pack(spy, owner="spy")

        router = Router()
        with router.configure() as routes:
            routes.on_conditions(
                Condition("chat", "command", "nope"),
                Condition("spy", "record", "same"),
            )
            routes.on("chat", command="nope").on("spy", record="child")
            routes.on("spy", record="sibling")
        router.compile(conditions, properties)
        router.match(_input(properties))
        assert calls == ["sibling"]

    def test_predicate_errors_propagate(self) -> None:
        conditions, properties = _registries()
        broken = ConditionPack("broken")
        broken.add("boom", lambda input, _: 1 / 0)
        conditions.register_pack(broken, owner="broken")
        router = Router()
        router.on("broken", boom=None)
        router.compile(conditions, properties)
        with pytest.raises(ZeroDivisionError):
            router.match(_input(properties))

    def test_match_before_compile(self) -> None:
        _, properties = _registries()
        with pytest.raises(RuntimeError, match="compiled"):
            Router().match(_input(properties))


class TestCatchAllPolicy:
    def _router(self) -> Router:
        router = Router()
        router.on("flow", "any").respond(text="fallback")
        router.on("chat", command="help").respond(text="Help!")
        return router

    def test_catch_all_moved_last(self) -> None:
        router = self._router()
        properties = _compile(router)
        assert [n.catch_all for n in router.routes] == [False, True]
        assert _texts(router, _input(properties, command="help")) == ["Help!"]

    def test_literal_order_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        router = self._router()
        with caplog.at_level(logging.WARNING, logger="switchboard.routing"):
            properties = _compile(router, catch_all_last=False)
        assert "unreachable" in caplog.text
        assert "chat.command='help'" in caplog.text
        assert _texts(router, _input(properties, command="help")) == ["fallback"]

    def test_mixed_conditions_are_not_catch_all(self) -> None:
        router = Router()
        with router.configure() as routes:
            routes.on_conditions(Condition("flow", "any"), Condition("chat", "command", "x"))
        _compile(router)
        assert [n.catch_all for n in router.routes] == [False]

    def test_relative_order_kept(self) -> None:
        router = Router()
        router.on("flow", "any").respond(text="first fallback")
        router.on("chat", command="a").respond(text="a")
        router.on("flow", "any").respond(text="second fallback")
        router.on("chat", command="b").respond(text="b")
        _compile(router)
        labels = [dict(n.actions[0].outputs)["text"] for n in router.routes]
        assert labels == ["a", "b", "first fallback", "second fallback"]


class TestCompile:
    def test_unknown_condition(self) -> None:
        router = Router()
        router.on("chat", photo="x")
        with pytest.raises(UnknownConditionError):
            _compile(router)

    def test_unknown_pack_in_child(self) -> None:
        router = Router()
        router.on("chat", command="help").on("slack", command="help")
        with pytest.raises(UnknownConditionError, match="no such pack"):
            _compile(router)

    def test_missing_argument(self) -> None:
        router = Router()
        router.on("chat", "command")
        with pytest.raises(ConfigurationError):
            _compile(router)

    def test_unknown_static_output(self) -> None:
        router = Router()
        router.on("chat", command="help").respond(chat_photo="x.png")
        with pytest.raises(UnknownOutputError):
            _compile(router)

    def test_unknown_default_output(self) -> None:
        router = Router()
        router.default.respond(chat_photo="x.png")
        with pytest.raises(UnknownOutputError):
            _compile(router)

    def test_unknown_error_output(self) -> None:
        router = Router()
        router.error.respond(chat_photo="x.png")
        with pytest.raises(UnknownOutputError):
            _compile(router)

    def test_frozen_after_compile(self) -> None:
        router = Router()
        help_ = router.on("chat", command="help")
        _compile(router)
        assert router.compiled
        with pytest.raises(RuntimeError, match="after the router has been compiled"):
            router.on("chat", command="start")
        with pytest.raises(RuntimeError):
            help_.respond(text="late")
        with pytest.raises(RuntimeError):
            router.default.respond(text="late")
        with pytest.raises(RuntimeError):
            with router.configure():
                pass

    def test_compile_twice_is_noop(self) -> None:
        router = Router()
        router.on("chat", command="help")
        _compile(router)
        _compile(router)
        assert len(router.routes) == 1

    def test_default_and_error_actions(self) -> None:
        router = Router()
        router.default.respond(text="default")
        router.error.respond(text="error").respond(text="sorry")
        _compile(router)
        assert len(router.default_actions) == 1
        assert len(router.error_actions) == 2

    def test_walk(self) -> None:
        router = Router()
        with router.on("chat", command="help") as help_:
            help_.on("chat", text="x")
        router.on("chat", command="start")
        _compile(router)
        assert [(depth, node.label) for depth, node in router.walk()] == [
            (0, "chat.command='help'"),
            (1, "chat.text='x'"),
            (0, "chat.command='start'"),
        ]
