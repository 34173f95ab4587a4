"""Tests for switchboard.cli — ``switchboard routes`` and ``switchboard check``."""

import sys
import types

import pytest

from switchboard.cli import main
from switchboard.cli._resolve import resolve_core
from switchboard.core import Core
from switchboard.errors import ConfigurationError
from switchboard.testing import RecordingInterface


def _core() -> Core:
    core = Core()
    RecordingInterface(core)
    with core.router.configure() as routes:
        with routes.on("recording", command="help") as help_:
            help_.on("recording", text="hours").respond(text="10-19")
            help_.on("flow", "any").respond(text="Try /help hours")
        routes.on("recording", command="ping").respond(text="pong").respond_async(text="later")
    core.router.default.respond(text="Unknown")
    return core


@pytest.fixture
def bot_module(monkeypatch: pytest.MonkeyPatch) -> types.ModuleType:
    """Register a fake module exposing a Core, a factory, and a broken Core."""
    mod = types.ModuleType("_switchboard_test_bot")
    mod.core = _core()  # type: ignore[attr-defined]
    mod.make_core = _core  # type: ignore[attr-defined]
    broken = Core()
    RecordingInterface(broken)
    broken.router.on("recording", photo="x")
    mod.broken = broken  # type: ignore[attr-defined]
    mod.not_a_core = 42  # type: ignore[attr-defined]
    monkeypatch.setitem(sys.modules, "_switchboard_test_bot", mod)
    return mod


class TestResolveCore:
    def test_explicit_attribute(self, bot_module: types.ModuleType) -> None:
        assert resolve_core("_switchboard_test_bot:core") is bot_module.core

    def test_default_attribute(self, bot_module: types.ModuleType) -> None:
        assert resolve_core("_switchboard_test_bot") is bot_module.core

    def test_factory(self, bot_module: types.ModuleType) -> None:
        assert isinstance(resolve_core("_switchboard_test_bot:make_core"), Core)

    def test_not_a_core(self, bot_module: types.ModuleType) -> None:
        with pytest.raises(TypeError, match="not a switchboard.Core"):
            resolve_core("_switchboard_test_bot:not_a_core")

    def test_missing_module(self) -> None:
        with pytest.raises(ModuleNotFoundError):
            resolve_core("nonexistent_module_xyz:core")

    def test_interface_resolves_to_its_core(self, monkeypatch: pytest.MonkeyPatch) -> None:
        core = Core()
        chat = RecordingInterface(core)
        mod = types.ModuleType("_switchboard_app_bot")
        mod.app = chat  # type: ignore[attr-defined]
        mod.make_app = lambda: chat  # type: ignore[attr-defined]
        monkeypatch.setitem(sys.modules, "_switchboard_app_bot", mod)

        assert resolve_core("_switchboard_app_bot:app") is core
        assert resolve_core("_switchboard_app_bot") is core
        assert resolve_core("_switchboard_app_bot:make_app") is core

    def test_no_default_attribute(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setitem(sys.modules, "_switchboard_bare", types.ModuleType("_switchboard_bare"))
        with pytest.raises(AttributeError, match="'core' or 'app'"):
            resolve_core("_switchboard_bare")

    def test_core_without_interfaces(self, monkeypatch: pytest.MonkeyPatch) -> None:
        mod = types.ModuleType("_switchboard_lonely")
        mod.core = Core()  # type: ignore[attr-defined]
        monkeypatch.setitem(sys.modules, "_switchboard_lonely", mod)
        with pytest.raises(ConfigurationError, match="no interfaces"):
            resolve_core("_switchboard_lonely")


class TestCheck:
    def test_ok(self, bot_module: types.ModuleType, capsys: pytest.CaptureFixture[str]) -> None:
        main(["check", "_switchboard_test_bot:core"])
        out = capsys.readouterr().out
        assert out.strip() == "OK: 4 routes, interfaces: recording"
        assert bot_module.core.frozen

    def test_configuration_error(
        self, bot_module: types.ModuleType, capsys: pytest.CaptureFixture[str]
    ) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["check", "_switchboard_test_bot:broken"])
        assert exc_info.value.code == 1
        assert "Unknown condition recording.photo" in capsys.readouterr().err

    def test_invalid_import_string(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["check", "nonexistent_module_xyz:core"])
        assert exc_info.value.code == 1
        assert "Error:" in capsys.readouterr().err


class TestRoutes:
    def test_tree(self, bot_module: types.ModuleType, capsys: pytest.CaptureFixture[str]) -> None:
        main(["routes", "_switchboard_test_bot:core"])
        lines = capsys.readouterr().out.splitlines()

        assert lines[0].startswith("ROUTE")
        assert lines[2].startswith("recording.command='help'")
        assert lines[3].startswith("  recording.text='hours'")
        assert lines[3].endswith("respond(text)")
        assert lines[4].startswith("  flow.any")
        assert lines[5].startswith("recording.command='ping'")
        assert lines[5].endswith("respond(text), respond_async(text)")
        assert "default: respond(text)" in lines
        assert "error:   -" in lines

    def test_no_routes(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        core = Core()
        RecordingInterface(core)
        mod = types.ModuleType("_switchboard_empty_bot")
        mod.core = core  # type: ignore[attr-defined]
        monkeypatch.setitem(sys.modules, "_switchboard_empty_bot", mod)

        main(["routes", "_switchboard_empty_bot"])
        assert "No routes registered." in capsys.readouterr().out

    def test_error(self, bot_module: types.ModuleType, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit):
            main(["routes", "_switchboard_test_bot:broken"])
        assert "Error:" in capsys.readouterr().err


class TestMain:
    def test_no_command_prints_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 0
        assert "switchboard" in capsys.readouterr().out
