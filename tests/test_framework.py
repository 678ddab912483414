from __future__ import annotations

import pytest

from shellware.config import get_settings
from shellware.core.types import PluginOutcome
from shellware.framework import ShellwareFramework
from shellware.hookspecs import hookimpl


class EchoProvider:
    @hookimpl
    def register_command_plugins(self, registry, settings) -> None:
        registry.register("echo_upper", lambda line: line.upper(), ["echo*"])


class BrokenProvider:
    @hookimpl
    def register_command_plugins(self, registry, settings) -> None:
        raise RuntimeError("provider broke on purpose")


class ErrorRecorder:
    def __init__(self) -> None:
        self.stages: list[str] = []

    @hookimpl
    def on_error(self, stage: str, error: Exception) -> None:
        self.stages.append(stage)


def _framework(**overrides: object) -> ShellwareFramework:
    return ShellwareFramework(get_settings(**overrides))


def test_builtin_plugins_are_registered() -> None:
    framework = _framework()
    framework.load_plugins(entry_points=False)

    names = [plugin.name for plugin in framework.registry.plugins()]
    assert "aws_s3_uri" in names
    assert "k8s_environment_validation" in names
    assert framework.hook_report()["register_command_plugins"] == ["builtin"]


def test_disabled_plugins_are_dropped(monkeypatch: pytest.MonkeyPatch) -> None:
    warnings: list[str] = []

    def _capture(message: str, *args: object, **kwargs: object) -> None:
        warnings.append(message.format(*args, **kwargs))

    monkeypatch.setattr("shellware.framework.logger.warning", _capture)
    framework = _framework(disabled_plugins=["aws_s3_uri", "ghost"])
    framework.load_plugins(entry_points=False)

    assert not framework.registry.has("aws_s3_uri")
    assert framework.registry.has("k8s_environment_validation")
    assert warnings == ["plugin.disable_unknown name=ghost"]


def test_extra_provider_plugins_dispatch() -> None:
    framework = _framework()
    framework.add_provider(EchoProvider(), "echo")
    framework.load_plugins(entry_points=False)

    assert framework.dispatch("echo hi").line == "ECHO HI"
    assert framework.dispatch("ls").line == "ls"


def test_broken_provider_is_isolated() -> None:
    recorder = ErrorRecorder()
    framework = _framework()
    framework.add_provider(recorder, "recorder")
    framework.add_provider(BrokenProvider(), "broken")
    framework.load_plugins(entry_points=False)

    assert framework.registry.has("aws_s3_uri")
    assert recorder.stages == ["register_command_plugins:broken"]


def test_plugin_failures_reach_on_error_hook() -> None:
    recorder = ErrorRecorder()
    framework = _framework()
    framework.add_provider(recorder, "recorder")
    framework.load_plugins(entry_points=False)

    def broken(line: str) -> PluginOutcome:
        raise RuntimeError("handler broke")

    framework.pipeline.register("broken", broken, ["*"])
    assert framework.dispatch("true").line == "true"
    assert recorder.stages == ["plugin:broken"]


def test_entry_point_failure_is_recorded(monkeypatch: pytest.MonkeyPatch) -> None:
    framework = _framework()

    def _explode(group: str) -> int:
        raise ImportError("bad distribution")

    monkeypatch.setattr(framework.plugin_manager, "load_setuptools_entrypoints", _explode)
    framework.load_plugins()

    assert framework.failed_providers == {"entrypoints": "bad distribution"}
    assert framework.registry.has("aws_s3_uri")


def test_load_plugins_twice_keeps_single_builtin() -> None:
    framework = _framework()
    framework.load_plugins(entry_points=False)
    framework.load_plugins(entry_points=False)

    assert [provider.name for provider in framework.loaded_providers] == ["builtin"]
    assert len(framework.registry) == 2
