"""Hook-driven assembly of the command pipeline."""

from __future__ import annotations

from dataclasses import dataclass

import pluggy
from loguru import logger

from shellware.config import Settings, get_settings
from shellware.core.pipeline import CommandPipeline
from shellware.core.registry import PluginRegistry
from shellware.core.types import DispatchResult
from shellware.errors import PluginNotFoundError
from shellware.hook_runtime import HookRuntime
from shellware.hookspecs import SHELLWARE_HOOK_NAMESPACE, ShellwareHookSpecs
from shellware.plugins import BuiltinPlugins

BUILTIN_PROVIDER_NAME = "builtin"


@dataclass(frozen=True)
class LoadedProvider:
    """Runtime registration result for one plugin provider."""

    name: str
    source: str


class ShellwareFramework:
    """Collect command plugins from providers and expose the pipeline."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings if settings is not None else get_settings()
        self._plugin_manager = pluggy.PluginManager(SHELLWARE_HOOK_NAMESPACE)
        self._plugin_manager.add_hookspecs(ShellwareHookSpecs)
        self._hook_runtime = HookRuntime(self._plugin_manager)
        self.registry = PluginRegistry()
        self.pipeline = CommandPipeline(
            self.registry,
            cache_size=self.settings.cache_size,
            on_error=self._on_plugin_error,
        )
        self._loaded: list[LoadedProvider] = []
        self._failed: dict[str, str] = {}

    @property
    def plugin_manager(self) -> pluggy.PluginManager:
        return self._plugin_manager

    @property
    def loaded_providers(self) -> list[LoadedProvider]:
        return list(self._loaded)

    @property
    def failed_providers(self) -> dict[str, str]:
        return dict(self._failed)

    def add_provider(self, provider: object, name: str, *, source: str = "runtime") -> None:
        self._plugin_manager.register(provider, name=name)
        self._loaded.append(LoadedProvider(name=name, source=source))

    def load_plugins(self, *, entry_points: bool = True) -> None:
        """Register providers, collect their command plugins, then drop disabled ones."""

        if not self._plugin_manager.has_plugin(BUILTIN_PROVIDER_NAME):
            self.add_provider(BuiltinPlugins(), BUILTIN_PROVIDER_NAME, source="builtin")
        if entry_points:
            self._load_entry_points()

        self._hook_runtime.call_many("register_command_plugins", registry=self.registry, settings=self.settings)
        self._apply_disabled()
        logger.debug("framework.loaded plugins={}", ",".join(plugin.name for plugin in self.registry.plugins()) or "-")

    def dispatch(self, line: str) -> DispatchResult:
        return self.pipeline.dispatch(line)

    def hook_report(self) -> dict[str, list[str]]:
        """Return hook implementation summary for diagnostics."""

        return self._hook_runtime.hook_report()

    def _load_entry_points(self) -> None:
        before = set(self._plugin_manager.get_plugins())
        try:
            self._plugin_manager.load_setuptools_entrypoints(SHELLWARE_HOOK_NAMESPACE)
        except Exception as exc:
            self._failed["entrypoints"] = str(exc)
            logger.opt(exception=True).warning("provider.load_failed source=entrypoints")
            self._hook_runtime.notify_error(stage="load_entrypoints", error=exc)
        for provider in self._plugin_manager.get_plugins():
            if provider in before:
                continue
            name = self._plugin_manager.get_name(provider) or repr(provider)
            self._loaded.append(LoadedProvider(name=name, source="entrypoint"))

    def _apply_disabled(self) -> None:
        for name in self.settings.disabled_plugins:
            try:
                self.registry.unregister(name)
            except PluginNotFoundError:
                logger.warning("plugin.disable_unknown name={}", name)

    def _on_plugin_error(self, plugin_name: str, error: Exception) -> None:
        self._hook_runtime.notify_error(stage=f"plugin:{plugin_name}", error=error)
