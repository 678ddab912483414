"""Pluggy hook namespace and plugin-provider hook specifications."""

from __future__ import annotations

import pluggy

from shellware.config import Settings
from shellware.core.registry import PluginRegistry

SHELLWARE_HOOK_NAMESPACE = "shellware"
hookspec = pluggy.HookspecMarker(SHELLWARE_HOOK_NAMESPACE)
hookimpl = pluggy.HookimplMarker(SHELLWARE_HOOK_NAMESPACE)


class ShellwareHookSpecs:
    """Hook contract for command plugin providers."""

    @hookspec
    def register_command_plugins(self, registry: PluginRegistry, settings: Settings) -> None:
        """Register command plugins onto the registry."""

    @hookspec
    def on_error(self, stage: str, error: Exception) -> None:
        """Observe provider and plugin failures from any stage."""
