"""Application-level exception types for shellware."""

from __future__ import annotations


class ShellwareError(Exception):
    """Base exception for shellware."""


class ConfigurationError(ShellwareError):
    """Raised when settings cannot be turned into a working pipeline."""


class PluginRegistrationError(ShellwareError):
    """Raised when a plugin declaration is unusable."""


class PluginNotFoundError(ShellwareError, KeyError):
    """Raised when a plugin name is not registered."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"plugin not registered: {self.name}"
