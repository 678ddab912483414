"""Shellware - command-line middleware for interactive shells."""

from .core import CommandPipeline, DispatchResult, PluginOutcome, PluginRegistry

__version__ = "0.1.0"

__all__ = ["CommandPipeline", "DispatchResult", "PluginOutcome", "PluginRegistry"]
