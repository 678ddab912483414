"""Detection, routing and dispatch core."""

from shellware.core.command_detector import CommandDetector, detect_commands
from shellware.core.pipeline import CommandPipeline
from shellware.core.registry import PluginRegistry
from shellware.core.router import PatternRouter
from shellware.core.types import NOOP_LINE, DispatchResult, Plugin, PluginOutcome

__all__ = [
    "NOOP_LINE",
    "CommandDetector",
    "CommandPipeline",
    "DispatchResult",
    "PatternRouter",
    "Plugin",
    "PluginOutcome",
    "PluginRegistry",
    "detect_commands",
]
