"""Dispatch loop applying the rewrite/block protocol."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from contextvars import ContextVar
from typing import Any

from loguru import logger

from shellware.core.cache import DEFAULT_MAX_SIZE, ResultCache
from shellware.core.command_detector import CommandDetector
from shellware.core.registry import PluginRegistry
from shellware.core.router import PatternRouter
from shellware.core.types import NOOP_LINE, DispatchResult, Plugin, PluginHandler, PluginOutcome

ErrorObserver = Callable[[str, Exception], None]

_dispatching: ContextVar[bool] = ContextVar("shellware_dispatching", default=False)


class CommandPipeline:
    """Route a line to its plugins and thread rewrites through them in order.

    A plugin that raises is treated as having no opinion; only an explicit
    block outcome stops the line.
    """

    def __init__(
        self,
        registry: PluginRegistry | None = None,
        *,
        cache_size: int = DEFAULT_MAX_SIZE,
        on_error: ErrorObserver | None = None,
    ) -> None:
        self.registry = registry if registry is not None else PluginRegistry()
        self.detector = CommandDetector(ResultCache(cache_size))
        self.router = PatternRouter(self.registry, detector=self.detector, cache=ResultCache(cache_size))
        self._on_error = on_error

    def register(
        self,
        name: str,
        handler: PluginHandler,
        patterns: Iterable[str] = (),
        *,
        commands: Iterable[str] | None = None,
    ) -> Plugin:
        return self.registry.register(name, handler, patterns, commands=commands)

    def unregister(self, name: str) -> Plugin:
        return self.registry.unregister(name)

    def route(self, line: str) -> list[Plugin]:
        return self.router.route(line)

    def dispatch(self, line: str) -> DispatchResult:
        """Run every routed plugin against ``line``; the host executes ``result.line``."""

        if _dispatching.get():
            logger.debug("dispatch.reentrant line={!r}", line)
            return DispatchResult(line=line)

        token = _dispatching.set(True)
        try:
            return self._dispatch(line)
        finally:
            _dispatching.reset(token)

    def _dispatch(self, line: str) -> DispatchResult:
        routed = self.route(line)
        if not routed:
            return DispatchResult(line=line)

        current = line
        invoked: list[str] = []
        rewritten_by: list[str] = []
        for plugin in routed:
            invoked.append(plugin.name)
            outcome = self._invoke(plugin, current)
            if outcome.kind == "block":
                logger.debug("dispatch.block name={} line={!r}", plugin.name, current)
                return DispatchResult(
                    line=NOOP_LINE,
                    blocked=True,
                    message=outcome.message,
                    plugins=invoked,
                    rewritten_by=rewritten_by,
                )
            if outcome.kind == "rewrite" and outcome.line is not None:
                logger.debug("dispatch.rewrite name={} {!r} -> {!r}", plugin.name, current, outcome.line)
                current = outcome.line
                rewritten_by.append(plugin.name)

        return DispatchResult(line=current, plugins=invoked, rewritten_by=rewritten_by)

    def _invoke(self, plugin: Plugin, line: str) -> PluginOutcome:
        try:
            result = plugin.handler(line)
        except Exception as error:
            logger.opt(exception=True).warning("plugin.failed name={}", plugin.name)
            self._notify_error(plugin.name, error)
            return PluginOutcome.no_opinion()
        return normalize_outcome(result, line, plugin_name=plugin.name)

    def _notify_error(self, plugin_name: str, error: Exception) -> None:
        if self._on_error is None:
            return
        try:
            self._on_error(plugin_name, error)
        except Exception:
            logger.opt(exception=True).warning("plugin.on_error_failed name={}", plugin_name)


def normalize_outcome(result: Any, line: str, *, plugin_name: str = "<unknown>") -> PluginOutcome:
    """Map a handler's return value onto the protocol."""

    if result is None:
        return PluginOutcome.no_opinion()
    if isinstance(result, PluginOutcome):
        if result.kind == "rewrite" and (not result.line or not result.line.strip() or result.line == line):
            return PluginOutcome.no_opinion()
        return result
    if isinstance(result, str):
        stripped = result.strip()
        if not stripped or stripped == line.strip():
            return PluginOutcome.no_opinion()
        return PluginOutcome.rewrite(stripped)
    logger.warning("plugin.unusable_result name={} type={}", plugin_name, type(result).__name__)
    return PluginOutcome.no_opinion()
