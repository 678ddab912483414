"""Plugin registry and derived pattern index."""

from __future__ import annotations

import builtins
import re
from collections.abc import Iterable

from loguru import logger

from shellware.core.cache import fingerprint
from shellware.core.types import Plugin, PluginHandler
from shellware.errors import PluginNotFoundError, PluginRegistrationError

MATCH_ALL = "*"
_COMMAND_WORD_RE = re.compile(r"[A-Za-z0-9_.][A-Za-z0-9_.-]*")


def command_words(patterns: Iterable[str]) -> tuple[str, ...]:
    """Derive the bare command words a set of glob patterns routes on.

    ``aws*`` and ``*aws s3*`` both give ``aws``; ``*`` gives nothing.
    """

    words: list[str] = []
    for pattern in patterns:
        match = _COMMAND_WORD_RE.match(pattern.lstrip("*?"))
        if match is None:
            continue
        word = match.group()
        if word not in words:
            words.append(word)
    return tuple(words)


class PluginRegistry:
    """Registry for command plugins and the pattern → plugins index."""

    def __init__(self) -> None:
        self._plugins: dict[str, Plugin] = {}
        self._positions: dict[str, int] = {}
        self._index: dict[str, list[str]] = {}
        self._fingerprint = fingerprint(())

    def register(
        self,
        name: str,
        handler: PluginHandler,
        patterns: Iterable[str] = (),
        *,
        commands: Iterable[str] | None = None,
    ) -> Plugin:
        """Register or replace a plugin.

        A name keeps the position of its first registration, also across
        replacement and unregister, so routing order only depends on which
        names were ever registered.
        """

        if not name:
            raise PluginRegistrationError("plugin name must not be empty")
        if not callable(handler):
            raise PluginRegistrationError(f"plugin {name} handler is not callable")

        declared = tuple(_normalize_patterns(patterns))
        if not declared:
            logger.warning(
                "plugin.register name={} has no patterns; registering '*' for backward compatibility, "
                "declare '*' explicitly for global interception",
                name,
            )
            declared = (MATCH_ALL,)

        words = tuple(commands) if commands is not None else command_words(declared)
        plugin = Plugin(name=name, handler=handler, patterns=declared, commands=words)
        if name in self._plugins:
            logger.debug("plugin.replace name={}", name)
        self._positions.setdefault(name, len(self._positions))
        self._plugins[name] = plugin
        self._plugins = dict(sorted(self._plugins.items(), key=lambda item: self._positions[item[0]]))
        self.rebuild()
        logger.debug("plugin.register name={} patterns={} commands={}", name, " ".join(declared), " ".join(words))
        return plugin

    def unregister(self, name: str) -> Plugin:
        plugin = self._plugins.pop(name, None)
        if plugin is None:
            raise PluginNotFoundError(name)
        self.rebuild()
        logger.debug("plugin.unregister name={}", name)
        return plugin

    def rebuild(self) -> None:
        """Recompute the pattern index from the registered plugins."""

        index: dict[str, list[str]] = {}
        for plugin in self._plugins.values():
            for pattern in plugin.patterns:
                owners = index.setdefault(pattern, [])
                if plugin.name not in owners:
                    owners.append(plugin.name)
        self._index = index
        self._fingerprint = fingerprint(
            "\t".join((plugin.name, "\x1f".join(plugin.patterns), " ".join(plugin.commands)))
            for plugin in self._plugins.values()
        )

    def has(self, name: str) -> bool:
        return name in self._plugins

    def get(self, name: str) -> Plugin | None:
        return self._plugins.get(name)

    def plugins(self) -> builtins.list[Plugin]:
        return list(self._plugins.values())

    def patterns(self) -> builtins.list[str]:
        """Distinct patterns in first-registered order."""

        return list(self._index)

    def owners(self, pattern: str) -> builtins.list[Plugin]:
        return [self._plugins[name] for name in self._index.get(pattern, ())]

    def index(self) -> dict[str, builtins.list[str]]:
        return {pattern: list(owners) for pattern, owners in self._index.items()}

    @property
    def fingerprint(self) -> str:
        """Changes whenever the routable pattern set changes."""

        return self._fingerprint

    def __len__(self) -> int:
        return len(self._plugins)


def _normalize_patterns(patterns: Iterable[str]) -> list[str]:
    if isinstance(patterns, str):
        patterns = [patterns]
    normalized: list[str] = []
    for pattern in patterns:
        if pattern and pattern not in normalized:
            normalized.append(pattern)
    return normalized
