"""Pattern routing from a command line to candidate plugins."""

from __future__ import annotations

from fnmatch import fnmatchcase

from loguru import logger

from shellware.core.cache import MISS, ResultCache
from shellware.core.command_detector import CommandDetector
from shellware.core.registry import PluginRegistry
from shellware.core.types import Plugin

GLOB_CHARS = frozenset("*?[")


def is_glob(pattern: str) -> bool:
    return any(char in GLOB_CHARS for char in pattern)


def match_command_pattern(line: str, pattern: str) -> bool:
    """Glob match against the whole, unmodified line."""

    return fnmatchcase(line, pattern)


class PatternRouter:
    """Select the plugins whose patterns match a line.

    Glob matching proposes candidates; the detector then confirms that a
    candidate's command word is actually invoked, which keeps assignments
    and quoted text from routing.
    """

    def __init__(
        self,
        registry: PluginRegistry,
        *,
        detector: CommandDetector | None = None,
        cache: ResultCache | None = None,
    ) -> None:
        self._registry = registry
        self._detector = detector or CommandDetector()
        self._cache = cache

    @property
    def detector(self) -> CommandDetector:
        return self._detector

    def route(self, line: str) -> list[Plugin]:
        key = (line, self._registry.fingerprint)
        if self._cache is not None:
            cached = self._cache.get(key)
            if cached is not MISS:
                return self._resolve(cached)

        names = tuple(plugin.name for plugin in self._confirmed(self.candidates(line), line))
        if self._cache is not None:
            self._cache.put(key, names)
        logger.debug("router.route line={!r} plugins={}", line, ",".join(names) or "-")
        return self._resolve(names)

    def candidates(self, line: str) -> list[Plugin]:
        """Plugins whose glob patterns match, deduplicated, in pattern order."""

        routed: list[Plugin] = []
        seen: set[str] = set()
        for pattern in self._registry.patterns():
            if not self._matches(line, pattern):
                continue
            for plugin in self._registry.owners(pattern):
                if plugin.name in seen:
                    continue
                seen.add(plugin.name)
                routed.append(plugin)
        return routed

    def _matches(self, line: str, pattern: str) -> bool:
        # a bare word routes wherever that command is invoked
        if is_glob(pattern):
            return match_command_pattern(line, pattern)
        return self._detector.detect(line, (pattern,)) is not None

    def _confirmed(self, candidates: list[Plugin], line: str) -> list[Plugin]:
        confirmed: list[Plugin] = []
        for plugin in candidates:
            if not plugin.commands or self._detector.detect(line, plugin.commands) is not None:
                confirmed.append(plugin)
            else:
                logger.debug("router.skip name={} reason=no_invocation", plugin.name)
        return confirmed

    def _resolve(self, names: tuple[str, ...]) -> list[Plugin]:
        plugins: list[Plugin] = []
        for name in names:
            plugin = self._registry.get(name)
            if plugin is not None:
                plugins.append(plugin)
        return plugins
