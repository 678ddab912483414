"""Input command detection."""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass

from loguru import logger

from shellware.core.cache import MISS, ResultCache, fingerprint
from shellware.core.lexer import (
    QUOTES,
    extract_backtick_substitution,
    extract_paren_substitution,
    find_command_end,
    is_word_boundary,
    naive_tokenize,
)
from shellware.core.types import ContextKind, DetectedCommand

SEARCH_COMMANDS = frozenset({"grep", "egrep", "fgrep", "rg", "find", "cat", "less", "more", "head", "tail"})

NO_MATCH = object()

# deeper substitutions are skipped rather than scanned
MAX_SUBSTITUTION_DEPTH = 32


@dataclass
class DetectorStats:
    """Counters for each detection layer."""

    l1_rejections: int = 0
    l2_detections: int = 0
    l3_parses: int = 0
    cache_hits: int = 0

    def as_dict(self) -> dict[str, int]:
        return {
            "l1_rejections": self.l1_rejections,
            "l2_detections": self.l2_detections,
            "l3_parses": self.l3_parses,
            "cache_hits": self.cache_hits,
        }


class CommandDetector:
    """Three-layer detector: quick reject, single-pass scan, tokenized fallback."""

    def __init__(self, cache: ResultCache | None = None) -> None:
        self._cache = cache
        self.stats = DetectorStats()

    def detect(self, line: str, patterns: Sequence[str]) -> tuple[DetectedCommand, ...] | None:
        """Find invocations of any pattern word in ``line``."""

        words = tuple(pattern for pattern in patterns if pattern)
        if not line.strip() or not words:
            return None

        key = (line, fingerprint(words))
        if self._cache is not None:
            cached = self._cache.get(key)
            if cached is not MISS:
                self.stats.cache_hits += 1
                return None if cached is NO_MATCH else cached

        result = self._detect_uncached(line, words)
        if self._cache is not None:
            self._cache.put(key, NO_MATCH if result is None else result)
        return result

    def _detect_uncached(self, line: str, words: tuple[str, ...]) -> tuple[DetectedCommand, ...] | None:
        if quick_reject(line, words):
            self.stats.l1_rejections += 1
            logger.debug("detect.l1_reject words={} line={!r}", ",".join(words), line)
            return None

        self.stats.l2_detections += 1
        found = fast_detect(line, words)
        if found:
            return tuple(found)

        self.stats.l3_parses += 1
        found = full_parse(line, words)
        if found:
            logger.debug("detect.l3_match words={} line={!r}", ",".join(words), line)
            return tuple(found)
        return None


def detect_commands(line: str, patterns: Sequence[str]) -> tuple[DetectedCommand, ...] | None:
    """Uncached one-off detection."""

    return CommandDetector().detect(line, patterns)


def quick_reject(line: str, patterns: Sequence[str]) -> bool:
    """Layer 1: cheap checks that prove no pattern is invoked."""

    if not any(pattern in line for pattern in patterns):
        return True

    first_word = line.split(maxsplit=1)[0]
    if first_word in SEARCH_COMMANDS:
        return True

    if "=" in line and not any(in_command_position(line, pattern) for pattern in patterns):
        return True
    return False


def in_command_position(line: str, pattern: str) -> bool:
    """Whether ``pattern`` appears as a standalone word, ignoring quoting."""

    return re.search(rf"(?:^|[\s;|&(`]){re.escape(pattern)}(?=\s|$)", line) is not None


def fast_detect(
    line: str,
    patterns: Sequence[str],
    *,
    offset: int = 0,
    kind: ContextKind = "direct",
    depth: int = 0,
) -> list[DetectedCommand]:
    """Layer 2: one left-to-right scan tracking quotes and substitutions."""

    contexts: list[DetectedCommand] = []
    quote = ""
    pos = 0
    length = len(line)
    while pos < length:
        char = line[pos]
        if char == "\\" and quote != "'":
            pos += 2
            continue
        if quote:
            if char == quote:
                quote = ""
            pos += 1
            continue
        if char in QUOTES:
            quote = char
            pos += 1
            continue

        if char == "$" and line[pos + 1 : pos + 2] == "(":
            extracted = extract_paren_substitution(line, pos + 2)
            if extracted is not None:
                body, after = extracted
                if depth < MAX_SUBSTITUTION_DEPTH:
                    contexts.extend(
                        fast_detect(body, patterns, offset=offset + pos + 2, kind="subst_paren", depth=depth + 1)
                    )
                pos = after
                continue
        elif char == "`":
            extracted = extract_backtick_substitution(line, pos + 1)
            if extracted is not None:
                body, after = extracted
                if depth < MAX_SUBSTITUTION_DEPTH:
                    contexts.extend(
                        fast_detect(body, patterns, offset=offset + pos + 1, kind="subst_backtick", depth=depth + 1)
                    )
                pos = after
                continue

        pattern = _pattern_at(line, pos, patterns)
        if pattern is not None:
            end = find_command_end(line, pos)
            text = line[pos:end].rstrip()
            contexts.append(
                DetectedCommand(kind=kind, pattern=pattern, text=text, start=offset + pos, end=offset + pos + len(text))
            )
            pos = max(end, pos + 1)
            continue
        pos += 1
    return contexts


def full_parse(line: str, patterns: Sequence[str]) -> list[DetectedCommand]:
    """Layer 3: any token equal to a pattern starts a context reaching the line end."""

    contexts: list[DetectedCommand] = []
    for token in naive_tokenize(line):
        if token.text in patterns:
            text = line[token.start :].rstrip()
            contexts.append(
                DetectedCommand(
                    kind="tokenized",
                    pattern=token.text,
                    text=text,
                    start=token.start,
                    end=token.start + len(text),
                )
            )
    return contexts


def _pattern_at(line: str, pos: int, patterns: Sequence[str]) -> str | None:
    if not is_word_boundary(line, pos):
        return None
    for pattern in patterns:
        if not line.startswith(pattern, pos):
            continue
        after = pos + len(pattern)
        if after == len(line) or line[after].isspace():
            return pattern
    return None
