"""Bounded memo cache with generational eviction."""

from __future__ import annotations

import hashlib
from collections.abc import Hashable, Iterable
from typing import Any

DEFAULT_MAX_SIZE = 200

MISS = object()


def fingerprint(patterns: Iterable[str]) -> str:
    """Stable digest of an ordered pattern set."""

    digest = hashlib.sha1(usedforsecurity=False)
    for pattern in patterns:
        digest.update(pattern.encode("utf-8"))
        digest.update(b"\0")
    return digest.hexdigest()


class ResultCache:
    """Insertion-ordered cache; on overflow the oldest half is dropped.

    Not an LRU: reads do not refresh an entry's age.
    """

    def __init__(self, max_size: int = DEFAULT_MAX_SIZE) -> None:
        if max_size < 2:
            raise ValueError("cache max_size must be at least 2")
        self.max_size = max_size
        self._entries: dict[Hashable, Any] = {}
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def get(self, key: Hashable) -> Any:
        """Return the cached value or ``MISS``."""

        value = self._entries.get(key, MISS)
        if value is MISS:
            self.misses += 1
        else:
            self.hits += 1
        return value

    def put(self, key: Hashable, value: Any) -> None:
        if key not in self._entries and len(self._entries) >= self.max_size:
            self._evict_oldest_half()
        self._entries[key] = value

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def _evict_oldest_half(self) -> None:
        drop = len(self._entries) // 2
        for key in list(self._entries)[:drop]:
            del self._entries[key]
        self.evictions += drop
