"""Bounded in-memory cache used by the distance calculator."""

from __future__ import annotations

import threading
from typing import Dict, Generic, Hashable, Optional, TypeVar

T = TypeVar("T")

DEFAULT_MAX_ENTRIES = 1000


class BoundedCache(Generic[T]):
    """Thread-safe key/value cache with first-in-first-out eviction.

    Once ``max_entries`` is exceeded the oldest inserted key is dropped. Reads do
    not refresh a key's position, so this approximates LRU for working sets that
    fit the bound.
    """

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES) -> None:
        if max_entries < 1:
            raise ValueError(f"max_entries must be positive, got {max_entries}")
        self.max_entries = max_entries
        self._lock = threading.Lock()
        self._entries: Dict[Hashable, T] = {}
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def get(self, key: Hashable) -> Optional[T]:
        with self._lock:
            if key in self._entries:
                self._hits += 1
                return self._entries[key]
            self._misses += 1
            return None

    def set(self, key: Hashable, value: T) -> None:
        with self._lock:
            self._entries[key] = value
            while len(self._entries) > self.max_entries:
                oldest = next(iter(self._entries))
                del self._entries[oldest]
                self._evictions += 1

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = self._misses = self._evictions = 0

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "entries": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
            }


__all__ = ["BoundedCache", "DEFAULT_MAX_ENTRIES"]
