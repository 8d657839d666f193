"""
Bounded in-memory cache with oldest-first eviction and hit/miss counters.

Shared by the parse cache and the explanation cache. Route handlers run in a
worker thread pool, so every access to the entry table holds a lock.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from typing import Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

V = TypeVar("V")

DEFAULT_MAX_SIZE = 100


class BoundedCache(Generic[V]):
    """Insertion-ordered cache; the oldest entry is evicted once max_size is reached."""

    name = "cache"

    def __init__(self, max_size: int = DEFAULT_MAX_SIZE):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self._entries: "OrderedDict[str, V]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[V]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None
            self.hits += 1
        logger.debug("%s hit for %s", self.name, key[:12])
        return entry

    def put(self, key: str, value: V) -> None:
        with self._lock:
            if key in self._entries:
                self._entries[key] = value
                return
            while len(self._entries) >= self.max_size:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("%s evicted %s", self.name, evicted[:12])
            self._entries[key] = value

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
