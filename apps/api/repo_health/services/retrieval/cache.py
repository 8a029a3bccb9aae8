from __future__ import annotations

import threading
import time
from typing import Any, Callable, Hashable, Optional

import cachetools


class ContentCache:
    """Process-wide cache for GitHub browsing responses.

    Backed by ``cachetools.TTLCache``: entries expire ``ttl_seconds`` after
    they were written and the least recently used entry is evicted once
    ``max_entries`` is reached. cachetools caches are not thread-safe, so
    every access goes through one lock. Concurrent writers race with
    last-writer-wins semantics.
    """

    def __init__(
        self,
        ttl_seconds: float = 300,
        max_entries: int = 512,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._data = cachetools.TTLCache(maxsize=max_entries, ttl=ttl_seconds, timer=clock)
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> Optional[Any]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: Hashable, value: Any) -> None:
        with self._lock:
            # re-inserting restarts the entry's ttl
            self._data.pop(key, None)
            self._data[key] = value

    def expire(self, key: Hashable) -> None:
        with self._lock:
            self._data.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def __len__(self) -> int:
        with self._lock:
            self._data.expire()
            return len(self._data)
