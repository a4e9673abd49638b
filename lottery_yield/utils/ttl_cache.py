"""Small thread-safe TTL cache."""

from __future__ import annotations

import time
from collections.abc import Callable, Hashable
from threading import Lock
from typing import Generic, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class TTLCache(Generic[K, V]):
    """Keyed values that expire `ttl_seconds` after being stored.

    Expired entries are purged on every write. With `max_entries` set, the
    oldest entries are evicted once the cache is full.
    """

    def __init__(
        self,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        max_entries: int | None = None,
    ) -> None:
        self._ttl = float(ttl_seconds)
        self._clock = clock
        self._max_entries = max_entries
        self._lock = Lock()
        self._items: dict[K, tuple[float, V]] = {}

    def get(self, key: K) -> V | None:
        with self._lock:
            hit = self._items.get(key)
            if hit is None:
                return None
            stored_at, value = hit
            if self._clock() - stored_at >= self._ttl:
                del self._items[key]
                return None
            return value

    def set(self, key: K, value: V) -> None:
        with self._lock:
            now = self._clock()
            self._purge_expired(now)
            # Re-insert so dict order stays oldest-first.
            self._items.pop(key, None)
            self._items[key] = (now, value)
            if self._max_entries is not None:
                while len(self._items) > max(1, self._max_entries):
                    del self._items[next(iter(self._items))]

    def _purge_expired(self, now: float) -> None:
        expired = [k for k, (stored_at, _) in self._items.items() if now - stored_at >= self._ttl]
        for k in expired:
            del self._items[k]

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
