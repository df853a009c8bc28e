from __future__ import annotations

import time
from typing import Dict, Generic, Hashable, Optional, Tuple, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class TTLCache(Generic[K, V]):
    """Simple in-memory TTL cache used for select results.

    - Stores values with an absolute expiry computed from ``ttl_seconds``.
    - Uses ``time.monotonic()`` for steady time measurement.
    - ``clear()`` drops everything; repositories call it after each write.
    """

    def __init__(self, ttl_seconds: float) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._ttl = float(ttl_seconds)
        self._store: Dict[K, Tuple[float, V]] = {}
        self.hits = 0
        self.misses = 0

    @property
    def ttl(self) -> float:
        return self._ttl

    def get(self, key: K) -> Optional[V]:
        now = time.monotonic()
        item = self._store.get(key)
        if item is None:
            self.misses += 1
            return None
        expiry, value = item
        if now >= expiry:
            # Expired
            self._store.pop(key, None)
            self.misses += 1
            return None
        self.hits += 1
        return value

    def set(self, key: K, value: V) -> None:
        expiry = time.monotonic() + self._ttl
        self._store[key] = (expiry, value)

    def invalidate(self, key: K) -> None:
        self._store.pop(key, None)

    def clear(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        return len(self._store)
