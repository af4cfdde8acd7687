"""Expiring in-memory cache for oracle responses."""

from __future__ import annotations

import hashlib
import json
import threading
import time
from typing import Any, Callable, Protocol, Sequence

from ...models.domain import Point


class MatrixCache(Protocol):
    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any, ttl_seconds: float) -> None: ...

    def has(self, key: str) -> bool: ...


DEFAULT_MAX_ENTRIES = 1024


class ExpiringCache:
    """Thread-safe key/value store whose entries vanish after their TTL.

    Entries are replaced wholesale, never mutated, so a reader sees either a
    complete value or a miss. Every write drops expired entries, and once
    ``max_entries`` live entries are stored the oldest write is evicted.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        max_entries: int = DEFAULT_MAX_ENTRIES,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1.")
        self._clock = clock
        self._max_entries = max_entries
        self._entries: dict[str, tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._clock() > expires_at:
                del self._entries[key]
                return None
            return value

    def _purge_expired(self, now: float) -> None:
        expired = [key for key, (_, expires_at) in self._entries.items() if now > expires_at]
        for key in expired:
            del self._entries[key]

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        with self._lock:
            now = self._clock()
            self._purge_expired(now)
            # Re-inserting moves the key to the end, so dict order is write order.
            self._entries.pop(key, None)
            while len(self._entries) >= self._max_entries:
                del self._entries[next(iter(self._entries))]
            self._entries[key] = (value, now + ttl_seconds)

    @property
    def stored(self) -> int:
        """Entries held in memory, expired ones not yet purged included."""
        with self._lock:
            return len(self._entries)

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            now = self._clock()
            return sum(1 for _, expires_at in self._entries.values() if expires_at >= now)


def matrix_cache_key(points: Sequence[Point], traffic_aware: bool) -> str:
    """Stable hash of the ordered coordinates plus the traffic mode."""
    payload = json.dumps(
        {
            "coordinates": [[point.latitude, point.longitude] for point in points],
            "traffic": bool(traffic_aware),
        },
        separators=(",", ":"),
    )
    return "matrix:" + hashlib.sha256(payload.encode("utf-8")).hexdigest()


def geocode_cache_key(address: str) -> str:
    return "geocode:" + hashlib.sha256(address.strip().lower().encode("utf-8")).hexdigest()
