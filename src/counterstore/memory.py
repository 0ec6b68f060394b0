from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from common.errors import StoreUnavailable
from counterstore.base import TTL_MISSING, TTL_PERSISTENT, CounterStore


Clock = Callable[[], float]


@dataclass
class _Entry:
    value: str
    expires_at: float | None


class InMemoryCounterStore(CounterStore):
    """Process-local store for tests, the replay CLI and single-instance deployments.

    Expired entries are dropped lazily on access and swept every `sweep_every`
    writes, so memory stays bounded by the number of live keys.
    """

    def __init__(self, *, clock: Clock = time.monotonic, sweep_every: int = 1024) -> None:
        self._clock = clock
        self._data: dict[str, _Entry] = {}
        self._lock = threading.Lock()
        self._sweep_every = max(1, sweep_every)
        self._writes = 0

    def _live(self, key: str, now: float) -> _Entry | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        if entry.expires_at is not None and entry.expires_at <= now:
            del self._data[key]
            return None
        return entry

    def _after_write(self, now: float) -> None:
        self._writes += 1
        if self._writes % self._sweep_every:
            return
        expired = [k for k, e in self._data.items() if e.expires_at is not None and e.expires_at <= now]
        for k in expired:
            del self._data[k]

    def incr_with_expiry(self, key: str, ttl_seconds: int) -> int:
        with self._lock:
            now = self._clock()
            entry = self._live(key, now)
            if entry is None:
                entry = _Entry(value="0", expires_at=now + ttl_seconds)
                self._data[key] = entry
            try:
                count = int(entry.value) + 1
            except ValueError as exc:
                raise StoreUnavailable("incr_with_expiry", key, exc) from exc
            entry.value = str(count)
            self._after_write(now)
            return count

    def get(self, key: str) -> str | None:
        with self._lock:
            entry = self._live(key, self._clock())
            return None if entry is None else entry.value

    def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        with self._lock:
            now = self._clock()
            expires_at = None if ttl_seconds is None else now + ttl_seconds
            self._data[key] = _Entry(value=str(value), expires_at=expires_at)
            self._after_write(now)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def exists(self, key: str) -> bool:
        with self._lock:
            return self._live(key, self._clock()) is not None

    def ttl(self, key: str) -> int:
        with self._lock:
            now = self._clock()
            entry = self._live(key, now)
            if entry is None:
                return TTL_MISSING
            if entry.expires_at is None:
                return TTL_PERSISTENT
            return max(0, math.ceil(entry.expires_at - now))

    def __len__(self) -> int:
        with self._lock:
            now = self._clock()
            return sum(1 for k in list(self._data) if self._live(k, now) is not None)
