from __future__ import annotations

"""Counter store contract shared by the brute-force guard and the fraud scorer.

The engine holds no in-process locks: the only correctness-critical invariant
is that `incr_with_expiry` is atomic and linearizable per key on the store side,
and that it establishes the TTL only when it creates the key. Later increments
inside the window must leave the TTL alone, or the window would never close.

Every backend raises `common.errors.StoreUnavailable` for connection failures,
timeouts and server-side errors; callers never see client-specific exceptions.
"""

from abc import ABC, abstractmethod


# Same sentinel values Redis returns from TTL.
TTL_MISSING = -2
TTL_PERSISTENT = -1


class CounterStore(ABC):
    @abstractmethod
    def incr_with_expiry(self, key: str, ttl_seconds: int) -> int:
        """Atomically increment `key`; a newly created key expires after `ttl_seconds`."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        ...

    @abstractmethod
    def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...

    @abstractmethod
    def exists(self, key: str) -> bool:
        ...

    @abstractmethod
    def ttl(self, key: str) -> int:
        """Remaining seconds, or TTL_MISSING / TTL_PERSISTENT."""

    def close(self) -> None:
        """Release client resources; a no-op for in-process stores."""


class PrefixedStore(CounterStore):
    """Namespaces every key so several deployments can share one store."""

    def __init__(self, inner: CounterStore, prefix: str) -> None:
        self._inner = inner
        self._prefix = prefix.rstrip(":") + ":" if prefix else ""

    def _k(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def incr_with_expiry(self, key: str, ttl_seconds: int) -> int:
        return self._inner.incr_with_expiry(self._k(key), ttl_seconds)

    def get(self, key: str) -> str | None:
        return self._inner.get(self._k(key))

    def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        self._inner.set(self._k(key), value, ttl_seconds)

    def delete(self, key: str) -> None:
        self._inner.delete(self._k(key))

    def exists(self, key: str) -> bool:
        return self._inner.exists(self._k(key))

    def ttl(self, key: str) -> int:
        return self._inner.ttl(self._k(key))

    def close(self) -> None:
        self._inner.close()


__all__ = ["CounterStore", "PrefixedStore", "TTL_MISSING", "TTL_PERSISTENT"]
