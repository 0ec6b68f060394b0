from __future__ import annotations

from typing import Any

import redis

from common.errors import StoreUnavailable
from common.logging_utils import get_logger
from counterstore.base import CounterStore


logger = get_logger(__name__)


class RedisCounterStore(CounterStore):
    """Counter store backed by Redis.

    `incr_with_expiry` runs `SET key 0 EX ttl NX` followed by `INCR key` inside one
    MULTI/EXEC block. The SET only succeeds on a fresh key, so the window is set
    once and INCR (which preserves TTL) never extends it.
    """

    def __init__(self, client: Any) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str, *, timeout_seconds: float = 0.5) -> "RedisCounterStore":
        client = redis.Redis.from_url(
            url,
            socket_timeout=timeout_seconds,
            socket_connect_timeout=timeout_seconds,
            decode_responses=True,
        )
        return cls(client)

    def incr_with_expiry(self, key: str, ttl_seconds: int) -> int:
        try:
            pipe = self._client.pipeline(transaction=True)
            pipe.set(key, 0, ex=int(ttl_seconds), nx=True)
            pipe.incr(key)
            _, value = pipe.execute()
        except redis.RedisError as exc:
            raise StoreUnavailable("incr_with_expiry", key, exc) from exc
        logger.debug("redis incr_with_expiry key=%s value=%s ttl=%s", key, value, ttl_seconds)
        return int(value)

    def get(self, key: str) -> str | None:
        try:
            value = self._client.get(key)
        except redis.RedisError as exc:
            raise StoreUnavailable("get", key, exc) from exc
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        try:
            self._client.set(key, value, ex=None if ttl_seconds is None else int(ttl_seconds))
        except redis.RedisError as exc:
            raise StoreUnavailable("set", key, exc) from exc

    def delete(self, key: str) -> None:
        try:
            self._client.delete(key)
        except redis.RedisError as exc:
            raise StoreUnavailable("delete", key, exc) from exc

    def exists(self, key: str) -> bool:
        try:
            return bool(self._client.exists(key))
        except redis.RedisError as exc:
            raise StoreUnavailable("exists", key, exc) from exc

    def ttl(self, key: str) -> int:
        try:
            return int(self._client.ttl(key))
        except redis.RedisError as exc:
            raise StoreUnavailable("ttl", key, exc) from exc

    def close(self) -> None:
        try:
            self._client.close()
        except redis.RedisError:
            logger.warning("redis close failed", exc_info=True)
