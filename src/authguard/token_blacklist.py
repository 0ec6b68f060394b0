from __future__ import annotations

import hashlib

from common.errors import InvalidArgument, StoreUnavailable
from common.logging_utils import get_logger
from counterstore.base import CounterStore


logger = get_logger(__name__)


def _digest(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def revoked_key(token: str) -> str:
    return f"token:revoked:{_digest(token)}"


class TokenBlacklist:
    """Revoked access tokens, bounded by TTL.

    Tokens are stored by SHA-256 digest so the store never holds a usable
    credential. An entry only needs to outlive the token itself, so the default
    TTL matches the access-token lifetime. Fail-open like the rest of the engine:
    a store outage makes `is_revoked` answer False.
    """

    def __init__(self, store: CounterStore, *, default_ttl_seconds: int = 15 * 60) -> None:
        self._store = store
        self._default_ttl = int(default_ttl_seconds)

    def revoke(self, token: str, ttl_seconds: int | None = None) -> None:
        if not token:
            raise InvalidArgument("token must be non-empty")
        ttl = self._default_ttl if ttl_seconds is None else int(ttl_seconds)
        if ttl <= 0:
            raise InvalidArgument("ttl_seconds must be positive")
        try:
            self._store.set(revoked_key(token), "1", ttl)
        except StoreUnavailable:
            logger.warning("token revocation not persisted token=%s...", token[:10], exc_info=True)

    def is_revoked(self, token: str) -> bool:
        if not token:
            raise InvalidArgument("token must be non-empty")
        try:
            return self._store.exists(revoked_key(token))
        except StoreUnavailable:
            logger.warning("is_revoked failing open token=%s...", token[:10], exc_info=True)
            return False
