from __future__ import annotations

from dataclasses import dataclass

from common.config import RateLimitPolicy
from common.errors import InvalidArgument, StoreUnavailable
from common.logging_utils import get_logger
from counterstore.base import CounterStore


logger = get_logger(__name__)


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_in_seconds: int
    message: str | None = None

    def headers(self) -> dict[str, str]:
        """The X-RateLimit-* / Retry-After headers an HTTP layer would attach."""

        out = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_in_seconds),
        }
        if not self.allowed:
            out["Retry-After"] = str(self.reset_in_seconds)
        return out


def rate_limit_key(policy: str, key: str) -> str:
    return f"rl:{policy}:{key}"


class RateLimiter:
    """Fixed-window request limiter over named policies (auth, api, search, ...).

    The first request of a window creates the counter with the policy window as
    TTL; request `max_requests + 1` inside that window is denied. Store failures
    allow the request.
    """

    def __init__(self, store: CounterStore, policies: dict[str, RateLimitPolicy]) -> None:
        self._store = store
        self._policies = dict(policies)

    @property
    def policies(self) -> dict[str, RateLimitPolicy]:
        return dict(self._policies)

    def check(self, policy: str, key: str) -> RateLimitDecision:
        cfg = self._policies.get(policy)
        if cfg is None:
            raise InvalidArgument(f"Unknown rate limit policy: {policy!r}")
        if not key or not key.strip():
            raise InvalidArgument("rate limit key must be non-empty")

        store_key = rate_limit_key(policy, key)
        try:
            count = self._store.incr_with_expiry(store_key, cfg.window_seconds)
            ttl = self._store.ttl(store_key)
        except StoreUnavailable:
            logger.warning("rate limit %s failing open for key=%s", policy, key, exc_info=True)
            return RateLimitDecision(
                allowed=True,
                limit=cfg.max_requests,
                remaining=cfg.max_requests,
                reset_in_seconds=cfg.window_seconds,
            )

        reset_in = ttl if ttl >= 0 else cfg.window_seconds
        if count > cfg.max_requests:
            return RateLimitDecision(
                allowed=False,
                limit=cfg.max_requests,
                remaining=0,
                reset_in_seconds=reset_in,
                message=cfg.message,
            )
        return RateLimitDecision(
            allowed=True,
            limit=cfg.max_requests,
            remaining=cfg.max_requests - count,
            reset_in_seconds=reset_in,
        )
