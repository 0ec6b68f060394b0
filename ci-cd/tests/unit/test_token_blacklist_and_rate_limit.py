from __future__ import annotations

import pytest

from authguard.rate_limit import RateLimiter
from authguard.token_blacklist import TokenBlacklist, revoked_key
from common.config import RateLimitPolicy
from common.errors import InvalidArgument


def test_revoked_token_expires_with_ttl(store, clock) -> None:
    tokens = TokenBlacklist(store, default_ttl_seconds=900)
    tokens.revoke("eyJhbGciOi.payload.sig")
    assert tokens.is_revoked("eyJhbGciOi.payload.sig")
    assert not tokens.is_revoked("another-token")

    clock.advance(900)
    assert not tokens.is_revoked("eyJhbGciOi.payload.sig")


def test_tokens_are_stored_by_digest(store) -> None:
    TokenBlacklist(store).revoke("secret-token", ttl_seconds=60)
    key = revoked_key("secret-token")
    assert "secret-token" not in key
    assert store.ttl(key) == 60


def test_token_blacklist_rejects_bad_input(store) -> None:
    tokens = TokenBlacklist(store)
    with pytest.raises(InvalidArgument):
        tokens.revoke("")
    with pytest.raises(InvalidArgument):
        tokens.revoke("t", ttl_seconds=0)


def test_rate_limit_denies_after_max_and_recovers(store, clock) -> None:
    limiter = RateLimiter(store, {"auth": RateLimitPolicy(3, 60, "slow down")})

    decisions = [limiter.check("auth", "10.0.0.1") for _ in range(4)]
    assert [d.allowed for d in decisions] == [True, True, True, False]
    assert [d.remaining for d in decisions] == [2, 1, 0, 0]
    assert decisions[-1].message == "slow down"
    assert decisions[-1].headers()["Retry-After"] == "60"

    assert limiter.check("auth", "10.0.0.2").allowed

    clock.advance(60)
    assert limiter.check("auth", "10.0.0.1").allowed


def test_unknown_policy_is_rejected(store) -> None:
    limiter = RateLimiter(store, {"api": RateLimitPolicy(100, 900)})
    with pytest.raises(InvalidArgument, match="Unknown rate limit policy"):
        limiter.check("nope", "k")
