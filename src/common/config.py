"""
RemitGuard - Engine Configuration
Thresholds, weights and windows for the brute-force guard and the fraud scorer,
plus the counter store connection settings.

Every section is a frozen dataclass: configuration is built once at process start
and shared read-only by all requests. Store settings default from environment
variables; everything else defaults to the reference behaviour and can be
overridden per environment from YAML (see `load_engine_config`).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

from common.config_loader import get_section, load_yaml


def _env(name: str, default: str = "") -> str:
    return os.environ.get(name, default).strip() or default


@dataclass(frozen=True)
class BruteForceConfig:
    max_attempts: int = 5
    window_seconds: int = 15 * 60
    block_seconds: int = 30 * 60
    warning_ratio: float = 0.8

    def __post_init__(self) -> None:
        if self.max_attempts <= 0:
            raise ValueError("brute_force.max_attempts must be positive")
        if self.window_seconds <= 0 or self.block_seconds <= 0:
            raise ValueError("brute_force windows must be positive")
        if not 0 < self.warning_ratio <= 1:
            raise ValueError("brute_force.warning_ratio must be in (0, 1]")


@dataclass(frozen=True)
class FraudConfig:
    """Signal thresholds (amounts in minor units) and their additive weights."""

    high_amount: float = 20_000
    very_high_amount: float = 50_000
    suspicious_round_amounts: frozenset[float] = frozenset({100_000, 200_000, 500_000, 1_000_000})

    max_per_hour: int = 10
    max_per_day: int = 50
    max_rapid: int = 3
    rapid_window_seconds: int = 60
    max_repeated_amount: int = 5

    business_hours_start: int = 8
    business_hours_end: int = 20

    weight_very_high_amount: int = 40
    weight_high_amount: int = 20
    weight_round_amount: int = 15
    weight_high_frequency_hour: int = 25
    weight_high_frequency_day: int = 30
    weight_rapid_transactions: int = 35
    weight_unusual_hours: int = 10
    weight_repeated_amount: int = 20

    critical_threshold: int = 70
    high_threshold: int = 50
    medium_threshold: int = 30

    suspicious_retention_seconds: int = 7 * 24 * 3600

    def __post_init__(self) -> None:
        if self.high_amount > self.very_high_amount:
            raise ValueError("fraud.high_amount must not exceed fraud.very_high_amount")
        if not 0 <= self.business_hours_start <= 24 or not 0 <= self.business_hours_end <= 24:
            raise ValueError("fraud business hours must be within 0..24")
        if not self.medium_threshold <= self.high_threshold <= self.critical_threshold:
            raise ValueError("fraud level thresholds must be ordered medium <= high <= critical")
        # YAML hands us a list; keep the set hashable and immutable.
        object.__setattr__(
            self,
            "suspicious_round_amounts",
            frozenset(float(a) for a in self.suspicious_round_amounts),
        )

    def as_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class RateLimitPolicy:
    max_requests: int
    window_seconds: int
    message: str = "Too many requests, try again later"


def _default_rate_limits() -> dict[str, RateLimitPolicy]:
    return {
        "api": RateLimitPolicy(100, 15 * 60, "Too many API requests, try again in 15 minutes"),
        "auth": RateLimitPolicy(5, 15 * 60, "Too many login attempts, try again in 15 minutes"),
        "registration": RateLimitPolicy(3, 3600, "Too many registration attempts, try again in 1 hour"),
        "forgot_password": RateLimitPolicy(3, 3600, "Too many reset attempts, try again in 1 hour"),
        "upload": RateLimitPolicy(10, 3600, "Too many uploads, try again in 1 hour"),
        "search": RateLimitPolicy(50, 5 * 60, "Too many searches, try again in 5 minutes"),
    }


@dataclass(frozen=True)
class StoreConfig:
    backend: str = field(default_factory=lambda: _env("REMITGUARD_STORE_BACKEND", "memory"))
    key_prefix: str = field(default_factory=lambda: _env("REMITGUARD_KEY_PREFIX", "remitguard"))
    redis_url: str = field(default_factory=lambda: _env("REDIS_URL", "redis://localhost:6379/0"))
    dynamodb_table: str = field(
        default_factory=lambda: _env("REMITGUARD_DYNAMODB_TABLE", "remitguard-counters")
    )
    region: str = field(default_factory=lambda: _env("AWS_REGION", "us-east-1"))
    profile: str | None = field(default_factory=lambda: os.environ.get("AWS_PROFILE") or None)
    timeout_seconds: float = 0.5

    def __post_init__(self) -> None:
        if self.backend not in {"memory", "redis", "dynamodb"}:
            raise ValueError(f"Unknown store backend: {self.backend!r}")
        if self.timeout_seconds <= 0:
            raise ValueError("store.timeout_seconds must be positive")


@dataclass(frozen=True)
class EngineConfig:
    """Top-level config aggregator; build one at startup and pass it everywhere."""

    brute_force: BruteForceConfig = field(default_factory=BruteForceConfig)
    fraud: FraudConfig = field(default_factory=FraudConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    rate_limits: dict[str, RateLimitPolicy] = field(default_factory=_default_rate_limits)
    token_revocation_seconds: int = 15 * 60


def _apply_overrides(base: Any, overrides: dict[str, Any], section: str) -> Any:
    known = {f.name for f in fields(base)}
    unknown = sorted(set(overrides) - known)
    if unknown:
        raise ValueError(f"Unknown keys in config section {section!r}: {', '.join(unknown)}")
    return replace(base, **overrides)


def engine_config_from_dict(cfg: dict[str, Any]) -> EngineConfig:
    defaults = EngineConfig()

    rate_limits = dict(defaults.rate_limits)
    for name, raw in get_section(cfg, "rate_limits").items():
        if not isinstance(raw, dict):
            raise ValueError(f"rate_limits.{name} must be a mapping")
        rate_limits[str(name)] = RateLimitPolicy(
            max_requests=int(raw["max_requests"]),
            window_seconds=int(raw["window_seconds"]),
            message=str(raw.get("message") or RateLimitPolicy.message),
        )

    return EngineConfig(
        brute_force=_apply_overrides(defaults.brute_force, get_section(cfg, "brute_force"), "brute_force"),
        fraud=_apply_overrides(defaults.fraud, get_section(cfg, "fraud"), "fraud"),
        store=_apply_overrides(defaults.store, get_section(cfg, "store"), "store"),
        rate_limits=rate_limits,
        token_revocation_seconds=int(
            cfg.get("token_revocation_seconds", defaults.token_revocation_seconds)
        ),
    )


def load_engine_config(path: str | Path | None = None) -> EngineConfig:
    """Load config from YAML; `None` returns the defaults."""

    if path is None:
        return EngineConfig()
    return engine_config_from_dict(load_yaml(path))


__all__ = [
    "BruteForceConfig",
    "EngineConfig",
    "FraudConfig",
    "RateLimitPolicy",
    "StoreConfig",
    "engine_config_from_dict",
    "load_engine_config",
]
