from __future__ import annotations

from pathlib import Path

import pytest

from common.config import (
    EngineConfig,
    FraudConfig,
    StoreConfig,
    engine_config_from_dict,
    load_engine_config,
)
from counterstore.base import PrefixedStore
from counterstore.factory import build_store
from counterstore.memory import InMemoryCounterStore


def test_defaults_match_reference_behaviour() -> None:
    cfg = EngineConfig()
    assert cfg.brute_force.max_attempts == 5
    assert cfg.brute_force.window_seconds == 900
    assert cfg.brute_force.block_seconds == 1800
    assert cfg.fraud.max_rapid == 3
    assert cfg.fraud.critical_threshold == 70
    assert cfg.rate_limits["auth"].max_requests == 5


def test_yaml_overrides(tmp_path: Path) -> None:
    path = tmp_path / "engine.yaml"
    path.write_text(
        "\n".join(
            [
                "brute_force:",
                "  max_attempts: 3",
                "fraud:",
                "  suspicious_round_amounts: [1000, 2000]",
                "  max_rapid: 5",
                "rate_limits:",
                "  search:",
                "    max_requests: 7",
                "    window_seconds: 30",
                "store:",
                "  backend: memory",
                "  key_prefix: test",
            ]
        ),
        encoding="utf-8",
    )
    cfg = load_engine_config(path)
    assert cfg.brute_force.max_attempts == 3
    assert cfg.brute_force.block_seconds == 1800
    assert cfg.fraud.max_rapid == 5
    assert 1000 in cfg.fraud.suspicious_round_amounts
    assert isinstance(cfg.fraud.suspicious_round_amounts, frozenset)
    assert cfg.rate_limits["search"].max_requests == 7
    assert cfg.rate_limits["api"].max_requests == 100
    assert cfg.store.key_prefix == "test"


def test_repo_dev_config_loads() -> None:
    path = Path(__file__).resolve().parents[3] / "config" / "dev.yaml"
    cfg = load_engine_config(path)
    assert cfg.store.backend == "memory"
    assert cfg.fraud.very_high_amount == 50_000


def test_unknown_keys_are_rejected() -> None:
    with pytest.raises(ValueError, match="max_attempt"):
        engine_config_from_dict({"brute_force": {"max_attempt": 3}})


def test_invalid_values_are_rejected() -> None:
    with pytest.raises(ValueError):
        FraudConfig(high_amount=60_000, very_high_amount=50_000)
    with pytest.raises(ValueError):
        engine_config_from_dict({"store": {"backend": "memcached"}})


def test_build_store_applies_key_prefix() -> None:
    store = build_store(StoreConfig(backend="memory", key_prefix="tenant-a"))
    assert isinstance(store, PrefixedStore)

    store.set("k", "v")
    assert store.get("k") == "v"


def test_build_store_without_prefix_returns_backend() -> None:
    store = build_store(StoreConfig(backend="memory", key_prefix=""))
    assert isinstance(store, InMemoryCounterStore)
