from __future__ import annotations

import boto3
import pytest
from moto import mock_aws

from authguard.brute_force import BruteForceGuard
from common.config import BruteForceConfig
from common.errors import StoreUnavailable
from counterstore.base import TTL_MISSING, TTL_PERSISTENT
from counterstore.dynamodb_store import DynamoCounterStore, ensure_table


class _Clock:
    def __init__(self) -> None:
        self.now = 1_700_000_000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def dynamo(monkeypatch):
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
    with mock_aws():
        resource = boto3.resource("dynamodb", region_name="us-east-1")
        table = ensure_table(resource, "remitguard-test")
        clock = _Clock()
        yield DynamoCounterStore(table, clock=clock), clock


def test_incr_with_expiry_counts_within_window(dynamo) -> None:
    store, clock = dynamo
    assert store.incr_with_expiry("fail:u1", 60) == 1
    clock.now += 30
    assert store.incr_with_expiry("fail:u1", 60) == 2
    assert store.get("fail:u1") == "2"
    assert store.ttl("fail:u1") == 30


def test_expired_counter_restarts_at_one(dynamo) -> None:
    store, clock = dynamo
    store.incr_with_expiry("k", 60)
    store.incr_with_expiry("k", 60)
    clock.now += 61

    assert store.get("k") is None
    assert not store.exists("k")
    assert store.incr_with_expiry("k", 60) == 1
    assert store.ttl("k") == 60


def test_set_get_delete(dynamo) -> None:
    store, clock = dynamo
    store.set("block:u1", '{"x":1}', 1800)
    assert store.get("block:u1") == '{"x":1}'
    assert store.exists("block:u1")

    store.set("forever", "1")
    assert store.ttl("forever") == TTL_PERSISTENT

    store.delete("block:u1")
    assert store.ttl("block:u1") == TTL_MISSING


def test_ensure_table_is_idempotent(dynamo) -> None:
    resource = boto3.resource("dynamodb", region_name="us-east-1")
    table = ensure_table(resource, "remitguard-test")
    assert table.name == "remitguard-test"


def test_missing_table_surfaces_as_store_unavailable(dynamo) -> None:
    resource = boto3.resource("dynamodb", region_name="us-east-1")
    store = DynamoCounterStore(resource.Table("does-not-exist"))
    with pytest.raises(StoreUnavailable):
        store.incr_with_expiry("k", 60)
    with pytest.raises(StoreUnavailable):
        store.exists("k")


def test_brute_force_guard_on_dynamodb(dynamo, reporter) -> None:
    store, clock = dynamo
    guard = BruteForceGuard(store, reporter, BruteForceConfig(max_attempts=3))
    for _ in range(3):
        guard.record_failure("u-dyn")
    assert guard.is_blocked("u-dyn") is True

    clock.now += 1800
    assert guard.is_blocked("u-dyn") is False
