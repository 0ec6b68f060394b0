from __future__ import annotations

from counterstore.base import TTL_MISSING, TTL_PERSISTENT, PrefixedStore
from counterstore.memory import InMemoryCounterStore


def test_incr_with_expiry_counts_and_expires(store, clock) -> None:
    assert store.incr_with_expiry("k", 60) == 1
    assert store.incr_with_expiry("k", 60) == 2
    assert store.get("k") == "2"

    clock.advance(61)
    assert store.get("k") is None
    assert store.incr_with_expiry("k", 60) == 1


def test_later_increments_do_not_extend_the_window(store, clock) -> None:
    store.incr_with_expiry("k", 60)
    clock.advance(50)
    store.incr_with_expiry("k", 60)
    assert store.ttl("k") == 10

    clock.advance(10)
    assert not store.exists("k")


def test_set_get_delete_and_ttl_sentinels(store, clock) -> None:
    assert store.ttl("missing") == TTL_MISSING

    store.set("persistent", "v")
    assert store.ttl("persistent") == TTL_PERSISTENT

    store.set("temp", "x", 30)
    assert store.get("temp") == "x"
    assert store.ttl("temp") == 30

    store.delete("temp")
    assert store.get("temp") is None
    store.delete("temp")  # deleting a missing key is a no-op


def test_expired_entries_are_swept(clock) -> None:
    store = InMemoryCounterStore(clock=clock, sweep_every=2)
    store.set("a", "1", 5)
    store.set("b", "1", 5)
    clock.advance(10)
    store.set("c", "1", 5)
    store.set("d", "1", 5)
    assert len(store._data) == 2


def test_prefixed_store_namespaces_keys(store) -> None:
    prefixed = PrefixedStore(store, "dev")
    prefixed.incr_with_expiry("counter", 60)
    assert store.get("dev:counter") == "1"
    assert prefixed.exists("counter")
    assert not store.exists("counter")
