from __future__ import annotations

import os
from typing import Any

import pytest

os.environ.setdefault("REMITGUARD_LOG_FILE", "0")

from common.errors import StoreUnavailable  # noqa: E402
from counterstore.base import CounterStore  # noqa: E402
from counterstore.memory import InMemoryCounterStore  # noqa: E402


class ManualClock:
    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingReporter:
    def __init__(self) -> None:
        self.events: list[tuple[str, str, dict[str, Any]]] = []

    def warn(self, event: str, context: dict[str, Any]) -> None:
        self.events.append(("warn", event, dict(context)))

    def critical(self, event: str, context: dict[str, Any]) -> None:
        self.events.append(("critical", event, dict(context)))

    def names(self) -> list[str]:
        return [name for _, name, _ in self.events]


class FailingStore(CounterStore):
    """Every call fails the way a timed-out remote store would."""

    def __init__(self) -> None:
        self.calls = 0

    def _fail(self, operation: str, key: str) -> None:
        self.calls += 1
        raise StoreUnavailable(operation, key, TimeoutError("timed out"))

    def incr_with_expiry(self, key: str, ttl_seconds: int) -> int:
        self._fail("incr_with_expiry", key)
        return 0

    def get(self, key: str) -> str | None:
        self._fail("get", key)
        return None

    def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        self._fail("set", key)

    def delete(self, key: str) -> None:
        self._fail("delete", key)

    def exists(self, key: str) -> bool:
        self._fail("exists", key)
        return False

    def ttl(self, key: str) -> int:
        self._fail("ttl", key)
        return 0


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def store(clock: ManualClock) -> InMemoryCounterStore:
    return InMemoryCounterStore(clock=clock)


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest.fixture
def failing_store() -> FailingStore:
    return FailingStore()
