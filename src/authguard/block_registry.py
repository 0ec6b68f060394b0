from __future__ import annotations

from datetime import datetime, timezone

from common.models import BlockRecord
from counterstore.base import CounterStore


def block_key(identity: str) -> str:
    return f"bf:block:{identity}"


class BlockRegistry:
    """Temporarily blocked identities.

    A block is a single key holding a JSON BlockRecord with a fixed TTL; the key
    existing is the only definition of "blocked" and expiry is the only unblock
    path. Store errors propagate as StoreUnavailable; the guard owns the
    fail-open policy.
    """

    def __init__(self, store: CounterStore, *, block_seconds: int) -> None:
        self._store = store
        self._block_seconds = int(block_seconds)

    @property
    def block_seconds(self) -> int:
        return self._block_seconds

    def block(self, identity: str, *, triggering_count: int, reason: str = "too_many_failed_logins") -> BlockRecord:
        record = BlockRecord(
            identity=identity,
            blocked_at=datetime.now(timezone.utc),
            triggering_count=triggering_count,
            reason=reason,
        )
        self._store.set(block_key(identity), record.model_dump_json(), self._block_seconds)
        return record

    def is_blocked(self, identity: str) -> bool:
        return self._store.exists(block_key(identity))

    def get(self, identity: str) -> BlockRecord | None:
        raw = self._store.get(block_key(identity))
        if raw is None:
            return None
        return BlockRecord.model_validate_json(raw)

    def remaining_seconds(self, identity: str) -> int:
        return max(0, self._store.ttl(block_key(identity)))
