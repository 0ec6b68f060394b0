from __future__ import annotations

"""Brute-force guard for authentication.

Per identity:

    NORMAL --failures--> WARNING (>= warning_ratio * max_attempts, signal only)
           --failures--> BLOCKED (>= max_attempts)
           --block TTL expires--> NORMAL

A successful login resets the failure counter but never lifts an active block.

Fail-open: if the counter store is down or times out, `record_failure` logs and
returns and `is_blocked` answers False. An outage must not lock legitimate users
out; the cost is that brute-force protection is off while the store is down.
Changing this is a security posture decision, not a refactor.
"""

from common.config import BruteForceConfig
from common.errors import StoreUnavailable
from common.logging_utils import get_logger
from common.models import require_identity
from common.reporter import Reporter
from counterstore.base import CounterStore

from authguard.block_registry import BlockRegistry


logger = get_logger(__name__)


def failure_key(identity: str) -> str:
    return f"bf:fail:{identity}"


class BruteForceGuard:
    def __init__(
        self,
        store: CounterStore,
        reporter: Reporter,
        cfg: BruteForceConfig | None = None,
        *,
        blocks: BlockRegistry | None = None,
    ) -> None:
        self._cfg = cfg or BruteForceConfig()
        self._store = store
        self._reporter = reporter
        self._blocks = blocks or BlockRegistry(store, block_seconds=self._cfg.block_seconds)
        self._warning_at = self._cfg.max_attempts * self._cfg.warning_ratio

    @property
    def config(self) -> BruteForceConfig:
        return self._cfg

    def record_failure(self, identity: str) -> None:
        identity = require_identity(identity)
        try:
            if self._blocks.is_blocked(identity):
                self._reporter.warn("login.blocked_retry", {"identity": identity})
                return

            count = self._store.incr_with_expiry(failure_key(identity), self._cfg.window_seconds)
            if count >= self._cfg.max_attempts:
                record = self._blocks.block(identity, triggering_count=count)
                self._reporter.critical(
                    "login.blocked",
                    {
                        "identity": identity,
                        "failures": count,
                        "window_seconds": self._cfg.window_seconds,
                        "block_seconds": self._blocks.block_seconds,
                        "blocked_at": record.blocked_at.isoformat(),
                    },
                )
            elif count >= self._warning_at:
                self._reporter.warn(
                    "login.threshold_approaching",
                    {"identity": identity, "failures": count, "max_attempts": self._cfg.max_attempts},
                )
        except StoreUnavailable:
            logger.warning("record_failure skipped for identity=%s (store unavailable)", identity, exc_info=True)

    def is_blocked(self, identity: str) -> bool:
        identity = require_identity(identity)
        try:
            return self._blocks.is_blocked(identity)
        except StoreUnavailable:
            logger.warning("is_blocked failing open for identity=%s", identity, exc_info=True)
            return False

    def reset(self, identity: str) -> None:
        identity = require_identity(identity)
        try:
            self._store.delete(failure_key(identity))
        except StoreUnavailable:
            logger.warning("reset skipped for identity=%s (store unavailable)", identity, exc_info=True)

    def failure_count(self, identity: str) -> int:
        identity = require_identity(identity)
        try:
            raw = self._store.get(failure_key(identity))
        except StoreUnavailable:
            logger.warning("failure_count unavailable for identity=%s", identity, exc_info=True)
            return 0
        return int(raw) if raw else 0

    def block_remaining_seconds(self, identity: str) -> int:
        """Seconds until an active block lifts (0 when not blocked); for Retry-After."""

        identity = require_identity(identity)
        try:
            return self._blocks.remaining_seconds(identity)
        except StoreUnavailable:
            logger.warning("block_remaining_seconds failing open for identity=%s", identity, exc_info=True)
            return 0
