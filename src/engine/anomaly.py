"""
RemitGuard - Anomaly detection facade

The one object HTTP handlers talk to. Build it once at process start with
`build_detector` and share it; it holds no mutable state of its own, all of it
lives in the counter store.

Login handler:
    if detector.is_login_blocked(user_id): reject
    on bad credentials: detector.record_login_failure(user_id)
    on success:         detector.reset_login_failures(user_id)

Transaction handler:
    assessment = detector.evaluate_transaction(user_id, amount, "EUR", txn_id)
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from authguard.brute_force import BruteForceGuard
from authguard.rate_limit import RateLimitDecision, RateLimiter
from authguard.token_blacklist import TokenBlacklist
from common.config import EngineConfig
from common.errors import InvalidArgument
from common.logging_utils import get_logger
from common.models import RiskAssessment, RiskLevel, SuspiciousTransactionRecord, build_attempt
from common.reporter import LoggingReporter, Reporter, SafeReporter
from counterstore.base import CounterStore
from counterstore.factory import build_store
from fraud.scorer import FraudScorer
from fraud.suspicious_registry import SuspiciousTransactionRegistry


logger = get_logger(__name__)

LOGIN_FAILED = "LOGIN_FAILED"
LOGIN_SUCCEEDED = "LOGIN_SUCCEEDED"
TRANSACTION_CREATED = "TRANSACTION_CREATED"


class AnomalyDetector:
    def __init__(
        self,
        *,
        guard: BruteForceGuard,
        scorer: FraudScorer,
        suspicious: SuspiciousTransactionRegistry,
        tokens: TokenBlacklist,
        rate_limiter: RateLimiter,
        reporter: Reporter,
    ) -> None:
        self.guard = guard
        self.scorer = scorer
        self.suspicious = suspicious
        self.tokens = tokens
        self.rate_limiter = rate_limiter
        self._reporter = reporter

    # -- authentication -------------------------------------------------

    def record_login_failure(self, identity: str) -> None:
        self.guard.record_failure(identity)

    def is_login_blocked(self, identity: str) -> bool:
        return self.guard.is_blocked(identity)

    def reset_login_failures(self, identity: str) -> None:
        self.guard.reset(identity)

    # -- transactions ---------------------------------------------------

    def evaluate_transaction(
        self,
        identity: str,
        amount: float,
        currency: str,
        transaction_id: str,
        now: datetime | None = None,
    ) -> RiskAssessment:
        attempt = build_attempt(
            identity=identity,
            amount=amount,
            currency=currency,
            transaction_id=transaction_id,
            now=now,
        )
        assessment = self.scorer.evaluate(attempt)

        context = {
            "identity": attempt.identity,
            "transaction_id": attempt.transaction_id,
            "amount": attempt.amount,
            "currency": attempt.currency,
            "score": assessment.score,
            "flags": sorted(f.value for f in assessment.flags),
        }
        if assessment.level is RiskLevel.CRITICAL:
            self.suspicious.mark(attempt, assessment)
            self._reporter.critical("transaction.critical_risk", context)
        elif assessment.level is RiskLevel.HIGH:
            self._reporter.warn("transaction.high_risk", context)
        return assessment

    def is_transaction_suspicious(self, transaction_id: str) -> bool:
        if not transaction_id or not transaction_id.strip():
            raise InvalidArgument("transaction_id must be non-empty")
        return self.suspicious.is_suspicious(transaction_id)

    def get_suspicious_transaction(self, transaction_id: str) -> SuspiciousTransactionRecord | None:
        if not transaction_id or not transaction_id.strip():
            raise InvalidArgument("transaction_id must be non-empty")
        return self.suspicious.get(transaction_id)

    # -- tokens and request limits -------------------------------------

    def revoke_token(self, token: str, ttl_seconds: int | None = None) -> None:
        self.tokens.revoke(token, ttl_seconds)

    def is_token_revoked(self, token: str) -> bool:
        return self.tokens.is_revoked(token)

    def check_rate_limit(self, policy: str, key: str) -> RateLimitDecision:
        decision = self.rate_limiter.check(policy, key)
        if not decision.allowed:
            self._reporter.warn("rate_limit.exceeded", {"policy": policy, "key": key})
        return decision

    # -- generic entry point ---------------------------------------------

    def detect_anomalies(
        self,
        identity: str,
        action: str,
        metadata: dict[str, Any] | None = None,
    ) -> RiskAssessment | None:
        """Route a named security event to the matching check.

        `TRANSACTION_CREATED` needs `amount`, `currency` and `transaction_id` in
        `metadata` (and optionally `now`) and returns the assessment; login
        actions return None.
        """

        metadata = metadata or {}
        if action == LOGIN_FAILED:
            self.record_login_failure(identity)
            return None
        if action == LOGIN_SUCCEEDED:
            self.reset_login_failures(identity)
            return None
        if action == TRANSACTION_CREATED:
            missing = [k for k in ("amount", "currency", "transaction_id") if k not in metadata]
            if missing:
                raise InvalidArgument(f"TRANSACTION_CREATED metadata missing: {', '.join(missing)}")
            return self.evaluate_transaction(
                identity,
                metadata["amount"],
                metadata["currency"],
                metadata["transaction_id"],
                now=metadata.get("now"),
            )

        logger.info("security event %s for identity=%s has no detector", action, identity)
        return None


def build_detector(
    config: EngineConfig | None = None,
    *,
    store: CounterStore | None = None,
    reporter: Reporter | None = None,
) -> AnomalyDetector:
    """Wire every component against one shared store."""

    config = config or EngineConfig()
    store = store if store is not None else build_store(config.store)
    reporter = SafeReporter(reporter if reporter is not None else LoggingReporter())

    return AnomalyDetector(
        guard=BruteForceGuard(store, reporter, config.brute_force),
        scorer=FraudScorer(store, config.fraud),
        suspicious=SuspiciousTransactionRegistry(
            store, retention_seconds=config.fraud.suspicious_retention_seconds
        ),
        tokens=TokenBlacklist(store, default_ttl_seconds=config.token_revocation_seconds),
        rate_limiter=RateLimiter(store, config.rate_limits),
        reporter=reporter,
    )


__all__ = [
    "AnomalyDetector",
    "LOGIN_FAILED",
    "LOGIN_SUCCEEDED",
    "TRANSACTION_CREATED",
    "build_detector",
]
