from __future__ import annotations

"""Transaction fraud scorer.

Each evaluation bumps four independent velocity counters for the identity
(hour, calendar day, 60 s rapid window, exact amount) and then applies the
rules in `fraud.risk_rules`. The counters are written on every call: scoring
is what builds the velocity history.

Fail-open: any store failure yields an unscored LOW assessment so an outage
never blocks a legitimate payment.
"""

from common.config import FraudConfig
from common.errors import StoreUnavailable
from common.logging_utils import get_logger
from common.models import RiskAssessment, TransactionAttempt
from counterstore.base import CounterStore

from fraud.risk_rules import RiskContext, compute_risk


logger = get_logger(__name__)

HOUR_SECONDS = 3600
DAY_SECONDS = 24 * 3600


def hourly_key(identity: str) -> str:
    return f"fraud:vel:hour:{identity}"


def daily_key(identity: str, day: str) -> str:
    return f"fraud:vel:day:{identity}:{day}"


def rapid_key(identity: str) -> str:
    return f"fraud:vel:rapid:{identity}"


def amount_key(identity: str, amount: str) -> str:
    return f"fraud:vel:amount:{identity}:{amount}"


class FraudScorer:
    def __init__(self, store: CounterStore, cfg: FraudConfig | None = None) -> None:
        self._store = store
        self._cfg = cfg or FraudConfig()

    @property
    def config(self) -> FraudConfig:
        return self._cfg

    def _bump_counters(self, attempt: TransactionAttempt) -> RiskContext:
        identity = attempt.identity
        day = attempt.now.date().isoformat()
        incr = self._store.incr_with_expiry

        return RiskContext(
            amount=attempt.amount,
            hour_utc=attempt.now.hour,
            hourly_count=incr(hourly_key(identity), HOUR_SECONDS),
            daily_count=incr(daily_key(identity, day), DAY_SECONDS),
            rapid_count=incr(rapid_key(identity), self._cfg.rapid_window_seconds),
            same_amount_count=incr(amount_key(identity, attempt.amount_key), HOUR_SECONDS),
        )

    def evaluate(self, attempt: TransactionAttempt) -> RiskAssessment:
        try:
            ctx = self._bump_counters(attempt)
        except StoreUnavailable:
            logger.warning(
                "fraud scoring skipped for identity=%s transaction_id=%s (store unavailable)",
                attempt.identity,
                attempt.transaction_id,
                exc_info=True,
            )
            return RiskAssessment.unscored()

        outcome = compute_risk(ctx, self._cfg)
        logger.debug(
            "scored transaction_id=%s score=%s level=%s flags=%s",
            attempt.transaction_id,
            outcome.score,
            outcome.level.value,
            sorted(f.value for f in outcome.flags),
        )
        return RiskAssessment(score=outcome.score, level=outcome.level, flags=outcome.flags)
