from __future__ import annotations

from datetime import datetime, timezone

from pydantic import ValidationError

from common.errors import StoreUnavailable
from common.logging_utils import get_logger
from common.models import RiskAssessment, SuspiciousTransactionRecord, TransactionAttempt
from counterstore.base import CounterStore


logger = get_logger(__name__)

DEFAULT_RETENTION_SECONDS = 7 * 24 * 3600


def suspicious_key(transaction_id: str) -> str:
    return f"fraud:suspicious:{transaction_id}"


class SuspiciousTransactionRegistry:
    """Transactions that reached CRITICAL, kept for review with long retention."""

    def __init__(self, store: CounterStore, *, retention_seconds: int = DEFAULT_RETENTION_SECONDS) -> None:
        self._store = store
        self._retention = int(retention_seconds)

    def mark(self, attempt: TransactionAttempt, assessment: RiskAssessment) -> SuspiciousTransactionRecord:
        """Upsert the record for `attempt.transaction_id`; repeated marks overwrite it."""

        record = SuspiciousTransactionRecord(
            transaction_id=attempt.transaction_id,
            user_id=attempt.identity,
            amount=attempt.amount,
            currency=attempt.currency,
            score=assessment.score,
            level=assessment.level,
            flags=sorted(assessment.flags, key=lambda f: f.value),
            detected_at=datetime.now(timezone.utc),
        )
        try:
            self._store.set(suspicious_key(attempt.transaction_id), record.model_dump_json(), self._retention)
        except StoreUnavailable:
            logger.warning(
                "suspicious transaction not persisted transaction_id=%s", attempt.transaction_id, exc_info=True
            )
        return record

    def is_suspicious(self, transaction_id: str) -> bool:
        try:
            return self._store.exists(suspicious_key(transaction_id))
        except StoreUnavailable:
            logger.warning("is_suspicious failing open transaction_id=%s", transaction_id, exc_info=True)
            return False

    def get(self, transaction_id: str) -> SuspiciousTransactionRecord | None:
        try:
            raw = self._store.get(suspicious_key(transaction_id))
        except StoreUnavailable:
            logger.warning("suspicious lookup failed transaction_id=%s", transaction_id, exc_info=True)
            return None
        if raw is None:
            return None
        try:
            return SuspiciousTransactionRecord.model_validate_json(raw)
        except ValidationError:
            logger.error("corrupt suspicious record transaction_id=%s", transaction_id, exc_info=True)
            return None
