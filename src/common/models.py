from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from common.errors import InvalidArgument


class RiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class FraudFlag(str, Enum):
    VERY_HIGH_AMOUNT = "VERY_HIGH_AMOUNT"
    HIGH_AMOUNT = "HIGH_AMOUNT"
    SUSPICIOUS_ROUND_AMOUNT = "SUSPICIOUS_ROUND_AMOUNT"
    HIGH_FREQUENCY_HOUR = "HIGH_FREQUENCY_HOUR"
    HIGH_FREQUENCY_DAY = "HIGH_FREQUENCY_DAY"
    RAPID_TRANSACTIONS = "RAPID_TRANSACTIONS"
    UNUSUAL_HOURS = "UNUSUAL_HOURS"
    REPEATED_AMOUNT = "REPEATED_AMOUNT"


def _require_utc(value: datetime) -> datetime:
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        raise ValueError("timestamp must be timezone-aware (UTC)")
    return value.astimezone(timezone.utc)


def _non_blank(value: str) -> str:
    # Identities are opaque: reject blanks but never rewrite the key.
    if not value.strip():
        raise ValueError("must be non-empty")
    return value


class TransactionAttempt(BaseModel):
    """A transaction the caller is about to create, as seen by the scorer.

    `amount` is expressed in minor units (cents) of `currency`.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    identity: str = Field(..., min_length=1, description="Opaque identity the counters are scoped to")
    amount: float = Field(..., gt=0, allow_inf_nan=False, description="Amount in minor units, strictly positive")
    currency: str = Field(..., pattern=r"^[A-Z]{3}$", description="ISO 4217 currency code")
    transaction_id: str = Field(..., min_length=1)
    now: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("identity", "transaction_id")
    @classmethod
    def _ids_must_be_non_empty(cls, value: str) -> str:
        return _non_blank(value)

    @field_validator("now")
    @classmethod
    def _now_must_be_tz_aware_utc(cls, value: datetime) -> datetime:
        return _require_utc(value)

    @property
    def amount_key(self) -> str:
        """Stable text form of the amount used in counter keys (100.0 -> "100")."""

        if float(self.amount).is_integer():
            return str(int(self.amount))
        return repr(float(self.amount))


class RiskAssessment(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: int = Field(..., ge=0, le=100)
    level: RiskLevel
    flags: frozenset[FraudFlag] = frozenset()

    @classmethod
    def unscored(cls) -> "RiskAssessment":
        return cls(score=0, level=RiskLevel.LOW, flags=frozenset())


class BlockRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    identity: str
    blocked_at: datetime
    triggering_count: int = Field(..., ge=0)
    reason: str = "too_many_failed_logins"


class SuspiciousTransactionRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    transaction_id: str
    user_id: str
    amount: float
    currency: str
    score: int
    level: RiskLevel
    flags: list[FraudFlag] = Field(default_factory=list)
    detected_at: datetime


def require_identity(identity: str) -> str:
    """Validate an opaque identity string; raise InvalidArgument when blank."""

    if not isinstance(identity, str):
        raise InvalidArgument(f"identity must be a string, got {type(identity).__name__}")
    try:
        return _non_blank(identity)
    except ValueError as exc:
        raise InvalidArgument(f"identity {exc}") from exc


def build_attempt(
    *,
    identity: str,
    amount: float,
    currency: str,
    transaction_id: str,
    now: datetime | None = None,
) -> TransactionAttempt:
    """Build a TransactionAttempt, converting validation failures to InvalidArgument."""

    payload: dict[str, object] = {
        "identity": identity,
        "amount": amount,
        "currency": currency,
        "transaction_id": transaction_id,
    }
    if now is not None:
        payload["now"] = now
    try:
        return TransactionAttempt(**payload)
    except ValidationError as exc:
        raise InvalidArgument(str(exc)) from exc
