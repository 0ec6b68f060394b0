from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from common.errors import InvalidArgument
from common.models import RiskAssessment, RiskLevel, build_attempt, require_identity


NOON = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


def test_build_attempt_normalizes_timestamp_to_utc() -> None:
    plus_two = timezone(timedelta(hours=2))
    attempt = build_attempt(
        identity="u1",
        amount=1500,
        currency="EUR",
        transaction_id="t1",
        now=datetime(2026, 3, 2, 14, 0, tzinfo=plus_two),
    )
    assert attempt.now == NOON
    assert attempt.now.tzinfo == timezone.utc
    assert attempt.amount_key == "1500"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"identity": ""},
        {"identity": "   "},
        {"amount": 0},
        {"amount": -10},
        {"currency": "eur"},
        {"currency": "EURO"},
        {"transaction_id": ""},
        {"now": datetime(2026, 3, 2, 12, 0)},
    ],
)
def test_build_attempt_rejects_invalid_input(kwargs) -> None:
    base = {"identity": "u1", "amount": 100, "currency": "EUR", "transaction_id": "t1", "now": NOON}
    base.update(kwargs)
    with pytest.raises(InvalidArgument):
        build_attempt(**base)


def test_require_identity_keeps_identity_opaque() -> None:
    assert require_identity(" user@example.com ") == " user@example.com "
    with pytest.raises(InvalidArgument, match="non-empty"):
        require_identity("")


def test_risk_assessment_is_immutable() -> None:
    assessment = RiskAssessment.unscored()
    assert assessment.score == 0
    assert assessment.level is RiskLevel.LOW
    with pytest.raises(ValidationError):
        assessment.score = 50  # type: ignore[misc]
