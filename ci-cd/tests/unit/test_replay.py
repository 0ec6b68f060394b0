from __future__ import annotations

from pathlib import Path

from common.config import EngineConfig
from engine.anomaly import build_detector
from engine.replay import iter_events, replay_events


SAMPLE = Path(__file__).resolve().parents[3] / "data" / "sample" / "events.csv"


def test_replay_sample_events(store, reporter) -> None:
    detector = build_detector(EngineConfig(), store=store, reporter=reporter)
    metrics = replay_events(input_path=SAMPLE, detector=detector)

    assert metrics["processed"] == 14
    assert metrics["rejected"] == 0
    assert metrics["blocked_identities"] == 1
    assert metrics["assessments_by_level"] == {"CRITICAL": 1, "HIGH": 3, "LOW": 1, "MEDIUM": 1}
    assert metrics["suspicious_transactions"] == 1
    assert detector.is_transaction_suspicious("txn-0006")


def test_malformed_rows_are_skipped_and_invalid_ones_rejected(tmp_path: Path, store) -> None:
    path = tmp_path / "events.csv"
    path.write_text(
        "\n".join(
            [
                "kind,identity,amount,currency,transaction_id,timestamp",
                "teleport,u1,,,,",
                "transaction,u1,,EUR,t1,",
                "transaction,u1,100,eur,t2,2026-03-02T12:00:00Z",
                "transaction,u1,100,EUR,t3,2026-03-02T12:00:00Z",
            ]
        ),
        encoding="utf-8",
    )
    assert len(list(iter_events(path))) == 2

    metrics = replay_events(input_path=path, detector=build_detector(EngineConfig(), store=store))
    assert metrics["processed"] == 1
    assert metrics["rejected"] == 1


def test_dry_run_does_not_touch_the_store(store) -> None:
    metrics = replay_events(input_path=SAMPLE, detector=build_detector(EngineConfig(), store=store), dry_run=True)
    assert metrics["processed"] == 14
    assert len(store) == 0
