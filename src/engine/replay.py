from __future__ import annotations

import argparse
import csv
import json
import time
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable

from common.config import load_engine_config
from common.errors import InvalidArgument
from common.logging_utils import get_logger
from counterstore.memory import InMemoryCounterStore
from engine.anomaly import AnomalyDetector, build_detector


logger = get_logger(__name__)

KINDS = {"login_failed", "login_ok", "transaction"}


@dataclass(frozen=True)
class ReplayEvent:
    kind: str
    identity: str
    amount: float | None = None
    currency: str | None = None
    transaction_id: str | None = None
    timestamp: datetime | None = None


def _parse_timestamp(value: str) -> datetime | None:
    value = value.strip()
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def parse_row(row: dict[str, str]) -> ReplayEvent:
    kind = (row.get("kind") or "").strip()
    if kind not in KINDS:
        raise ValueError(f"unknown event kind {kind!r}")
    identity = row.get("identity") or ""

    if kind != "transaction":
        return ReplayEvent(kind=kind, identity=identity)

    amount_text = (row.get("amount") or "").strip()
    if not amount_text:
        raise ValueError("transaction row without amount")
    return ReplayEvent(
        kind=kind,
        identity=identity,
        amount=float(amount_text),
        currency=(row.get("currency") or "").strip(),
        transaction_id=(row.get("transaction_id") or "").strip(),
        timestamp=_parse_timestamp(row.get("timestamp") or ""),
    )


def iter_events(input_path: str | Path, *, max_events: int | None = None) -> Iterable[tuple[int, ReplayEvent]]:
    """Yield (line_number, event); malformed rows are logged and skipped."""

    p = Path(input_path)
    yielded = 0
    with p.open("r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        for row in reader:
            try:
                event = parse_row(row)
            except ValueError as exc:
                logger.warning("skipping line %s: %s", reader.line_num, exc)
                continue
            yield reader.line_num, event
            yielded += 1
            if max_events is not None and yielded >= max_events:
                return


def apply_event(detector: AnomalyDetector, event: ReplayEvent) -> dict[str, Any]:
    if event.kind == "login_failed":
        detector.record_login_failure(event.identity)
        return {"blocked": detector.is_login_blocked(event.identity)}
    if event.kind == "login_ok":
        detector.reset_login_failures(event.identity)
        return {}

    assessment = detector.evaluate_transaction(
        event.identity,
        event.amount or 0,
        event.currency or "",
        event.transaction_id or "",
        now=event.timestamp,
    )
    return {"level": assessment.level.value, "score": assessment.score}


def replay_events(
    *,
    input_path: str | Path,
    detector: AnomalyDetector,
    max_events: int | None = None,
    dry_run: bool = False,
) -> dict[str, Any]:
    start = time.time()
    processed = 0
    rejected = 0
    levels: Counter[str] = Counter()
    blocked: set[str] = set()
    suspicious: set[str] = set()

    for line_no, event in iter_events(input_path, max_events=max_events):
        if dry_run:
            processed += 1
            continue
        try:
            outcome = apply_event(detector, event)
        except InvalidArgument as exc:
            rejected += 1
            logger.warning("line %s rejected: %s", line_no, exc)
            continue

        processed += 1
        if outcome.get("blocked"):
            blocked.add(event.identity)
        if "level" in outcome:
            levels[outcome["level"]] += 1
            if event.transaction_id and detector.is_transaction_suspicious(event.transaction_id):
                suspicious.add(event.transaction_id)

    elapsed = max(time.time() - start, 1e-6)
    return {
        "input": str(input_path),
        "processed": processed,
        "rejected": rejected,
        "blocked_identities": len(blocked),
        "assessments_by_level": dict(sorted(levels.items())),
        "suspicious_transactions": len(suspicious),
        "elapsed_sec": elapsed,
        "dry_run": dry_run,
    }


def main(argv: list[str] | None = None) -> None:
    ap = argparse.ArgumentParser(description="Replay login/transaction events through the detection engine")
    ap.add_argument(
        "--config",
        default=str(Path("config") / "dev.yaml"),
        help="Path to YAML config (defaults to config/dev.yaml)",
    )
    ap.add_argument("--input", required=True, help="CSV with kind,identity,amount,currency,transaction_id,timestamp")
    ap.add_argument("--max-events", type=int, default=None)
    ap.add_argument(
        "--use-configured-store",
        action="store_true",
        help="Write to the store from config instead of a throwaway in-memory store",
    )
    ap.add_argument("--dry-run", action="store_true", help="Parse/validate but do not evaluate")
    args = ap.parse_args(argv)

    cfg = load_engine_config(args.config if Path(args.config).exists() else None)
    store = None if args.use_configured_store else InMemoryCounterStore()
    detector = build_detector(cfg, store=store)

    metrics = replay_events(
        input_path=args.input,
        detector=detector,
        max_events=args.max_events,
        dry_run=args.dry_run,
    )
    logger.info("metrics %s", json.dumps(metrics, separators=(",", ":"), sort_keys=True))


if __name__ == "__main__":
    main()
