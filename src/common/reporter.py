from __future__ import annotations

import json
from typing import Any, Protocol

from common.logging_utils import get_logger
from common.metrics import Metric, emit_metric


logger = get_logger(__name__)


class Reporter(Protocol):
    """Where security events go: audit log, alerting, error tracker.

    The engine only knows this interface; vendor SDKs live behind it.
    """

    def warn(self, event: str, context: dict[str, Any]) -> None:
        ...

    def critical(self, event: str, context: dict[str, Any]) -> None:
        ...


def _render(context: dict[str, Any]) -> str:
    return json.dumps(context, default=str, separators=(",", ":"), sort_keys=True)


class LoggingReporter:
    """Default reporter: structured log line plus a `security_events` metric."""

    def warn(self, event: str, context: dict[str, Any]) -> None:
        logger.warning("security_event %s %s", event, _render(context))
        emit_metric(Metric("security_events", 1, dimensions={"event": event, "severity": "warn"}))

    def critical(self, event: str, context: dict[str, Any]) -> None:
        logger.error("security_event %s %s", event, _render(context))
        emit_metric(Metric("security_events", 1, dimensions={"event": event, "severity": "critical"}))


class SafeReporter:
    """Wraps a reporter so a broken alerting sink cannot fail a login or payment."""

    def __init__(self, inner: Reporter) -> None:
        self._inner = inner

    def warn(self, event: str, context: dict[str, Any]) -> None:
        try:
            self._inner.warn(event, context)
        except Exception:  # noqa: BLE001
            logger.exception("reporter failed to deliver warn event %s", event)

    def critical(self, event: str, context: dict[str, Any]) -> None:
        try:
            self._inner.critical(event, context)
        except Exception:  # noqa: BLE001
            logger.exception("reporter failed to deliver critical event %s", event)
