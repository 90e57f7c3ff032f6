"""Fire-and-forget telemetry for API invocations.

Sinks receive one ``TelemetryEvent`` per invocation. Emitting never blocks
on or fails because of the sink: errors raised by a sink are logged and
dropped.
"""

import logging
import threading
from abc import ABC, abstractmethod
from collections import defaultdict, deque
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

logger = logging.getLogger(__name__)

OUTCOME_SUCCESS = "success"


@dataclass(frozen=True)
class TelemetryEvent:
    """Outcome of a single invocation."""

    operation: str
    method: str
    path: str
    duration: float
    outcome: str
    status_code: int | None = None
    attempts: int = 1
    rate_limit_waited: float = 0.0
    correlation_id: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def succeeded(self) -> bool:
        return self.outcome == OUTCOME_SUCCESS

    def to_dict(self) -> dict[str, Any]:
        return {
            "operation": self.operation,
            "method": self.method,
            "path": self.path,
            "duration": self.duration,
            "outcome": self.outcome,
            "status_code": self.status_code,
            "attempts": self.attempts,
            "rate_limit_waited": self.rate_limit_waited,
            "correlation_id": self.correlation_id,
            "timestamp": self.timestamp.isoformat(),
        }


class TelemetrySink(ABC):
    """Receiver of telemetry events."""

    @abstractmethod
    def record(self, event: TelemetryEvent) -> None:
        """Accept an event. Must return quickly."""
        pass


class NullTelemetrySink(TelemetrySink):
    """Sink used when telemetry is opted out."""

    def record(self, event: TelemetryEvent) -> None:
        pass


class LoggingTelemetrySink(TelemetrySink):
    """Writes each event to a logger."""

    def __init__(self, level: int = logging.INFO, name: str = "ghrest.telemetry"):
        self.level = level
        self._logger = logging.getLogger(name)

    def record(self, event: TelemetryEvent) -> None:
        self._logger.log(
            self.level,
            f"{event.operation} {event.outcome} status={event.status_code} "
            f"attempts={event.attempts} duration={event.duration:.3f}s",
        )


class MetricsTelemetrySink(TelemetrySink):
    """In-memory counters and recent events, safe to share between threads."""

    def __init__(self, max_events: int = 1000):
        self._lock = threading.Lock()
        self.events: deque[TelemetryEvent] = deque(maxlen=max_events)
        self.counters: dict[str, int] = defaultdict(int)
        # Per operation: invocation count and total duration
        self.duration_counts: dict[str, int] = defaultdict(int)
        self.duration_totals: dict[str, float] = defaultdict(float)

    def record(self, event: TelemetryEvent) -> None:
        with self._lock:
            self.events.append(event)
            self.counters["invocations_total"] += 1
            self.counters[f"outcome.{event.outcome}"] += 1
            self.counters["attempts_total"] += event.attempts
            if event.rate_limit_waited:
                self.counters["rate_limit_waits_total"] += 1
            self.duration_counts[event.operation] += 1
            self.duration_totals[event.operation] += event.duration

    def get_summary(self) -> dict[str, Any]:
        """Aggregate view of everything recorded so far."""
        with self._lock:
            total = self.counters["invocations_total"]
            successes = self.counters[f"outcome.{OUTCOME_SUCCESS}"]
            return {
                "invocations": total,
                "success_rate": (successes / total * 100) if total else 0.0,
                "counters": dict(self.counters),
                "average_duration": {
                    operation: self.duration_totals[operation] / count
                    for operation, count in self.duration_counts.items()
                    if count
                },
            }

    def reset(self) -> None:
        with self._lock:
            self.events.clear()
            self.counters.clear()
            self.duration_counts.clear()
            self.duration_totals.clear()


def emit_event(sink: TelemetrySink | None, event: TelemetryEvent) -> None:
    """Hand an event to a sink without letting the sink affect the caller."""
    if sink is None:
        return
    try:
        sink.record(event)
    except Exception as e:
        logger.debug(f"Telemetry sink {type(sink).__name__} failed: {e}")
