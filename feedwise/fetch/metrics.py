"""Counters for feed document downloads."""

import threading
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, ClassVar

from feedwise.fetch.models import FetchResult


_metrics_lock = threading.Lock()


@dataclass
class FetchMetrics:
    """Process-wide download counters.

    Attributes:
        responses_total: Calls that received an HTTP response.
        responses_by_status: Response count per status code.
        failures_by_class: Failed calls per error class value.
        bytes_received_total: Body bytes read.
        calls_total: All fetch calls, answered or not.
        duration_ms_total: Wall time spent in fetch calls.
    """

    responses_total: int = 0
    responses_by_status: Counter[int] = field(default_factory=Counter)
    failures_by_class: Counter[str] = field(default_factory=Counter)
    bytes_received_total: int = 0
    calls_total: int = 0
    duration_ms_total: float = 0.0

    _instance: ClassVar["FetchMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "FetchMetrics":
        """Get singleton metrics instance."""
        with _metrics_lock:
            if cls._instance is None:
                cls._instance = cls()
            return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        with _metrics_lock:
            cls._instance = None

    def record_fetch(self, result: FetchResult, duration_ms: float) -> None:
        """Record one finished fetch call.

        Args:
            result: What the call returned.
            duration_ms: Time spent in the call.
        """
        with _metrics_lock:
            self.calls_total += 1
            self.duration_ms_total += duration_ms
            if result.status_code:
                self.responses_total += 1
                self.responses_by_status[result.status_code] += 1
                self.bytes_received_total += result.body_size
            if result.error is not None:
                self.failures_by_class[result.error.error_class.value] += 1

    @property
    def avg_duration_ms(self) -> float:
        """Mean wall time per call."""
        if self.calls_total == 0:
            return 0.0
        return self.duration_ms_total / self.calls_total

    def to_dict(self) -> dict[str, Any]:
        """Convert metrics to dictionary."""
        return {
            "calls_total": self.calls_total,
            "responses_total": self.responses_total,
            "responses_by_status": dict(self.responses_by_status),
            "failures_by_class": dict(self.failures_by_class),
            "bytes_received_total": self.bytes_received_total,
            "avg_duration_ms": round(self.avg_duration_ms, 3),
        }
