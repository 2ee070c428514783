"""Metrics collection for recommendations."""

import threading
from dataclasses import dataclass
from typing import ClassVar


_metrics_lock = threading.Lock()


@dataclass
class RecommendMetrics:
    """Metrics for ranking and feedback.

    Attributes:
        requests_total: Recommendation requests served.
        candidates_total: Candidates scored across all requests.
        returned_total: Recommendations returned across all requests.
        personalized_total: Requests that had user feedback to apply.
        feedback_total: Feedback records accepted.
        feedback_rejected_total: Feedback submissions rejected by validation.
    """

    requests_total: int = 0
    candidates_total: int = 0
    returned_total: int = 0
    personalized_total: int = 0
    feedback_total: int = 0
    feedback_rejected_total: int = 0

    _instance: ClassVar["RecommendMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "RecommendMetrics":
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

    def record_request(
        self, candidates: int, returned: int, personalized: bool
    ) -> None:
        """Record a served recommendation request.

        Args:
            candidates: Number of candidates scored.
            returned: Number of recommendations returned.
            personalized: Whether source affinity was applied.
        """
        with _metrics_lock:
            self.requests_total += 1
            self.candidates_total += candidates
            self.returned_total += returned
            if personalized:
                self.personalized_total += 1

    def record_feedback(self, accepted: bool) -> None:
        """Record a feedback submission outcome."""
        with _metrics_lock:
            if accepted:
                self.feedback_total += 1
            else:
                self.feedback_rejected_total += 1

    def to_dict(self) -> dict[str, int]:
        """Convert metrics to dictionary."""
        return {
            "requests_total": self.requests_total,
            "candidates_total": self.candidates_total,
            "returned_total": self.returned_total,
            "personalized_total": self.personalized_total,
            "feedback_total": self.feedback_total,
            "feedback_rejected_total": self.feedback_rejected_total,
        }
