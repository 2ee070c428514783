"""Metrics collection for fetch job orchestration."""

from collections import Counter
from dataclasses import dataclass, field
from threading import Lock


_metrics_instance: "IngestMetrics | None" = None
_metrics_lock: Lock = Lock()


@dataclass
class IngestMetrics:
    """Thread-safe metrics for fetch jobs.

    Use get_instance() for singleton access.
    """

    _lock: Lock = field(default_factory=Lock, repr=False, compare=False)

    jobs_by_status: Counter[str] = field(default_factory=Counter)
    items_skipped_by_reason: Counter[str] = field(default_factory=Counter)
    source_failures: int = 0
    items_processed_total: int = 0
    jobs_created_total: int = 0

    @classmethod
    def get_instance(cls) -> "IngestMetrics":
        """Get the singleton instance (thread-safe).

        Returns:
            The shared IngestMetrics instance.
        """
        global _metrics_instance  # noqa: PLW0603
        if _metrics_instance is None:
            with _metrics_lock:
                if _metrics_instance is None:
                    _metrics_instance = cls()
        return _metrics_instance

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton instance (for testing)."""
        global _metrics_instance  # noqa: PLW0603
        with _metrics_lock:
            _metrics_instance = None

    def record_job_created(self) -> None:
        """Record a new job."""
        with self._lock:
            self.jobs_created_total += 1

    def record_job_finished(self, status: str, items_processed: int) -> None:
        """Record a job reaching a terminal status.

        Args:
            status: Terminal status value.
            items_processed: Items stored by the job.
        """
        with self._lock:
            self.jobs_by_status[status] += 1
            self.items_processed_total += items_processed

    def record_skip(self, reason: str) -> None:
        """Record a candidate that was not stored.

        Args:
            reason: Skip reason (too_old, duplicate, undated).
        """
        with self._lock:
            self.items_skipped_by_reason[reason] += 1

    def record_source_failure(self) -> None:
        """Record a source whose feed could not be fetched."""
        with self._lock:
            self.source_failures += 1

    def to_dict(self) -> dict[str, int | dict[str, int]]:
        """Convert metrics to dictionary."""
        with self._lock:
            return {
                "jobs_created_total": self.jobs_created_total,
                "jobs_by_status": dict(self.jobs_by_status),
                "items_processed_total": self.items_processed_total,
                "items_skipped_by_reason": dict(self.items_skipped_by_reason),
                "source_failures": self.source_failures,
            }
