"""Metrics collection for the content store."""

import threading
from dataclasses import dataclass, field
from typing import ClassVar


_metrics_lock = threading.Lock()


@dataclass
class StoreMetrics:
    """Metrics for content store operations.

    Attributes:
        contents_inserted_total: Content rows created.
        duplicate_links_total: Inserts rejected by the link constraint.
        feedback_inserted_total: Feedback rows created.
        db_tx_duration_ms: Cumulative transaction duration in milliseconds.
        db_tx_count: Number of committed transactions.
        db_tx_failed_total: Number of rolled back transactions.
    """

    contents_inserted_total: int = 0
    duplicate_links_total: int = 0
    feedback_inserted_total: int = 0
    db_tx_duration_ms: float = 0.0
    db_tx_count: int = 0
    db_tx_failed_total: int = 0

    _instance: ClassVar["StoreMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "StoreMetrics":
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

    def record_content_inserted(self) -> None:
        """Record a new content row."""
        with _metrics_lock:
            self.contents_inserted_total += 1

    def record_duplicate_link(self) -> None:
        """Record an insert rejected as a duplicate link."""
        with _metrics_lock:
            self.duplicate_links_total += 1

    def record_feedback_inserted(self) -> None:
        """Record a new feedback row."""
        with _metrics_lock:
            self.feedback_inserted_total += 1

    def record_tx_duration(self, duration_ms: float) -> None:
        """Record transaction duration.

        Args:
            duration_ms: Duration in milliseconds.
        """
        with _metrics_lock:
            self.db_tx_duration_ms += duration_ms
            self.db_tx_count += 1

    def record_tx_failed(self) -> None:
        """Record a rolled back transaction."""
        with _metrics_lock:
            self.db_tx_failed_total += 1

    def to_dict(self) -> dict[str, float | int]:
        """Convert metrics to dictionary.

        Returns:
            Dictionary of metric name to value.
        """
        return {
            "contents_inserted_total": self.contents_inserted_total,
            "duplicate_links_total": self.duplicate_links_total,
            "feedback_inserted_total": self.feedback_inserted_total,
            "db_tx_duration_ms": self.db_tx_duration_ms,
            "db_tx_count": self.db_tx_count,
            "db_tx_avg_ms": round(self.avg_tx_duration_ms, 3),
            "db_tx_failed_total": self.db_tx_failed_total,
        }

    @property
    def avg_tx_duration_ms(self) -> float:
        """Calculate average transaction duration.

        Returns:
            Average duration in milliseconds.
        """
        if self.db_tx_count == 0:
            return 0.0
        return self.db_tx_duration_ms / self.db_tx_count


@dataclass
class TransactionContext:
    """Context for a single transaction with timing.

    Attributes:
        tx_id: Unique transaction identifier.
        start_time_ns: Start time in nanoseconds.
        operation: The operation being performed.
    """

    tx_id: str
    start_time_ns: int
    operation: str
    affected_rows: int = field(default=0)

    def add_affected_rows(self, rows: int) -> None:
        """Add to the affected row count.

        Args:
            rows: Number of rows affected.
        """
        self.affected_rows += rows
