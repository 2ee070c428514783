"""Error types for fetch job orchestration."""

from feedwise.store.models import JobStatus


class SourceResolutionFailure(Exception):
    """Raised when the set of sources for a job cannot be determined."""

    def __init__(self, message: str, source_id: str | None = None) -> None:
        """Initialize the error.

        Args:
            message: Human-readable reason.
            source_id: Requested source, for single-source jobs.
        """
        self.source_id = source_id
        super().__init__(message)


class JobStateError(Exception):
    """Raised when an invalid job status transition is attempted."""

    def __init__(self, job_id: str, from_state: JobStatus, to_state: JobStatus) -> None:
        """Initialize the error.

        Args:
            job_id: Job identifier.
            from_state: The current status.
            to_state: The attempted target status.
        """
        self.job_id = job_id
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Invalid job state transition for '{job_id}': "
            f"{from_state.value} -> {to_state.value}"
        )
