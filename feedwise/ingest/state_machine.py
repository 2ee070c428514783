"""Fetch job lifecycle state machine."""

from typing import ClassVar

import structlog

from feedwise.ingest.errors import JobStateError
from feedwise.store.models import JobStatus


logger = structlog.get_logger()


class JobStateMachine:
    """State machine for the fetch job lifecycle.

    State transitions:
        pending -> in-progress: Sources resolved, ingestion begins
        pending -> failed: Sources could not be resolved
        in-progress -> completed: All sources processed without errors
        in-progress -> completed_with_errors: At least one error recorded
        in-progress -> failed: The job could not continue
    """

    VALID_TRANSITIONS: ClassVar[dict[JobStatus, set[JobStatus]]] = {
        JobStatus.PENDING: {JobStatus.IN_PROGRESS, JobStatus.FAILED},
        JobStatus.IN_PROGRESS: {
            JobStatus.COMPLETED,
            JobStatus.COMPLETED_WITH_ERRORS,
            JobStatus.FAILED,
        },
        JobStatus.COMPLETED: set(),  # Terminal state
        JobStatus.COMPLETED_WITH_ERRORS: set(),  # Terminal state
        JobStatus.FAILED: set(),  # Terminal state
    }

    def __init__(
        self, job_id: str, initial_state: JobStatus = JobStatus.PENDING
    ) -> None:
        """Initialize the state machine.

        Args:
            job_id: Job identifier for logging.
            initial_state: Starting status.
        """
        self._job_id = job_id
        self._state = initial_state
        self._log = logger.bind(job_id=job_id, component="ingest")

    @property
    def state(self) -> JobStatus:
        """Get the current status."""
        return self._state

    def can_transition(self, to_state: JobStatus) -> bool:
        """Check if a transition to the given status is valid.

        Args:
            to_state: The target status.

        Returns:
            True if the transition is valid, False otherwise.
        """
        return to_state in self.VALID_TRANSITIONS.get(self._state, set())

    def transition(self, to_state: JobStatus) -> None:
        """Transition to a new status.

        Args:
            to_state: The target status.

        Raises:
            JobStateError: If the transition is invalid.
        """
        if not self.can_transition(to_state):
            self._log.error(
                "invariant_violation",
                error_type="illegal_state_transition",
                from_state=self._state.value,
                to_state=to_state.value,
            )
            raise JobStateError(self._job_id, self._state, to_state)

        old_state = self._state
        self._state = to_state
        self._log.info(
            "job_state_transition",
            from_state=old_state.value,
            to_state=to_state.value,
        )

    def is_terminal(self) -> bool:
        """Check if the current status is terminal."""
        return self._state.is_terminal
