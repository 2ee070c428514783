"""Background execution of fetch jobs."""

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass

import structlog

from feedwise.ingest.orchestrator import FetchJobOrchestrator
from feedwise.observability.logging import bind_job_context, clear_job_context
from feedwise.store.models import FetchJob


logger = structlog.get_logger()


@dataclass(frozen=True)
class JobHandle:
    """Handle to a job running in the background.

    Attributes:
        job_id: Identifier of the job.
        future: Resolves to the job in its terminal status.
        cancel_event: Set to ask the job to stop early.
    """

    job_id: str
    future: Future[FetchJob]
    cancel_event: threading.Event

    @property
    def done(self) -> bool:
        """Whether the worker has finished."""
        return self.future.done()

    def wait(self, timeout: float | None = None) -> FetchJob:
        """Block until the job finishes.

        Args:
            timeout: Seconds to wait, or None to wait indefinitely.

        Returns:
            The job in its terminal status.

        Raises:
            TimeoutError: If the job does not finish in time.
        """
        return self.future.result(timeout=timeout)

    def cancel(self) -> None:
        """Request cancellation at the next source or item boundary."""
        self.cancel_event.set()


class JobSupervisor:
    """Owns the worker pool that runs fetch jobs.

    Creating a job returns immediately; the job runs on a worker thread
    and its progress is observed through the store or the returned handle.
    """

    def __init__(
        self, orchestrator: FetchJobOrchestrator, max_workers: int = 4
    ) -> None:
        """Initialize the supervisor.

        Args:
            orchestrator: Orchestrator that creates and runs jobs.
            max_workers: Maximum number of jobs running at once.
        """
        self._orchestrator = orchestrator
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="fetch-job"
        )
        self._handles: dict[str, JobHandle] = {}
        self._lock = threading.Lock()
        self._log = logger.bind(component="ingest")

    def submit(
        self, source_id: str | None = None, days: int | None = None
    ) -> JobHandle:
        """Create a job and start it in the background.

        Args:
            source_id: Single source to ingest, or None for all sources.
            days: Lookback window in days.

        Returns:
            Handle to the running job.
        """
        job = self._orchestrator.create_job(source_id=source_id, days=days)
        cancel_event = threading.Event()
        future = self._executor.submit(self._run, job.id, cancel_event)
        handle = JobHandle(job_id=job.id, future=future, cancel_event=cancel_event)

        with self._lock:
            self._handles[job.id] = handle
        future.add_done_callback(lambda _: self._forget(job.id))

        self._log.info("job_submitted", job_id=job.id)
        return handle

    def get_handle(self, job_id: str) -> JobHandle | None:
        """Get the handle of a job that is still running."""
        with self._lock:
            return self._handles.get(job_id)

    @property
    def active_job_ids(self) -> list[str]:
        """IDs of jobs that have not finished yet."""
        with self._lock:
            return sorted(self._handles)

    def shutdown(self, wait: bool = True, cancel_running: bool = False) -> None:
        """Stop accepting jobs and release the worker pool.

        Args:
            wait: Block until running jobs finish.
            cancel_running: Ask running jobs to stop early first.
        """
        if cancel_running:
            with self._lock:
                handles = list(self._handles.values())
            for handle in handles:
                handle.cancel()
        self._executor.shutdown(wait=wait)
        self._log.info("job_supervisor_shutdown", cancelled=cancel_running)

    def __enter__(self) -> "JobSupervisor":
        """Context manager entry."""
        return self

    def __exit__(
        self,
        exc_type: type | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Context manager exit."""
        self.shutdown(wait=True)

    def _forget(self, job_id: str) -> None:
        with self._lock:
            self._handles.pop(job_id, None)

    def _run(self, job_id: str, cancel_event: threading.Event) -> FetchJob:
        """Worker entry point; never leaves a job non-terminal."""
        bind_job_context(job_id)
        try:
            return self._orchestrator.run_job(job_id, cancel_event=cancel_event)
        except Exception as e:
            self._log.exception("job_crashed", job_id=job_id)
            self._orchestrator.fail_job(job_id, f"Job failed unexpectedly: {e}")
            raise
        finally:
            clear_job_context()
