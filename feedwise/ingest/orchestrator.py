"""Fetch job orchestration.

A fetch job pulls every in-scope source's feed, filters entries by the
lookback window, drops links that are already stored, and persists the
rest. Per-source and per-item failures are recorded on the job without
stopping it.
"""

import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta

import structlog
from pydantic import ValidationError

from feedwise.data_model.base import Clock, utc_now
from feedwise.feeds.errors import ErrorRecord, FetchFailure
from feedwise.feeds.fetcher import FeedFetcher
from feedwise.feeds.models import CandidateItem
from feedwise.ingest.dedup import DedupFilter
from feedwise.ingest.errors import JobStateError, SourceResolutionFailure
from feedwise.ingest.metrics import IngestMetrics
from feedwise.ingest.state_machine import JobStateMachine
from feedwise.settings.app import UndatedPolicy
from feedwise.store.errors import DuplicateLinkError, NotFoundError, StoreError
from feedwise.store.models import ContentItem, FetchJob, JobStatus, Source
from feedwise.store.store import ContentStore


logger = structlog.get_logger()

DEFAULT_LOOKBACK_DAYS = 7
CANCELLED_MESSAGE = "job cancelled"


@dataclass
class _JobRun:
    """Mutable bookkeeping for one execution of a job."""

    job: FetchJob
    now: datetime
    cutoff: datetime
    dedup: DedupFilter
    cancel_event: threading.Event
    items_processed: int = 0
    errors: list[str] = field(default_factory=list)
    cancelled: bool = False

    def check_cancelled(self) -> bool:
        if self.cancel_event.is_set():
            self.cancelled = True
        return self.cancelled


class FetchJobOrchestrator:
    """Creates and runs fetch jobs against a content store."""

    def __init__(
        self,
        store: ContentStore,
        feed_fetcher: FeedFetcher,
        undated_policy: UndatedPolicy = UndatedPolicy.SKIP,
        default_days: int = DEFAULT_LOOKBACK_DAYS,
        clock: Clock = utc_now,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            store: Connected content store.
            feed_fetcher: Feed fetcher used for every source.
            undated_policy: Handling of entries without a timestamp.
            default_days: Lookback window used when a job asks for none.
            clock: Source of the current time.
        """
        self._store = store
        self._fetcher = feed_fetcher
        self._undated_policy = undated_policy
        self._default_days = default_days
        self._clock = clock
        self._metrics = IngestMetrics.get_instance()
        self._log = logger.bind(component="ingest")

    def create_job(
        self, source_id: str | None = None, days: int | None = None
    ) -> FetchJob:
        """Create a pending job.

        The source is not validated here; an unknown source fails the job
        when it runs.

        Args:
            source_id: Single source to ingest, or None for all sources.
            days: Lookback window; missing or non-positive means the default.

        Returns:
            The pending job.
        """
        effective_days = days if days is not None and days > 0 else self._default_days
        job = self._store.create_job(
            days=effective_days,
            source_id=source_id or None,
            started_at=self._clock(),
        )
        self._metrics.record_job_created()
        self._log.info(
            "job_created",
            job_id=job.id,
            source_id=job.source_id,
            days=job.days,
        )
        return job

    def get_job(self, job_id: str) -> FetchJob:
        """Get a job by ID.

        Raises:
            NotFoundError: If the job does not exist.
        """
        job = self._store.get_job(job_id)
        if job is None:
            raise NotFoundError("job", job_id)
        return job

    def run_job(
        self,
        job_id: str,
        cancel_event: threading.Event | None = None,
    ) -> FetchJob:
        """Run a pending job to a terminal status.

        Args:
            job_id: Job to run.
            cancel_event: Optional token; when set, the job stops at the
                next source or item boundary.

        Returns:
            The job in its terminal status.

        Raises:
            NotFoundError: If the job does not exist.
            JobStateError: If the job is not pending.
        """
        job = self.get_job(job_id)
        state_machine = JobStateMachine(job.id, initial_state=job.status)
        if job.status != JobStatus.PENDING:
            raise JobStateError(job.id, job.status, JobStatus.IN_PROGRESS)

        log = self._log.bind(job_id=job.id)
        now = self._clock()

        try:
            sources = self._resolve_sources(job)
        except (SourceResolutionFailure, StoreError) as e:
            log.warning("job_source_resolution_failed", error=str(e))
            message = f"Failed to resolve sources: {e}"
            self._append_errors(job.id, [message])
            state_machine.transition(JobStatus.FAILED)
            return self._finish(job.id, JobStatus.FAILED, 0)

        state_machine.transition(JobStatus.IN_PROGRESS)
        run = _JobRun(
            job=job,
            now=now,
            cutoff=now - timedelta(days=job.days),
            dedup=DedupFilter(self._store),
            cancel_event=cancel_event or threading.Event(),
        )
        self._report_progress(run)
        log.info("job_started", sources=len(sources), cutoff=run.cutoff.isoformat())

        for source in sources:
            if run.check_cancelled():
                break
            try:
                self._ingest_source(run, source)
            except Exception as e:  # noqa: BLE001
                log.exception("source_processing_failed", source_id=source.id)
                self._record_error(run, f"Failed to process source {source.id}: {e}")
            self._report_progress(run)

        if run.cancelled:
            log.warning("job_cancelled", items_processed=run.items_processed)
            self._record_error(run, CANCELLED_MESSAGE)

        final = JobStatus.COMPLETED_WITH_ERRORS if run.errors else JobStatus.COMPLETED
        state_machine.transition(final)
        return self._finish(job.id, final, run.items_processed)

    def fail_job(self, job_id: str, message: str) -> FetchJob | None:
        """Force a non-terminal job to failed after an unexpected crash.

        Args:
            job_id: Job to fail.
            message: Error message to record.

        Returns:
            The job after the update, or None if it no longer exists.
        """
        job = self._store.get_job(job_id)
        if job is None or job.status.is_terminal:
            return job
        self._append_errors(job_id, [message])
        return self._finish(job_id, JobStatus.FAILED, job.items_processed)

    def _resolve_sources(self, job: FetchJob) -> list[Source]:
        if job.source_id is None:
            return self._store.list_sources()
        source = self._store.get_source(job.source_id)
        if source is None:
            raise SourceResolutionFailure(
                f"Source not found: {job.source_id}", source_id=job.source_id
            )
        return [source]

    def _ingest_source(self, run: _JobRun, source: Source) -> None:
        """Fetch one source and store its new items."""
        log = self._log.bind(job_id=run.job.id, source_id=source.id)

        try:
            candidates = self._fetcher.fetch(source)
        except FetchFailure as e:
            self._metrics.record_source_failure()
            log.warning(
                "source_fetch_failed",
                error=ErrorRecord.from_exception(e).model_dump(mode="json"),
            )
            self._record_error(run, e.to_job_message())
            return

        stored = 0
        for candidate in candidates:
            if run.check_cancelled():
                break
            if self._ingest_item(run, source, candidate):
                stored += 1

        try:
            self._store.update_source_last_fetched_at(source.id, run.now)
        except StoreError as e:
            self._record_error(
                run, f"Failed to update source last fetched time {source.id}: {e}"
            )

        log.info("source_ingested", candidates=len(candidates), stored=stored)

    def _ingest_item(
        self, run: _JobRun, source: Source, candidate: CandidateItem
    ) -> bool:
        """Store one candidate if it is in the window and new.

        Returns:
            True if the item was stored.
        """
        published_at = candidate.published_at
        if published_at is None:
            if self._undated_policy is UndatedPolicy.SKIP:
                self._metrics.record_skip("undated")
                return False
            published_at = run.now

        if published_at < run.cutoff:
            self._metrics.record_skip("too_old")
            return False

        try:
            if run.dedup.is_duplicate(candidate.link):
                self._metrics.record_skip("duplicate")
                return False

            self._store.create_content(
                ContentItem(
                    id=str(uuid.uuid4()),
                    source_id=source.id,
                    title=candidate.title,
                    link=candidate.link,
                    description=candidate.summary,
                    content=candidate.body,
                    published_at=published_at,
                    fetched_at=run.now,
                    author=candidate.author,
                    categories=candidate.categories,
                )
            )
        except DuplicateLinkError:
            self._metrics.record_skip("duplicate")
            self._log.debug(
                "item_duplicate_skipped", job_id=run.job.id, link=candidate.link
            )
            return False
        except (StoreError, ValidationError) as e:
            self._record_error(run, f"Failed to store content {candidate.link}: {e}")
            return False

        run.dedup.mark_stored(candidate.link)
        run.items_processed += 1
        return True

    def _report_progress(self, run: _JobRun) -> None:
        try:
            self._store.update_job(
                run.job.id, JobStatus.IN_PROGRESS, run.items_processed
            )
        except StoreError as e:
            self._log.warning(
                "job_progress_not_persisted", job_id=run.job.id, error=str(e)
            )
            self._record_error(
                run, f"Failed to update job progress {run.job.id}: {e}"
            )

    def _record_error(self, run: _JobRun, message: str) -> None:
        run.errors.append(message)
        self._append_errors(run.job.id, [message])

    def _append_errors(self, job_id: str, messages: list[str]) -> None:
        try:
            self._store.append_job_errors(job_id, messages)
        except StoreError as e:
            self._log.error(
                "job_error_not_persisted",
                job_id=job_id,
                messages=messages,
                error=str(e),
            )

    def _finish(
        self, job_id: str, status: JobStatus, items_processed: int
    ) -> FetchJob:
        completed_at = self._clock()
        updated = self._store.update_job(job_id, status, items_processed, completed_at)
        if not updated:
            self._log.error(
                "invariant_violation",
                error_type="terminal_job_modified",
                job_id=job_id,
                to_state=status.value,
            )
        else:
            self._metrics.record_job_finished(status.value, items_processed)
            self._log.info(
                "job_finished",
                job_id=job_id,
                status=status.value,
                items_processed=items_processed,
            )
        return self.get_job(job_id)
