"""Integration tests for background job execution."""

import threading
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from feedwise.feeds.fetcher import FeedFetcher
from feedwise.feeds.models import CandidateItem
from feedwise.ingest.orchestrator import FetchJobOrchestrator
from feedwise.ingest.supervisor import JobSupervisor
from feedwise.store.models import JobStatus, Source
from feedwise.store.store import ContentStore
from tests.helpers.factories import add_source, make_candidate
from tests.helpers.time import FIXED_NOW, fixed_clock


WAIT_SECONDS = 10


def make_supervisor(store: ContentStore, fetcher: MagicMock) -> JobSupervisor:
    orchestrator = FetchJobOrchestrator(
        store=store, feed_fetcher=fetcher, clock=fixed_clock
    )
    return JobSupervisor(orchestrator, max_workers=2)


class TestJobSupervisor:
    """Tests for JobSupervisor."""

    def test_submit_runs_in_background(self, store: ContentStore) -> None:
        """A submitted job completes on a worker thread."""
        add_source(store, source_id="blog")
        fetcher = MagicMock(spec=FeedFetcher)
        fetcher.fetch.return_value = [
            make_candidate("https://blog.example.com/1", FIXED_NOW - timedelta(hours=3))
        ]

        with make_supervisor(store, fetcher) as supervisor:
            handle = supervisor.submit(days=2)
            finished = handle.wait(timeout=WAIT_SECONDS)

        assert finished.id == handle.job_id
        assert finished.status == JobStatus.COMPLETED
        assert finished.items_processed == 1
        assert handle.done
        stored = store.get_job(handle.job_id)
        assert stored is not None
        assert stored.status == JobStatus.COMPLETED

    def test_submit_returns_before_job_finishes(self, store: ContentStore) -> None:
        """Submission does not wait for ingestion."""
        add_source(store, source_id="slow")
        release = threading.Event()

        def slow_fetch(source: Source) -> list[CandidateItem]:
            release.wait(WAIT_SECONDS)
            return []

        fetcher = MagicMock(spec=FeedFetcher)
        fetcher.fetch.side_effect = slow_fetch

        with make_supervisor(store, fetcher) as supervisor:
            handle = supervisor.submit()
            assert not handle.done
            assert handle.job_id in supervisor.active_job_ids
            release.set()
            handle.wait(timeout=WAIT_SECONDS)

        assert supervisor.get_handle(handle.job_id) is None

    def test_cancel_running_job(self, store: ContentStore) -> None:
        """Cancelling a running job finalizes it with a cancellation error."""
        add_source(store, name="A", source_id="a")
        add_source(store, name="B", source_id="b")
        started = threading.Event()
        release = threading.Event()

        def blocking_fetch(source: Source) -> list[CandidateItem]:
            started.set()
            release.wait(WAIT_SECONDS)
            return []

        fetcher = MagicMock(spec=FeedFetcher)
        fetcher.fetch.side_effect = blocking_fetch

        with make_supervisor(store, fetcher) as supervisor:
            handle = supervisor.submit()
            assert started.wait(WAIT_SECONDS)
            handle.cancel()
            release.set()
            finished = handle.wait(timeout=WAIT_SECONDS)

        assert finished.status == JobStatus.COMPLETED_WITH_ERRORS
        assert finished.errors == ("job cancelled",)
        assert fetcher.fetch.call_count == 1

    def test_crashed_job_is_failed(self, store: ContentStore) -> None:
        """A worker crash never leaves the job non-terminal."""
        fetcher = MagicMock(spec=FeedFetcher)
        orchestrator = FetchJobOrchestrator(
            store=store, feed_fetcher=fetcher, clock=fixed_clock
        )
        supervisor = JobSupervisor(orchestrator, max_workers=1)
        original_run = orchestrator.run_job

        def crash(job_id: str, cancel_event: threading.Event | None = None) -> None:
            raise RuntimeError("worker died")

        orchestrator.run_job = crash  # type: ignore[method-assign]
        try:
            handle = supervisor.submit()
            with pytest.raises(RuntimeError, match="worker died"):
                handle.wait(timeout=WAIT_SECONDS)
        finally:
            orchestrator.run_job = original_run  # type: ignore[method-assign]
            supervisor.shutdown()

        job = store.get_job(handle.job_id)
        assert job is not None
        assert job.status == JobStatus.FAILED
        assert job.errors == ("Job failed unexpectedly: worker died",)

    def test_concurrent_jobs_do_not_duplicate(self, store: ContentStore) -> None:
        """Two jobs racing over the same feed store each link once."""
        add_source(store, source_id="blog")
        published = FIXED_NOW - timedelta(hours=1)
        candidates = [
            make_candidate(f"https://blog.example.com/{n}", published)
            for n in range(20)
        ]
        fetcher = MagicMock(spec=FeedFetcher)
        fetcher.fetch.return_value = candidates

        with make_supervisor(store, fetcher) as supervisor:
            handles = [supervisor.submit(), supervisor.submit()]
            results = [h.wait(timeout=WAIT_SECONDS) for h in handles]

        assert sum(job.items_processed for job in results) == 20
        assert all(job.status == JobStatus.COMPLETED for job in results)
        assert store.get_stats().contents == 20
