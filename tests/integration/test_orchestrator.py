"""Integration tests for fetch job orchestration against a real store."""

import threading
from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest

from feedwise.feeds.errors import FeedErrorClass, FetchFailure
from feedwise.feeds.fetcher import FeedFetcher
from feedwise.feeds.models import CandidateItem
from feedwise.ingest.errors import JobStateError
from feedwise.ingest.metrics import IngestMetrics
from feedwise.ingest.orchestrator import FetchJobOrchestrator
from feedwise.settings.app import UndatedPolicy
from feedwise.store.errors import NotFoundError, PersistenceFailure
from feedwise.store.models import ContentItem, JobStatus, Source
from feedwise.store.store import ContentStore
from tests.helpers.factories import add_source, make_candidate, make_content
from tests.helpers.time import FIXED_NOW, fixed_clock


RECENT = FIXED_NOW - timedelta(days=1)
STALE = FIXED_NOW - timedelta(days=30)


def make_fetcher(feeds: dict[str, list[CandidateItem] | Exception]) -> MagicMock:
    """Feed fetcher returning canned candidates per source ID."""

    def fetch(source: Source) -> list[CandidateItem]:
        outcome = feeds[source.id]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    fetcher = MagicMock(spec=FeedFetcher)
    fetcher.fetch.side_effect = fetch
    return fetcher


def make_orchestrator(
    store: ContentStore,
    fetcher: MagicMock,
    undated_policy: UndatedPolicy = UndatedPolicy.SKIP,
) -> FetchJobOrchestrator:
    return FetchJobOrchestrator(
        store=store,
        feed_fetcher=fetcher,
        undated_policy=undated_policy,
        clock=fixed_clock,
    )


class TestCreateJob:
    """Tests for job creation."""

    def test_job_starts_pending(self, store: ContentStore) -> None:
        """A new job is pending with the requested window."""
        orchestrator = make_orchestrator(store, make_fetcher({}))

        job = orchestrator.create_job(days=3)

        assert job.status == JobStatus.PENDING
        assert job.days == 3
        assert job.started_at == FIXED_NOW
        assert IngestMetrics.get_instance().jobs_created_total == 1

    @pytest.mark.parametrize("days", [None, 0, -5])
    def test_default_window(self, store: ContentStore, days: int | None) -> None:
        """Missing or non-positive windows fall back to seven days."""
        orchestrator = make_orchestrator(store, make_fetcher({}))
        assert orchestrator.create_job(days=days).days == 7

    def test_unknown_source_still_created(self, store: ContentStore) -> None:
        """Source scope is not validated at creation time."""
        orchestrator = make_orchestrator(store, make_fetcher({}))
        job = orchestrator.create_job(source_id="ghost")
        assert job.status == JobStatus.PENDING
        assert job.source_id == "ghost"

    def test_get_missing_job(self, store: ContentStore) -> None:
        """Unknown jobs raise NotFoundError."""
        orchestrator = make_orchestrator(store, make_fetcher({}))
        with pytest.raises(NotFoundError):
            orchestrator.get_job("nope")


class TestRunJob:
    """Tests for running jobs to completion."""

    def test_filters_old_and_duplicate_items(self, store: ContentStore) -> None:
        """Of three candidates, one is too old and one already stored."""
        source = add_source(store, source_id="blog")
        store.create_content(
            make_content(source.id, link="https://blog.example.com/known")
        )
        fetcher = make_fetcher(
            {
                "blog": [
                    make_candidate("https://blog.example.com/old", STALE),
                    make_candidate("https://blog.example.com/known", RECENT),
                    make_candidate("https://blog.example.com/new", RECENT),
                ]
            }
        )
        orchestrator = make_orchestrator(store, fetcher)
        job = orchestrator.create_job(source_id="blog", days=7)

        finished = orchestrator.run_job(job.id)

        assert finished.status == JobStatus.COMPLETED
        assert finished.items_processed == 1
        assert finished.errors == ()
        assert finished.completed_at == FIXED_NOW
        assert store.content_link_exists("https://blog.example.com/new")
        assert not store.content_link_exists("https://blog.example.com/old")
        skips = IngestMetrics.get_instance().items_skipped_by_reason
        assert skips == {"too_old": 1, "duplicate": 1}

    def test_all_sources_and_last_fetched(self, store: ContentStore) -> None:
        """A job without a source scope ingests every source."""
        add_source(store, source_id="a")
        add_source(store, source_id="b")
        fetcher = make_fetcher(
            {
                "a": [make_candidate("https://a.example.com/1", RECENT)],
                "b": [
                    make_candidate("https://b.example.com/1", RECENT),
                    make_candidate("https://b.example.com/2", RECENT),
                ],
            }
        )
        orchestrator = make_orchestrator(store, fetcher)

        finished = orchestrator.run_job(orchestrator.create_job().id)

        assert finished.status == JobStatus.COMPLETED
        assert finished.items_processed == 3
        for source_id in ("a", "b"):
            source = store.get_source(source_id)
            assert source is not None
            assert source.last_fetched_at == FIXED_NOW

    def test_stored_fields(self, store: ContentStore) -> None:
        """Stored items carry the source, times and summary."""
        add_source(store, source_id="blog")
        candidate = CandidateItem(
            title="Title",
            link="https://blog.example.com/post",
            summary="Summary",
            body="<p>Body</p>",
            published_at=RECENT,
            author="Ada",
            categories=frozenset({"db"}),
        )
        orchestrator = make_orchestrator(store, make_fetcher({"blog": [candidate]}))

        orchestrator.run_job(orchestrator.create_job().id)

        item = store.get_content_by_link("https://blog.example.com/post")
        assert item is not None
        assert item.source_id == "blog"
        assert item.description == "Summary"
        assert item.content == "<p>Body</p>"
        assert item.published_at == RECENT
        assert item.fetched_at == FIXED_NOW
        assert item.author == "Ada"
        assert item.categories == frozenset({"db"})

    def test_reingest_is_idempotent(self, store: ContentStore) -> None:
        """Running the same feed twice stores nothing new."""
        add_source(store, source_id="blog")
        fetcher = make_fetcher(
            {
                "blog": [
                    make_candidate("https://blog.example.com/1", RECENT),
                    make_candidate("https://blog.example.com/2", RECENT),
                ]
            }
        )
        orchestrator = make_orchestrator(store, fetcher)

        first = orchestrator.run_job(orchestrator.create_job().id)
        second = orchestrator.run_job(orchestrator.create_job().id)

        assert first.items_processed == 2
        assert second.items_processed == 0
        assert second.status == JobStatus.COMPLETED
        assert store.get_stats().contents == 2

    def test_duplicate_links_within_feed(self, store: ContentStore) -> None:
        """A link repeated inside one feed is stored once."""
        add_source(store, source_id="blog")
        fetcher = make_fetcher(
            {
                "blog": [
                    make_candidate("https://blog.example.com/same", RECENT),
                    make_candidate("https://blog.example.com/same", RECENT),
                ]
            }
        )
        orchestrator = make_orchestrator(store, fetcher)

        finished = orchestrator.run_job(orchestrator.create_job().id)

        assert finished.items_processed == 1
        assert finished.status == JobStatus.COMPLETED

    def test_lost_insert_race_is_silent(self, store: ContentStore) -> None:
        """A unique-link rejection after a passed check is a quiet skip."""
        source = add_source(store, source_id="blog")
        store.create_content(make_content(source.id, link="https://blog.example.com/r"))
        fetcher = make_fetcher(
            {"blog": [make_candidate("https://blog.example.com/r", RECENT)]}
        )
        orchestrator = make_orchestrator(store, fetcher)

        with patch.object(store, "content_link_exists", return_value=False):
            finished = orchestrator.run_job(orchestrator.create_job().id)

        assert finished.status == JobStatus.COMPLETED
        assert finished.items_processed == 0
        assert finished.errors == ()

    def test_already_running_job_rejected(self, store: ContentStore) -> None:
        """Only pending jobs can be run."""
        orchestrator = make_orchestrator(store, make_fetcher({}))
        job = orchestrator.create_job()
        orchestrator.run_job(job.id)

        with pytest.raises(JobStateError):
            orchestrator.run_job(job.id)


class TestUndatedPolicy:
    """Tests for entries without timestamps."""

    def test_skip_by_default(self, store: ContentStore) -> None:
        """Undated entries are skipped without an error."""
        add_source(store, source_id="blog")
        fetcher = make_fetcher(
            {"blog": [make_candidate("https://blog.example.com/undated", None)]}
        )
        orchestrator = make_orchestrator(store, fetcher)

        finished = orchestrator.run_job(orchestrator.create_job().id)

        assert finished.status == JobStatus.COMPLETED
        assert finished.items_processed == 0
        assert IngestMetrics.get_instance().items_skipped_by_reason == {"undated": 1}

    def test_fetched_at_policy(self, store: ContentStore) -> None:
        """With FETCHED_AT, undated entries are stamped with the fetch time."""
        add_source(store, source_id="blog")
        fetcher = make_fetcher(
            {"blog": [make_candidate("https://blog.example.com/undated", None)]}
        )
        orchestrator = make_orchestrator(store, fetcher, UndatedPolicy.FETCHED_AT)

        finished = orchestrator.run_job(orchestrator.create_job().id)

        assert finished.items_processed == 1
        item = store.get_content_by_link("https://blog.example.com/undated")
        assert item is not None
        assert item.published_at == FIXED_NOW


class TestFailures:
    """Tests for per-source and per-item failures."""

    def test_unknown_source_fails_job(self, store: ContentStore) -> None:
        """A single-source job for an unknown source ends failed."""
        fetcher = make_fetcher({})
        orchestrator = make_orchestrator(store, fetcher)
        job = orchestrator.create_job(source_id="ghost")

        finished = orchestrator.run_job(job.id)

        assert finished.status == JobStatus.FAILED
        assert finished.items_processed == 0
        assert finished.completed_at == FIXED_NOW
        assert finished.errors == ("Failed to resolve sources: Source not found: ghost",)
        fetcher.fetch.assert_not_called()

    def test_fetch_failure_isolated(self, store: ContentStore) -> None:
        """One failing feed does not stop the others."""
        add_source(store, name="Broken", source_id="broken")
        add_source(store, name="Healthy", source_id="healthy")
        fetcher = make_fetcher(
            {
                "broken": FetchFailure(
                    source_id="broken",
                    url="https://broken.example.com/rss",
                    error_class=FeedErrorClass.FETCH,
                    message="Server error (503)",
                ),
                "healthy": [make_candidate("https://ok.example.com/1", RECENT)],
            }
        )
        orchestrator = make_orchestrator(store, fetcher)

        finished = orchestrator.run_job(orchestrator.create_job().id)

        assert finished.status == JobStatus.COMPLETED_WITH_ERRORS
        assert finished.items_processed == 1
        assert finished.errors == (
            "Failed to fetch feed https://broken.example.com/rss: Server error (503)",
        )
        assert IngestMetrics.get_instance().source_failures == 1
        broken = store.get_source("broken")
        assert broken is not None
        assert broken.last_fetched_at is None

    def test_unexpected_source_error_isolated(self, store: ContentStore) -> None:
        """Unexpected exceptions from one source are recorded, not raised."""
        add_source(store, name="A", source_id="a")
        add_source(store, name="B", source_id="b")
        fetcher = make_fetcher(
            {
                "a": RuntimeError("parser exploded"),
                "b": [make_candidate("https://b.example.com/1", RECENT)],
            }
        )
        orchestrator = make_orchestrator(store, fetcher)

        finished = orchestrator.run_job(orchestrator.create_job().id)

        assert finished.status == JobStatus.COMPLETED_WITH_ERRORS
        assert finished.items_processed == 1
        assert finished.errors == ("Failed to process source a: parser exploded",)

    def test_store_failure_per_item(self, store: ContentStore) -> None:
        """A failed insert is recorded and later items still stored."""
        add_source(store, source_id="blog")
        fetcher = make_fetcher(
            {
                "blog": [
                    make_candidate("https://blog.example.com/bad", RECENT),
                    make_candidate("https://blog.example.com/good", RECENT),
                ]
            }
        )
        orchestrator = make_orchestrator(store, fetcher)
        original = store.create_content

        def flaky(item: ContentItem) -> ContentItem:
            if item.link.endswith("/bad"):
                raise PersistenceFailure("create_content", "disk I/O error")
            return original(item)

        with patch.object(store, "create_content", side_effect=flaky):
            finished = orchestrator.run_job(orchestrator.create_job().id)

        assert finished.status == JobStatus.COMPLETED_WITH_ERRORS
        assert finished.items_processed == 1
        assert finished.errors == (
            "Failed to store content https://blog.example.com/bad: "
            "create_content failed: disk I/O error",
        )
        source = store.get_source("blog")
        assert source is not None
        assert source.last_fetched_at == FIXED_NOW

    def test_progress_update_failure_recorded(self, store: ContentStore) -> None:
        """A failed progress write is recorded and the job still finishes."""
        add_source(store, source_id="blog")
        fetcher = make_fetcher(
            {"blog": [make_candidate("https://blog.example.com/1", RECENT)]}
        )
        orchestrator = make_orchestrator(store, fetcher)
        original = store.update_job

        def flaky(job_id: str, status: JobStatus, items: int, *args: object) -> bool:
            if status == JobStatus.IN_PROGRESS and items > 0:
                raise PersistenceFailure("update_job", "database is locked")
            return original(job_id, status, items, *args)

        with patch.object(store, "update_job", side_effect=flaky):
            finished = orchestrator.run_job(orchestrator.create_job().id)

        assert finished.status == JobStatus.COMPLETED_WITH_ERRORS
        assert finished.items_processed == 1
        assert len(finished.errors) == 1
        assert finished.errors[0].startswith("Failed to update job progress")
        assert store.get_content_by_link("https://blog.example.com/1") is not None

    def test_fail_job(self, store: ContentStore) -> None:
        """fail_job forces a non-terminal job to failed."""
        orchestrator = make_orchestrator(store, make_fetcher({}))
        job = orchestrator.create_job()

        failed = orchestrator.fail_job(job.id, "Job failed unexpectedly: boom")

        assert failed is not None
        assert failed.status == JobStatus.FAILED
        assert failed.errors == ("Job failed unexpectedly: boom",)

    def test_fail_job_leaves_terminal_jobs(self, store: ContentStore) -> None:
        """fail_job never rewrites a finished job."""
        orchestrator = make_orchestrator(store, make_fetcher({}))
        job = orchestrator.create_job()
        orchestrator.run_job(job.id)

        result = orchestrator.fail_job(job.id, "late crash")

        assert result is not None
        assert result.status == JobStatus.COMPLETED
        assert result.errors == ()


class TestCancellation:
    """Tests for cooperative cancellation."""

    def test_cancel_before_start(self, store: ContentStore) -> None:
        """A pre-set token stops the job before any source."""
        add_source(store, source_id="blog")
        fetcher = make_fetcher(
            {"blog": [make_candidate("https://blog.example.com/1", RECENT)]}
        )
        orchestrator = make_orchestrator(store, fetcher)
        cancel = threading.Event()
        cancel.set()

        finished = orchestrator.run_job(orchestrator.create_job().id, cancel)

        assert finished.status == JobStatus.COMPLETED_WITH_ERRORS
        assert finished.items_processed == 0
        assert finished.errors == ("job cancelled",)
        fetcher.fetch.assert_not_called()

    def test_cancel_between_items(self, store: ContentStore) -> None:
        """Cancellation is checked between items."""
        add_source(store, source_id="blog")
        cancel = threading.Event()
        candidates = [
            make_candidate(f"https://blog.example.com/{n}", RECENT) for n in range(3)
        ]
        orchestrator = make_orchestrator(store, make_fetcher({"blog": candidates}))
        original = store.create_content

        def create_then_cancel(item: ContentItem) -> ContentItem:
            stored = original(item)
            cancel.set()
            return stored

        with patch.object(store, "create_content", side_effect=create_then_cancel):
            finished = orchestrator.run_job(orchestrator.create_job().id, cancel)

        assert finished.items_processed == 1
        assert finished.status == JobStatus.COMPLETED_WITH_ERRORS
        assert finished.errors == ("job cancelled",)
