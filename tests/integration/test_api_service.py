"""Integration tests for the reader API over real services."""

from collections.abc import Generator
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from feedwise.api.service import ReaderApi, respond
from feedwise.feeds.fetcher import FeedFetcher
from feedwise.ingest.orchestrator import FetchJobOrchestrator
from feedwise.ingest.supervisor import JobSupervisor
from feedwise.recommend.feedback import FeedbackService
from feedwise.recommend.ranker import RecommendationRanker
from feedwise.store.models import JobStatus
from feedwise.store.store import ContentStore
from tests.helpers.factories import add_source, make_candidate, make_content
from tests.helpers.time import FIXED_NOW, fixed_clock


@pytest.fixture
def fetcher() -> MagicMock:
    fetcher = MagicMock(spec=FeedFetcher)
    fetcher.fetch.return_value = [
        make_candidate("https://blog.example.com/a", FIXED_NOW - timedelta(hours=2)),
        make_candidate("https://blog.example.com/b", FIXED_NOW - timedelta(days=2)),
    ]
    return fetcher


@pytest.fixture
def supervisor(
    store: ContentStore, fetcher: MagicMock
) -> Generator[JobSupervisor]:
    orchestrator = FetchJobOrchestrator(
        store=store, feed_fetcher=fetcher, clock=fixed_clock
    )
    with JobSupervisor(orchestrator, max_workers=1) as sup:
        yield sup


@pytest.fixture
def api(store: ContentStore, supervisor: JobSupervisor) -> ReaderApi:
    return ReaderApi(
        store=store,
        supervisor=supervisor,
        ranker=RecommendationRanker(store, clock=fixed_clock),
        feedback=FeedbackService(store),
    )


class TestFetchJobs:
    """Tests for job creation and lookup."""

    def test_create_returns_202_pending(
        self, api: ReaderApi, supervisor: JobSupervisor, store: ContentStore
    ) -> None:
        """Creating a job answers immediately with its ID."""
        add_source(store, source_id="blog")

        response = respond(lambda: api.create_fetch_job({"days": 3}))

        assert response.status_code == 202
        assert response.body["status"] == "pending"
        job_id = response.body["jobId"]

        handle = supervisor.get_handle(job_id)
        if handle is not None:
            handle.wait(timeout=10)
        finished = respond(lambda: api.get_fetch_job(job_id))
        assert finished.status_code == 200
        assert finished.body["status"] == JobStatus.COMPLETED.value
        assert finished.body["itemsProcessed"] == 2
        assert finished.body["days"] == 3

    def test_create_rejects_bad_days(self, api: ReaderApi) -> None:
        """Non-integer windows are a 400 and no job is created."""
        response = respond(lambda: api.create_fetch_job({"days": "seven"}))

        assert response.status_code == 400
        assert response.body["error"] == "validation_failed"

    def test_unknown_job_is_404(self, api: ReaderApi) -> None:
        """Looking up a missing job reports not found."""
        response = respond(lambda: api.get_fetch_job("missing"))

        assert response.status_code == 404
        assert response.body["message"] == "Job not found: missing"


class TestFeedback:
    """Tests for feedback submission and history."""

    def test_submit_returns_201(self, api: ReaderApi, store: ContentStore) -> None:
        """Valid feedback is stored and echoed back."""
        source = add_source(store)
        item = store.create_content(make_content(source.id))

        response = respond(
            lambda: api.submit_feedback(
                {"contentId": item.id, "userId": "alice", "rating": 4}
            )
        )

        assert response.status_code == 201
        assert response.body["contentId"] == item.id
        assert response.body["rating"] == 4
        assert len(store.list_user_feedback("alice")) == 1

    def test_out_of_range_rating_is_400(
        self, api: ReaderApi, store: ContentStore
    ) -> None:
        """A rating of 6 is rejected and nothing is stored."""
        source = add_source(store)
        item = store.create_content(make_content(source.id))

        response = respond(
            lambda: api.submit_feedback(
                {"contentId": item.id, "userId": "alice", "rating": 6}
            )
        )

        assert response.status_code == 400
        assert response.body["details"][0]["field"] == "rating"
        assert store.list_user_feedback("alice") == []

    def test_unknown_content_is_404(self, api: ReaderApi) -> None:
        """Rating a missing item reports not found."""
        response = respond(
            lambda: api.submit_feedback(
                {"contentId": "ghost", "userId": "alice", "rating": 3}
            )
        )

        assert response.status_code == 404
        assert response.body["message"] == "Content not found: ghost"

    def test_history_and_blank_user(
        self, api: ReaderApi, store: ContentStore
    ) -> None:
        """History lists a user's ratings; a blank user is a 400."""
        source = add_source(store)
        item = store.create_content(make_content(source.id))
        store.create_feedback(item.id, "bob", 2, comment="meh")

        history = respond(lambda: api.get_user_feedback("bob"))
        blank = respond(lambda: api.get_user_feedback("  "))

        assert history.body["count"] == 1
        assert history.body["feedback"][0]["comment"] == "meh"
        assert blank.status_code == 400


class TestRecommendationsAndContent:
    """Tests for ranking, search, and item lookup."""

    def test_recommendations_exclude_rated(
        self, api: ReaderApi, store: ContentStore
    ) -> None:
        """The reader's rated items are left out of their recommendations."""
        source = add_source(store)
        seen = store.create_content(make_content(source.id, title="Seen"))
        fresh = store.create_content(make_content(source.id, title="Fresh"))
        store.create_feedback(seen.id, "alice", 5)

        response = respond(
            lambda: api.get_recommendations({"userId": "alice", "limit": 5})
        )

        assert response.status_code == 200
        assert response.body["count"] == 1
        rec = response.body["recommendations"][0]
        assert rec["content"]["id"] == fresh.id
        assert rec["score"] > 1.0

    def test_search(self, api: ReaderApi, store: ContentStore) -> None:
        """Search matches title text case-insensitively."""
        source = add_source(store)
        hit = store.create_content(make_content(source.id, title="Kernel notes"))
        store.create_content(make_content(source.id, title="Gardening"))

        response = respond(lambda: api.search_contents({"keywords": "KERNEL"}))

        assert response.body["count"] == 1
        assert response.body["contents"][0]["id"] == hit.id

    def test_search_requires_keywords(self, api: ReaderApi) -> None:
        """Empty keywords are rejected."""
        response = respond(lambda: api.search_contents({"keywords": ""}))
        assert response.status_code == 400

    def test_get_content(self, api: ReaderApi, store: ContentStore) -> None:
        """Items are returned by ID; missing items are 404."""
        source = add_source(store)
        item = store.create_content(
            make_content(source.id, categories=frozenset({"b", "a"}))
        )

        found = respond(lambda: api.get_content(item.id))
        missing = respond(lambda: api.get_content("nope"))

        assert found.body["sourceId"] == source.id
        assert found.body["categories"] == ["a", "b"]
        assert missing.status_code == 404
