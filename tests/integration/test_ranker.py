"""Integration tests for recommendation ranking over a real store."""

from datetime import timedelta

import pytest

from feedwise.recommend.config import RankerConfig
from feedwise.recommend.metrics import RecommendMetrics
from feedwise.recommend.ranker import RecommendationRanker
from feedwise.store.models import ContentItem
from feedwise.store.store import ContentStore
from tests.helpers.factories import add_source, make_content
from tests.helpers.time import FIXED_NOW, fixed_clock


def store_item(
    store: ContentStore, source_id: str, age: timedelta, content_id: str
) -> ContentItem:
    item = make_content(
        source_id, content_id=content_id, published_at=FIXED_NOW - age
    )
    store.create_content(item)
    return item


def make_ranker(store: ContentStore, **config: int) -> RecommendationRanker:
    return RecommendationRanker(store, RankerConfig(**config), clock=fixed_clock)


class TestAnonymousRanking:
    """Ranking without a user."""

    def test_orders_by_recency(self, store: ContentStore) -> None:
        """Newer items rank first and items outside the window are dropped."""
        source = add_source(store)
        store_item(store, source.id, timedelta(days=3), "mid")
        store_item(store, source.id, timedelta(hours=1), "new")
        store_item(store, source.id, timedelta(days=6), "old")
        store_item(store, source.id, timedelta(days=8), "expired")

        recs = make_ranker(store).recommend()

        assert [r.content.id for r in recs] == ["new", "mid", "old"]
        assert recs[0].score == pytest.approx(1 - (1 / 24) / 7)
        assert all(0.0 <= r.score <= 1.0 for r in recs)

    def test_ties_broken_by_id(self, store: ContentStore) -> None:
        """Equal scores and times fall back to item ID."""
        source = add_source(store)
        for content_id in ("c", "a", "b"):
            store_item(store, source.id, timedelta(days=8), content_id)
        for content_id in ("z", "y"):
            store_item(store, source.id, timedelta(days=1), content_id)

        recs = make_ranker(store, window_days=10).recommend()
        assert [r.content.id for r in recs] == ["y", "z", "a", "b", "c"]

    def test_blank_user_is_anonymous(self, store: ContentStore) -> None:
        """A blank user ID applies no exclusions."""
        source = add_source(store)
        item = store_item(store, source.id, timedelta(hours=1), "x")
        store.create_feedback(item.id, "alice", 5)

        assert [r.content.id for r in make_ranker(store).recommend("  ")] == ["x"]

    def test_source_filter(self, store: ContentStore) -> None:
        """Only the requested sources are ranked."""
        wanted = add_source(store)
        other = add_source(store)
        store_item(store, wanted.id, timedelta(hours=1), "in")
        store_item(store, other.id, timedelta(hours=1), "out")

        recs = make_ranker(store).recommend(source_ids=[wanted.id])
        assert [r.content.id for r in recs] == ["in"]

    @pytest.mark.parametrize("limit", [None, 0, -1])
    def test_default_limit(self, store: ContentStore, limit: int | None) -> None:
        """Missing or non-positive limits use the default of ten."""
        source = add_source(store)
        for n in range(12):
            store_item(store, source.id, timedelta(minutes=n + 1), f"item-{n:02d}")

        assert len(make_ranker(store).recommend(limit=limit)) == 10

    def test_explicit_limit(self, store: ContentStore) -> None:
        """A positive limit truncates the ranking."""
        source = add_source(store)
        for n in range(5):
            store_item(store, source.id, timedelta(hours=n + 1), f"item-{n}")

        recs = make_ranker(store).recommend(limit=2)
        assert [r.content.id for r in recs] == ["item-0", "item-1"]
        metrics = RecommendMetrics.get_instance()
        assert metrics.requests_total == 1
        assert metrics.candidates_total == 5
        assert metrics.returned_total == 2


class TestPersonalizedRanking:
    """Ranking with a user's feedback."""

    def test_rated_items_excluded(self, store: ContentStore) -> None:
        """Items the user already rated are never recommended to them."""
        source = add_source(store)
        rated = store_item(store, source.id, timedelta(hours=1), "rated")
        store_item(store, source.id, timedelta(hours=2), "fresh")
        store.create_feedback(rated.id, "alice", 3)

        ids = [r.content.id for r in make_ranker(store).recommend("alice")]
        assert ids == ["fresh"]

    def test_source_affinity_boosts_liked_sources(self, store: ContentStore) -> None:
        """Items from a source the user rated highly outrank newer items."""
        liked = add_source(store, name="Liked")
        neutral = add_source(store, name="Neutral")
        rated = store_item(store, liked.id, timedelta(days=1), "rated")
        store.create_feedback(rated.id, "alice", 4)
        store_item(store, liked.id, timedelta(days=5), "liked-old")
        store_item(store, neutral.id, timedelta(hours=1), "neutral-new")

        recs = make_ranker(store).recommend("alice")

        assert [r.content.id for r in recs] == ["liked-old", "neutral-new"]
        recency = 1 - 5 / 7
        assert recs[0].score == pytest.approx(0.7 * 4.0 + 0.3 * recency)
        assert recs[1].score == pytest.approx(1 - (1 / 24) / 7)
        assert RecommendMetrics.get_instance().personalized_total == 1

    def test_low_affinity_still_blended(self, store: ContentStore) -> None:
        """Affinity is the raw average rating, so even 1-star sources blend."""
        source = add_source(store)
        rated = store_item(store, source.id, timedelta(days=1), "rated")
        store.create_feedback(rated.id, "bob", 1)
        store_item(store, source.id, timedelta(days=7), "edge")

        recs = make_ranker(store).recommend("bob")

        assert [r.content.id for r in recs] == ["edge"]
        assert recs[0].score == pytest.approx(0.7)
