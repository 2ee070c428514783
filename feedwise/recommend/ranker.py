"""Feedback-weighted recommendation ranking."""

from collections.abc import Iterable
from datetime import datetime, timedelta

import structlog

from feedwise.data_model.base import Clock, ensure_utc, utc_now
from feedwise.recommend.config import RankerConfig
from feedwise.recommend.metrics import RecommendMetrics
from feedwise.recommend.models import Recommendation
from feedwise.store.store import ContentStore


logger = structlog.get_logger()

SECONDS_PER_DAY = 86_400.0


def recency_factor(published_at: datetime, now: datetime, window_days: int) -> float:
    """Linear decay from 1.0 (published now) to 0.0 (``window_days`` old).

    Args:
        published_at: Publication time.
        now: Reference time.
        window_days: Decay horizon in days.

    Returns:
        Recency factor clamped to [0, 1].
    """
    age_days = (
        ensure_utc(now) - ensure_utc(published_at)
    ).total_seconds() / SECONDS_PER_DAY
    return min(1.0, max(0.0, 1.0 - age_days / window_days))


def blend_score(recency: float, affinity: float | None, config: RankerConfig) -> float:
    """Combine recency with the user's source affinity.

    Args:
        recency: Recency factor in [0, 1].
        affinity: Average rating (1..5) the user gave the item's source,
            or None when the user never rated that source.
        config: Ranking weights.

    Returns:
        The ranking score.
    """
    if affinity is None:
        return recency
    return config.affinity_weight * affinity + config.recency_weight * recency


class RecommendationRanker:
    """Ranks recent content for a reader.

    Read-only against the store; safe to run alongside ingestion.
    """

    def __init__(
        self,
        store: ContentStore,
        config: RankerConfig | None = None,
        clock: Clock = utc_now,
    ) -> None:
        """Initialize the ranker.

        Args:
            store: Connected content store.
            config: Ranking configuration.
            clock: Source of the current time.
        """
        self._store = store
        self._config = config or RankerConfig()
        self._clock = clock
        self._metrics = RecommendMetrics.get_instance()
        self._log = logger.bind(component="recommend")

    def recommend(
        self,
        user_id: str | None = None,
        source_ids: Iterable[str] | None = None,
        limit: int | None = None,
    ) -> list[Recommendation]:
        """Produce ranked recommendations.

        Args:
            user_id: Reader to personalize for; None or blank means no
                personalization and no exclusions.
            source_ids: Restrict candidates to these sources.
            limit: Maximum results; missing or non-positive means the default.

        Returns:
            Recommendations ordered by descending score, then newer
            publication, then item ID.
        """
        user = (user_id or "").strip() or None
        effective_limit = limit if limit is not None and limit > 0 else None
        effective_limit = effective_limit or self._config.default_limit

        now = self._clock()
        since = now - timedelta(days=self._config.window_days)
        candidates = self._store.list_candidates(
            since=since,
            source_ids=list(source_ids or ()),
            exclude_user_id=user,
        )
        affinity = self._store.source_affinity(user) if user else {}

        scored = [
            Recommendation(
                content=item,
                score=blend_score(
                    recency_factor(item.published_at, now, self._config.window_days),
                    affinity.get(item.source_id),
                    self._config,
                ),
            )
            for item in candidates
        ]
        scored.sort(
            key=lambda r: (-r.score, -r.content.published_at.timestamp(), r.content.id)
        )
        results = scored[:effective_limit]

        self._metrics.record_request(
            candidates=len(candidates),
            returned=len(results),
            personalized=bool(affinity),
        )
        self._log.info(
            "recommendations_ranked",
            user_id=user,
            candidates=len(candidates),
            returned=len(results),
            personalized_sources=len(affinity),
        )
        return results
