"""Recommendation ranking and reader feedback."""

from feedwise.recommend.config import RankerConfig
from feedwise.recommend.feedback import FeedbackService
from feedwise.recommend.metrics import RecommendMetrics
from feedwise.recommend.models import FeedbackInput, Recommendation
from feedwise.recommend.ranker import (
    RecommendationRanker,
    blend_score,
    recency_factor,
)


__all__ = [
    "FeedbackInput",
    "FeedbackService",
    "RankerConfig",
    "Recommendation",
    "RecommendMetrics",
    "RecommendationRanker",
    "blend_score",
    "recency_factor",
]
