"""Content quality and interest scoring."""

from feedwise.analyzer.analyzer import ContentAnalyzer, load_interests
from feedwise.analyzer.config import AnalyzerConfig
from feedwise.analyzer.explain import recommendation_reason
from feedwise.analyzer.models import ArticleScore, ContentComponents, ScoredContent


__all__ = [
    "AnalyzerConfig",
    "ArticleScore",
    "ContentAnalyzer",
    "ContentComponents",
    "ScoredContent",
    "load_interests",
    "recommendation_reason",
]
