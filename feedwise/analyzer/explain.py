"""Human-readable explanations of scores."""

from feedwise.analyzer.constants import MODERATE_THRESHOLD, STRONG_THRESHOLD
from feedwise.analyzer.models import ArticleScore


def recommendation_reason(score: ArticleScore) -> str:
    """Explain why an item scored the way it did.

    Args:
        score: Item score.

    Returns:
        Comma-separated reasons.
    """
    reasons: list[str] = []

    if score.interest_score >= STRONG_THRESHOLD:
        reasons.append("Strongly matches your interests")
    elif score.interest_score >= MODERATE_THRESHOLD:
        reasons.append("Moderately aligns with your interests")

    if score.content_score >= STRONG_THRESHOLD:
        reasons.append("High-quality content with detailed information")
    elif score.content_score >= MODERATE_THRESHOLD:
        reasons.append("Good content quality")

    if not reasons:
        reasons.append("Balanced combination of relevance and quality")

    return ", ".join(reasons)
