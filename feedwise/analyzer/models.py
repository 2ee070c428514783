"""Data models for content analysis."""

from dataclasses import dataclass

from feedwise.store.models import ContentItem


@dataclass(frozen=True)
class ContentComponents:
    """Breakdown of the content score.

    Attributes:
        length_score: Bucketed score for text length.
        keyword_score: Fraction of vocabulary keywords present.
        link_score: Fraction of links that point off-site.
    """

    length_score: float
    keyword_score: float
    link_score: float

    def to_dict(self) -> dict[str, float]:
        """Convert to dictionary for serialization."""
        return {
            "length_score": self.length_score,
            "keyword_score": self.keyword_score,
            "link_score": self.link_score,
        }


@dataclass(frozen=True)
class ArticleScore:
    """Quality and interest score for one item; every field is in [0, 1].

    Attributes:
        interest_score: Fraction of configured interests matched.
        content_score: Weighted content quality.
        overall_score: Weighted blend of interest and content.
        components: Content score breakdown.
    """

    interest_score: float
    content_score: float
    overall_score: float
    components: ContentComponents

    def to_dict(self) -> dict[str, float]:
        """Convert to dictionary for serialization."""
        return {
            "interest_score": self.interest_score,
            "content_score": self.content_score,
            "overall_score": self.overall_score,
            **self.components.to_dict(),
        }


@dataclass(frozen=True)
class ScoredContent:
    """A stored item paired with its score."""

    item: ContentItem
    score: ArticleScore
