"""Content quality and interest scoring."""

import html
from collections.abc import Iterable
from pathlib import Path

import structlog
from bs4 import BeautifulSoup

from feedwise.analyzer.config import AnalyzerConfig
from feedwise.analyzer.constants import (
    EXTERNAL_LINK_PREFIXES,
    LENGTH_BUCKETS,
    MIN_LENGTH_SCORE,
    NEUTRAL_SCORE,
)
from feedwise.analyzer.models import ArticleScore, ContentComponents, ScoredContent
from feedwise.store.models import ContentItem


logger = structlog.get_logger()


def load_interests(path: Path | str) -> list[str]:
    """Read interest phrases, one per non-blank line.

    Args:
        path: Interests file.

    Returns:
        Stripped interest phrases in file order.
    """
    lines = Path(path).read_text(encoding="utf-8").splitlines()
    return [line.strip() for line in lines if line.strip()]


class ContentAnalyzer:
    """Scores items for content quality and match with reader interests.

    Scoring formula:
        content = 0.4 * length + 0.4 * keyword + 0.2 * link
        overall = 0.5 * interest + 0.5 * content

    Where:
        - length: Bucketed character count of the extracted text
        - keyword: Fraction of the value vocabulary found in the text
        - link: Fraction of anchors pointing at http(s) targets (0.5 if none)
        - interest: Fraction of interest phrases matched (0.5 if none configured)

    The analyzer holds only immutable configuration and is safe to share.
    """

    def __init__(
        self,
        interests: Iterable[str] = (),
        config: AnalyzerConfig | None = None,
    ) -> None:
        """Initialize the analyzer.

        Args:
            interests: Interest phrases.
            config: Scoring weights and vocabulary.
        """
        self._config = config or AnalyzerConfig()
        self._interests: tuple[tuple[str, ...], ...] = tuple(
            words
            for words in (tuple(phrase.lower().split()) for phrase in interests)
            if words
        )
        self._keywords = tuple(k.lower() for k in self._config.value_keywords)
        self._log = logger.bind(component="analyzer")

    @classmethod
    def from_interests_file(
        cls,
        path: Path | str,
        config: AnalyzerConfig | None = None,
    ) -> "ContentAnalyzer":
        """Build an analyzer from an interests file.

        Args:
            path: File with one interest phrase per line.
            config: Scoring weights and vocabulary.

        Returns:
            Configured analyzer.
        """
        interests = load_interests(path)
        logger.info(
            "interests_loaded",
            component="analyzer",
            path=str(path),
            count=len(interests),
        )
        return cls(interests=interests, config=config)

    @property
    def interest_count(self) -> int:
        """Number of configured interest phrases."""
        return len(self._interests)

    def analyze(self, item: ContentItem) -> ArticleScore:
        """Score a stored item, using its body or else its summary.

        Args:
            item: Item to score.

        Returns:
            The item's score.
        """
        return self.analyze_text(item.title, item.body)

    def analyze_text(self, title: str, body: str) -> ArticleScore:
        """Score raw item text.

        Args:
            title: Item title.
            body: HTML or plain-text body.

        Returns:
            Score with all components in [0, 1].
        """
        soup = BeautifulSoup(html.unescape(body or ""), "lxml")
        text = soup.get_text()
        hrefs = [anchor.get("href") or "" for anchor in soup.find_all("a")]

        components = ContentComponents(
            length_score=self._length_score(text),
            keyword_score=self._keyword_score(text),
            link_score=self._link_score(hrefs),
        )
        cfg = self._config
        content_score = (
            cfg.length_weight * components.length_score
            + cfg.keyword_weight * components.keyword_score
            + cfg.link_weight * components.link_score
        )
        interest_score = self._interest_score(f"{title} {text}")
        overall_score = (
            cfg.interest_weight * interest_score + cfg.content_weight * content_score
        )

        return ArticleScore(
            interest_score=interest_score,
            content_score=content_score,
            overall_score=overall_score,
            components=components,
        )

    def analyze_many(self, items: Iterable[ContentItem]) -> list[ScoredContent]:
        """Score items and order them by overall score, best first.

        Args:
            items: Items to score.

        Returns:
            Scored items; ties keep input order.
        """
        scored = [ScoredContent(item=item, score=self.analyze(item)) for item in items]
        scored.sort(key=lambda s: s.score.overall_score, reverse=True)
        self._log.debug("items_analyzed", count=len(scored))
        return scored

    def _length_score(self, text: str) -> float:
        length = len(text)
        for threshold, score in LENGTH_BUCKETS:
            if length > threshold:
                return score
        return MIN_LENGTH_SCORE

    def _keyword_score(self, text: str) -> float:
        lowered = text.lower()
        found = sum(1 for keyword in self._keywords if keyword in lowered)
        return found / len(self._keywords)

    def _link_score(self, hrefs: list[str]) -> float:
        if not hrefs:
            return NEUTRAL_SCORE
        external = sum(1 for href in hrefs if href.startswith(EXTERNAL_LINK_PREFIXES))
        return external / len(hrefs)

    def _interest_score(self, text: str) -> float:
        if not self._interests:
            return NEUTRAL_SCORE
        lowered = text.lower()
        ratio = self._config.interest_match_ratio
        matched = 0
        for words in self._interests:
            found = sum(1 for word in words if word in lowered)
            if found >= len(words) * ratio:
                matched += 1
        return matched / len(self._interests)
