"""Runs AI analysis over a list of ranked articles."""

from dataclasses import dataclass, field

import structlog

from feedwise.llm.client import ChatCompletionClient
from feedwise.llm.errors import LlmApiError
from feedwise.llm.prompts import SYSTEM_INSTRUCTION, build_article_prompt
from feedwise.store.models import ContentItem


logger = structlog.get_logger()


@dataclass
class ArticleInsight:
    """Outcome of analyzing one article.

    Exactly one of ``analysis`` and ``error`` is set.
    """

    content_id: str
    analysis: str | None = None
    error: str | None = None


@dataclass
class InsightPhaseResult:
    """Aggregated result of analyzing a batch of articles."""

    insights: dict[str, ArticleInsight] = field(default_factory=dict)
    api_calls_made: int = 0
    failures: int = 0


class InsightProcessor:
    """Asks the model for a summary, key points and significance per article.

    A failed article is recorded and the batch continues.
    """

    def __init__(self, client: ChatCompletionClient) -> None:
        self._client = client
        self._log = logger.bind(component="llm", subcomponent="processor")

    def analyze(self, items: list[ContentItem]) -> InsightPhaseResult:
        result = InsightPhaseResult()
        for item in items:
            result.api_calls_made += 1
            try:
                text = self._client.complete(
                    build_article_prompt(item), system_instruction=SYSTEM_INSTRUCTION
                )
            except LlmApiError as e:
                result.failures += 1
                self._log.warning(
                    "article_analysis_failed",
                    content_id=item.id,
                    status_code=e.status_code,
                    error=str(e),
                )
                result.insights[item.id] = ArticleInsight(item.id, error=str(e))
                continue
            result.insights[item.id] = ArticleInsight(item.id, analysis=text.strip())

        self._log.info(
            "article_analysis_complete",
            model=self._client.model,
            api_calls=result.api_calls_made,
            failures=result.failures,
        )
        return result
