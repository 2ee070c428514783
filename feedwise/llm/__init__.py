"""Optional AI commentary on top-ranked articles."""

from feedwise.llm.client import ChatCompletionClient
from feedwise.llm.errors import LlmApiError
from feedwise.llm.processor import ArticleInsight, InsightPhaseResult, InsightProcessor


__all__ = [
    "ArticleInsight",
    "ChatCompletionClient",
    "InsightPhaseResult",
    "InsightProcessor",
    "LlmApiError",
]
