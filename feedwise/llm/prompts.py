"""Prompt templates for article analysis."""

from bs4 import BeautifulSoup

from feedwise.store.models import ContentItem


SYSTEM_INSTRUCTION = (
    "You are an expert at analyzing articles and providing insightful summaries."
)

MAX_CONTENT_CHARS = 8000

_ARTICLE_TEMPLATE = """Analyze this article and provide: 1) A concise summary 2) Key points 3) Why it's significant

Title: {title}
Content: {content}"""


def build_article_prompt(item: ContentItem) -> str:
    """Build the analysis prompt for one stored article.

    Markup is stripped and long bodies are cut to MAX_CONTENT_CHARS.
    """
    text = BeautifulSoup(item.body or "", "lxml").get_text(" ", strip=True)
    return _ARTICLE_TEMPLATE.format(
        title=item.title,
        content=text[:MAX_CONTENT_CHARS],
    )
