"""Builders for store records used across tests."""

import uuid
from datetime import datetime, timedelta

from feedwise.feeds.models import CandidateItem
from feedwise.store.models import ContentItem, Source
from feedwise.store.store import ContentStore
from tests.helpers.time import FIXED_NOW


def make_content(
    source_id: str,
    link: str | None = None,
    title: str = "Test article",
    published_at: datetime | None = None,
    content_id: str | None = None,
    description: str = "A short summary.",
    content: str | None = None,
    categories: frozenset[str] = frozenset(),
) -> ContentItem:
    """Create a ContentItem with sensible defaults."""
    item_id = content_id or str(uuid.uuid4())
    return ContentItem(
        id=item_id,
        source_id=source_id,
        title=title,
        link=link or f"https://example.com/articles/{item_id}",
        description=description,
        content=content,
        published_at=published_at or FIXED_NOW - timedelta(hours=1),
        fetched_at=FIXED_NOW,
        categories=categories,
    )


def make_candidate(
    link: str,
    published_at: datetime | None,
    title: str = "Entry",
) -> CandidateItem:
    """Create a CandidateItem as the feed fetcher would return it."""
    return CandidateItem(
        title=title,
        link=link,
        summary=f"Summary of {title}",
        published_at=published_at,
    )


def add_source(
    store: ContentStore,
    name: str = "Example Blog",
    url: str | None = None,
    source_id: str | None = None,
) -> Source:
    """Register a source with a unique feed URL."""
    return store.create_source(
        name=name,
        url=url or f"https://example.com/{uuid.uuid4().hex[:8]}/feed.xml",
        source_id=source_id,
    )
