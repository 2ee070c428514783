"""Normalized feed entries."""

from datetime import datetime

from feedwise.data_model.base import StrictBaseModel


class CandidateItem(StrictBaseModel):
    """A feed entry before deduplication and storage.

    Attributes:
        title: Entry title.
        link: Entry link, or its GUID when the feed gives no link.
        summary: Entry summary or description.
        body: Full entry content, when the feed carries one.
        published_at: Publication time, falling back to the update time.
            None when the entry carries neither.
        author: Author name.
        categories: Category tags.
    """

    title: str
    link: str
    summary: str = ""
    body: str | None = None
    published_at: datetime | None = None
    author: str | None = None
    categories: frozenset[str] = frozenset()
