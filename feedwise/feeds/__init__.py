"""Feed retrieval, normalization, and feed-list import."""

from feedwise.feeds.errors import ErrorRecord, FeedErrorClass, FetchFailure
from feedwise.feeds.fetcher import FeedFetcher
from feedwise.feeds.models import CandidateItem
from feedwise.feeds.opml import FeedDescriptor, import_feeds, parse_opml


__all__ = [
    "CandidateItem",
    "ErrorRecord",
    "FeedDescriptor",
    "FeedErrorClass",
    "FeedFetcher",
    "FetchFailure",
    "import_feeds",
    "parse_opml",
]
