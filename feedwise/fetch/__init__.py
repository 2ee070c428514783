"""HTTP retrieval of feed documents."""

from feedwise.fetch.client import HttpFetcher
from feedwise.fetch.config import FetchConfig
from feedwise.fetch.metrics import FetchMetrics
from feedwise.fetch.models import FetchError, FetchErrorClass, FetchResult


__all__ = [
    "FetchConfig",
    "FetchError",
    "FetchErrorClass",
    "FetchMetrics",
    "FetchResult",
    "HttpFetcher",
]
