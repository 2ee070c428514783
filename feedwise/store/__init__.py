"""SQLite persistence for sources, content, fetch jobs, and feedback."""

from feedwise.store.errors import (
    DuplicateLinkError,
    MigrationError,
    NotFoundError,
    PersistenceFailure,
    StoreError,
)
from feedwise.store.metrics import StoreMetrics
from feedwise.store.models import (
    ContentItem,
    Feedback,
    FetchJob,
    JobStatus,
    Source,
    StoreStats,
)
from feedwise.store.store import ContentStore


__all__ = [
    "ContentItem",
    "ContentStore",
    "DuplicateLinkError",
    "Feedback",
    "FetchJob",
    "JobStatus",
    "MigrationError",
    "NotFoundError",
    "PersistenceFailure",
    "Source",
    "StoreError",
    "StoreMetrics",
    "StoreStats",
]
