"""Data models for the content store."""

from datetime import datetime
from enum import Enum
from typing import Annotated

from pydantic import Field, field_serializer, field_validator

from feedwise.data_model.base import StrictBaseModel, ensure_utc


class JobStatus(str, Enum):
    """Lifecycle status of a fetch job.

    - PENDING: Created, not yet started.
    - IN_PROGRESS: Ingesting sources.
    - COMPLETED: Finished without recorded errors.
    - COMPLETED_WITH_ERRORS: Finished, at least one error recorded.
    - FAILED: Could not run at all.
    """

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    COMPLETED_WITH_ERRORS = "completed_with_errors"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Whether no further transitions are possible."""
        return self in TERMINAL_JOB_STATUSES


TERMINAL_JOB_STATUSES = frozenset(
    {JobStatus.COMPLETED, JobStatus.COMPLETED_WITH_ERRORS, JobStatus.FAILED}
)


class Source(StrictBaseModel):
    """A registered feed endpoint.

    Attributes:
        id: Stable source identifier.
        name: Display name.
        url: Feed URL.
        description: Free-form description.
        created_at: Registration time.
        updated_at: Last metadata change.
        last_fetched_at: Last time any job ingested this source.
    """

    id: Annotated[str, Field(min_length=1)]
    name: str
    url: Annotated[str, Field(min_length=1)]
    description: str = ""
    created_at: datetime
    updated_at: datetime
    last_fetched_at: datetime | None = None


class ContentItem(StrictBaseModel):
    """A stored article ingested from a source.

    Attributes:
        id: Content identifier.
        source_id: Owning source.
        title: Entry title.
        link: Canonical link; globally unique.
        description: Entry summary.
        content: Full entry body, when the feed carries one.
        published_at: Publication time.
        fetched_at: Time the entry was ingested.
        author: Author name, when present.
        categories: Unordered category tags.
    """

    id: Annotated[str, Field(min_length=1)]
    source_id: Annotated[str, Field(min_length=1)]
    title: str
    link: Annotated[str, Field(min_length=1)]
    description: str = ""
    content: str | None = None
    published_at: datetime
    fetched_at: datetime
    author: str | None = None
    categories: frozenset[str] = frozenset()

    @field_validator("published_at", "fetched_at")
    @classmethod
    def normalize_timestamps(cls, v: datetime) -> datetime:
        """Store all timestamps as aware UTC."""
        return ensure_utc(v)

    @field_validator("categories", mode="before")
    @classmethod
    def drop_blank_categories(cls, v: object) -> object:
        """Strip category tags and discard empty ones."""
        if isinstance(v, (list, tuple, set, frozenset)):
            return frozenset(c.strip() for c in v if isinstance(c, str) and c.strip())
        return v

    @field_serializer("categories")
    def serialize_categories(self, v: frozenset[str]) -> list[str]:
        """Serialize categories in a stable order."""
        return sorted(v)

    @property
    def body(self) -> str:
        """Full body if present, else the summary."""
        return self.content or self.description


class FetchJob(StrictBaseModel):
    """A persisted record of one ingestion run.

    Attributes:
        id: Job identifier.
        status: Current lifecycle status.
        started_at: Creation time.
        completed_at: Time the job reached a terminal status.
        items_processed: Items newly stored by this job.
        source_id: Single source to ingest, or None for all sources.
        days: Lookback window in days.
        errors: Error messages in the order they were recorded.
    """

    id: Annotated[str, Field(min_length=1)]
    status: JobStatus
    started_at: datetime
    completed_at: datetime | None = None
    items_processed: Annotated[int, Field(ge=0)] = 0
    source_id: str | None = None
    days: Annotated[int, Field(ge=1)]
    errors: tuple[str, ...] = ()


class Feedback(StrictBaseModel):
    """A user's rating of a content item.

    Attributes:
        id: Feedback identifier.
        content_id: Rated content.
        user_id: Rating user.
        rating: Integer rating in 1..5.
        timestamp: Submission time.
        comment: Optional free-text comment.
    """

    id: Annotated[str, Field(min_length=1)]
    content_id: Annotated[str, Field(min_length=1)]
    user_id: Annotated[str, Field(min_length=1)]
    rating: Annotated[int, Field(ge=1, le=5)]
    timestamp: datetime
    comment: str | None = None


class StoreStats(StrictBaseModel):
    """Row counts and schema version for the admin summary."""

    schema_version: int
    sources: int
    contents: int
    fetch_jobs: int
    feedback: int
    jobs_by_status: dict[str, int] = Field(default_factory=dict)
