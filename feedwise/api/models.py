"""Request and response models for the reader API.

Field names are snake_case in Python and camelCase on the wire.
"""

from datetime import datetime
from typing import Annotated, Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, StrictInt
from pydantic.alias_generators import to_camel

from feedwise.recommend.models import Recommendation
from feedwise.store.models import ContentItem, Feedback, FetchJob, JobStatus


class ApiModel(BaseModel):
    """Base for all API payloads."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    status_code: ClassVar[int] = 200

    def to_body(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


# ===== Requests =====


class FetchJobRequest(ApiModel):
    """Request to start ingestion."""

    source_id: str | None = None
    days: StrictInt | None = None


class RecommendationsRequest(ApiModel):
    """Request for ranked recommendations."""

    user_id: str | None = None
    source_ids: list[str] = Field(default_factory=list)
    limit: StrictInt | None = None


class SearchRequest(ApiModel):
    """Keyword search over stored content."""

    keywords: Annotated[str, Field(min_length=1)]
    source_id: str | None = None
    limit: Annotated[StrictInt, Field(ge=1, le=500)] = 50


# ===== Responses =====


class FetchJobAccepted(ApiModel):
    """Acknowledgement that a job was created."""

    status_code: ClassVar[int] = 202

    job_id: str
    status: JobStatus


class FetchJobView(ApiModel):
    """Snapshot of a fetch job."""

    job_id: str
    status: JobStatus
    started_at: datetime
    completed_at: datetime | None = None
    items_processed: int
    source_id: str | None = None
    days: int
    errors: list[str]

    @classmethod
    def from_job(cls, job: FetchJob) -> "FetchJobView":
        """Build a view from a stored job."""
        return cls(
            job_id=job.id,
            status=job.status,
            started_at=job.started_at,
            completed_at=job.completed_at,
            items_processed=job.items_processed,
            source_id=job.source_id,
            days=job.days,
            errors=list(job.errors),
        )


class ContentView(ApiModel):
    """A stored content item."""

    id: str
    source_id: str
    title: str
    link: str
    description: str
    content: str | None = None
    published_at: datetime
    fetched_at: datetime
    author: str | None = None
    categories: list[str]

    @classmethod
    def from_item(cls, item: ContentItem) -> "ContentView":
        """Build a view from a stored item."""
        return cls(
            id=item.id,
            source_id=item.source_id,
            title=item.title,
            link=item.link,
            description=item.description,
            content=item.content,
            published_at=item.published_at,
            fetched_at=item.fetched_at,
            author=item.author,
            categories=sorted(item.categories),
        )


class RecommendationView(ApiModel):
    """A recommended item with its ranking score."""

    content: ContentView
    score: float

    @classmethod
    def from_recommendation(cls, rec: Recommendation) -> "RecommendationView":
        """Build a view from a ranked recommendation."""
        return cls(content=ContentView.from_item(rec.content), score=rec.score)


class RecommendationsResponse(ApiModel):
    """Ranked recommendations."""

    recommendations: list[RecommendationView]
    count: int


class FeedbackView(ApiModel):
    """A stored feedback record."""

    status_code: ClassVar[int] = 201

    id: str
    content_id: str
    user_id: str
    rating: int
    timestamp: datetime
    comment: str | None = None

    @classmethod
    def from_feedback(cls, feedback: Feedback) -> "FeedbackView":
        """Build a view from stored feedback."""
        return cls(
            id=feedback.id,
            content_id=feedback.content_id,
            user_id=feedback.user_id,
            rating=feedback.rating,
            timestamp=feedback.timestamp,
            comment=feedback.comment,
        )


class UserFeedbackResponse(ApiModel):
    """A reader's feedback history."""

    feedback: list[FeedbackView]
    count: int


class ContentListResponse(ApiModel):
    """A list of content items."""

    contents: list[ContentView]
    count: int
