"""Reader API facade.

Transport-independent entry points for ingestion, recommendations, and
feedback. An HTTP adapter maps each call onto a route and uses
``respond`` to turn results and errors into status codes and bodies.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, TypeVar

import structlog
from pydantic import ValidationError

from feedwise.api.errors import ApiError, ApiNotFound, ValidationFailure
from feedwise.api.models import (
    ApiModel,
    ContentListResponse,
    ContentView,
    FeedbackView,
    FetchJobAccepted,
    FetchJobRequest,
    FetchJobView,
    RecommendationsRequest,
    RecommendationsResponse,
    RecommendationView,
    SearchRequest,
    UserFeedbackResponse,
)
from feedwise.ingest.supervisor import JobSupervisor
from feedwise.recommend.feedback import FeedbackService
from feedwise.recommend.models import FeedbackInput
from feedwise.recommend.ranker import RecommendationRanker
from feedwise.store.errors import NotFoundError
from feedwise.store.models import JobStatus
from feedwise.store.store import ContentStore


logger = structlog.get_logger()

RequestT = TypeVar("RequestT", bound=ApiModel)


@dataclass(frozen=True)
class ApiResponse:
    """Status code and JSON body for a transport adapter."""

    status_code: int
    body: dict[str, Any]


def respond(call: Callable[[], ApiModel]) -> ApiResponse:
    """Run an API call and render its outcome.

    Args:
        call: Zero-argument callable invoking a ReaderApi method.

    Returns:
        Success body with the model's status code, or a structured error.
    """
    try:
        result = call()
    except NotFoundError as e:
        error: ApiError = ApiNotFound.from_store(e)
    except ApiError as e:
        error = e
    else:
        return ApiResponse(status_code=result.status_code, body=result.to_body())

    logger.info(
        "api_error",
        component="api",
        status_code=error.status_code,
        error_type=error.error_type,
    )
    return ApiResponse(status_code=error.status_code, body=error.to_dict())


def _parse(model: type[RequestT], payload: RequestT | Mapping[str, Any]) -> RequestT:
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(dict(payload))
    except ValidationError as e:
        raise ValidationFailure.from_validation_error(e) from e


class ReaderApi:
    """Typed entry points over the ingestion, ranking, and feedback services."""

    def __init__(
        self,
        store: ContentStore,
        supervisor: JobSupervisor,
        ranker: RecommendationRanker,
        feedback: FeedbackService,
    ) -> None:
        """Initialize the API.

        Args:
            store: Connected content store.
            supervisor: Runs fetch jobs in the background.
            ranker: Recommendation ranker.
            feedback: Feedback service.
        """
        self._store = store
        self._supervisor = supervisor
        self._ranker = ranker
        self._feedback = feedback
        self._log = logger.bind(component="api")

    def create_fetch_job(
        self, request: FetchJobRequest | Mapping[str, Any] | None = None
    ) -> FetchJobAccepted:
        """Start ingestion and return without waiting for it.

        Raises:
            ValidationFailure: If the request is malformed.
        """
        req = _parse(FetchJobRequest, request or {})
        handle = self._supervisor.submit(source_id=req.source_id, days=req.days)
        self._log.info("fetch_job_accepted", job_id=handle.job_id)
        return FetchJobAccepted(job_id=handle.job_id, status=JobStatus.PENDING)

    def get_fetch_job(self, job_id: str) -> FetchJobView:
        """Get a job snapshot.

        Raises:
            ApiNotFound: If the job does not exist.
        """
        job = self._store.get_job(job_id)
        if job is None:
            raise ApiNotFound("job", job_id)
        return FetchJobView.from_job(job)

    def get_recommendations(
        self, request: RecommendationsRequest | Mapping[str, Any] | None = None
    ) -> RecommendationsResponse:
        """Rank recent content for a reader.

        Raises:
            ValidationFailure: If the request is malformed.
        """
        req = _parse(RecommendationsRequest, request or {})
        recs = self._ranker.recommend(
            user_id=req.user_id, source_ids=req.source_ids, limit=req.limit
        )
        views = [RecommendationView.from_recommendation(rec) for rec in recs]
        return RecommendationsResponse(recommendations=views, count=len(views))

    def submit_feedback(
        self, request: FeedbackInput | Mapping[str, Any]
    ) -> FeedbackView:
        """Store a reader's rating.

        Raises:
            ValidationFailure: If a field is missing or out of range.
            ApiNotFound: If the rated content does not exist.
        """
        try:
            feedback = self._feedback.submit(request)
        except NotFoundError as e:
            raise ApiNotFound.from_store(e) from e
        return FeedbackView.from_feedback(feedback)

    def get_user_feedback(self, user_id: str) -> UserFeedbackResponse:
        """List a reader's ratings, newest first."""
        records = self._feedback.list_for_user(user_id)
        views = [FeedbackView.from_feedback(f) for f in records]
        return UserFeedbackResponse(feedback=views, count=len(views))

    def search_contents(
        self, request: SearchRequest | Mapping[str, Any]
    ) -> ContentListResponse:
        """Search stored content by keyword."""
        req = _parse(SearchRequest, request)
        items = self._store.search_contents(
            req.keywords, source_id=req.source_id, limit=req.limit
        )
        views = [ContentView.from_item(item) for item in items]
        return ContentListResponse(contents=views, count=len(views))

    def get_content(self, content_id: str) -> ContentView:
        """Get one content item.

        Raises:
            ApiNotFound: If the item does not exist.
        """
        item = self._store.get_content(content_id)
        if item is None:
            raise ApiNotFound("content", content_id)
        return ContentView.from_item(item)
