"""Feedback submission and retrieval."""

from collections.abc import Mapping
from typing import Any

import structlog
from pydantic import ValidationError

from feedwise.api.errors import ValidationFailure
from feedwise.recommend.metrics import RecommendMetrics
from feedwise.recommend.models import FeedbackInput
from feedwise.store.models import Feedback
from feedwise.store.store import ContentStore


logger = structlog.get_logger()


class FeedbackService:
    """Validates and stores reader ratings."""

    def __init__(self, store: ContentStore) -> None:
        """Initialize the service.

        Args:
            store: Connected content store.
        """
        self._store = store
        self._metrics = RecommendMetrics.get_instance()
        self._log = logger.bind(component="recommend")

    def submit(self, payload: FeedbackInput | Mapping[str, Any]) -> Feedback:
        """Validate and store a rating.

        Args:
            payload: Feedback fields, as a model or a raw mapping.

        Returns:
            The stored feedback.

        Raises:
            ValidationFailure: If a field is missing or out of range.
            NotFoundError: If the rated content does not exist.
        """
        if not isinstance(payload, FeedbackInput):
            try:
                payload = FeedbackInput.model_validate(dict(payload))
            except ValidationError as e:
                self._metrics.record_feedback(accepted=False)
                failure = ValidationFailure.from_validation_error(e)
                self._log.info("feedback_rejected", field=failure.field)
                raise failure from e

        feedback = self._store.create_feedback(
            content_id=payload.content_id,
            user_id=payload.user_id,
            rating=payload.rating,
            comment=payload.comment,
        )
        self._metrics.record_feedback(accepted=True)
        self._log.info(
            "feedback_recorded",
            feedback_id=feedback.id,
            content_id=feedback.content_id,
            user_id=feedback.user_id,
            rating=feedback.rating,
        )
        return feedback

    def list_for_user(self, user_id: str) -> list[Feedback]:
        """List a reader's feedback, newest first.

        Raises:
            ValidationFailure: If the user ID is blank.
        """
        if not user_id or not user_id.strip():
            raise ValidationFailure("userId", "must not be blank")
        return self._store.list_user_feedback(user_id.strip())
