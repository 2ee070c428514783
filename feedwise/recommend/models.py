"""Data models for recommendations and feedback."""

from typing import Annotated

from pydantic import ConfigDict, Field, StrictInt
from pydantic.alias_generators import to_camel

from feedwise.data_model.base import StrictBaseModel
from feedwise.store.models import ContentItem


class Recommendation(StrictBaseModel):
    """A ranked content item."""

    content: ContentItem
    score: float


class FeedbackInput(StrictBaseModel):
    """A feedback submission before it is stored.

    Accepts both snake_case and camelCase field names.
    """

    model_config = ConfigDict(
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    content_id: Annotated[str, Field(min_length=1)]
    user_id: Annotated[str, Field(min_length=1)]
    rating: Annotated[StrictInt, Field(ge=1, le=5)]
    comment: str | None = None
