"""Configuration for recommendation ranking."""

from typing import Annotated

from pydantic import Field

from feedwise.data_model.base import StrictBaseModel


class RankerConfig(StrictBaseModel):
    """Window, weights, and default size for recommendations.

    Attributes:
        window_days: Candidate horizon; also the recency decay length.
        affinity_weight: Weight of the user's average source rating.
        recency_weight: Weight of the recency factor.
        default_limit: Result count when the request gives none.
    """

    window_days: Annotated[int, Field(ge=1, le=365)] = 7
    affinity_weight: Annotated[float, Field(ge=0.0)] = 0.7
    recency_weight: Annotated[float, Field(ge=0.0)] = 0.3
    default_limit: Annotated[int, Field(ge=1, le=1000)] = 10
