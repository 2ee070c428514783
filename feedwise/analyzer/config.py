"""Configuration for the content analyzer."""

import math
from typing import Annotated

from pydantic import Field, model_validator

from feedwise.analyzer.constants import VALUE_KEYWORDS
from feedwise.data_model.base import StrictBaseModel


Weight = Annotated[float, Field(ge=0.0, le=1.0)]


class AnalyzerConfig(StrictBaseModel):
    """Weights and vocabulary for content scoring.

    Content weights and overall weights must each sum to 1 so that every
    score stays within [0, 1].
    """

    value_keywords: tuple[str, ...] = VALUE_KEYWORDS
    length_weight: Weight = 0.4
    keyword_weight: Weight = 0.4
    link_weight: Weight = 0.2
    interest_weight: Weight = 0.5
    content_weight: Weight = 0.5
    interest_match_ratio: Annotated[float, Field(gt=0.0, le=1.0)] = 0.5

    @model_validator(mode="after")
    def validate_weights(self) -> "AnalyzerConfig":
        """Reject weight sets that would leave the [0, 1] range."""
        content_total = self.length_weight + self.keyword_weight + self.link_weight
        if not math.isclose(content_total, 1.0, abs_tol=1e-9):
            msg = f"Content weights must sum to 1.0, got {content_total}"
            raise ValueError(msg)
        overall_total = self.interest_weight + self.content_weight
        if not math.isclose(overall_total, 1.0, abs_tol=1e-9):
            msg = f"Overall weights must sum to 1.0, got {overall_total}"
            raise ValueError(msg)
        if not self.value_keywords:
            msg = "value_keywords must not be empty"
            raise ValueError(msg)
        return self
