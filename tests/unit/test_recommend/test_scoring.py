"""Tests for recency decay and score blending."""

from datetime import timedelta

import pytest

from feedwise.recommend.config import RankerConfig
from feedwise.recommend.ranker import blend_score, recency_factor
from tests.helpers.time import FIXED_NOW


class TestRecencyFactor:
    """Tests for recency_factor."""

    @pytest.mark.parametrize(
        ("age", "expected"),
        [
            (timedelta(0), 1.0),
            (timedelta(days=1), 1 - 1 / 7),
            (timedelta(days=3, hours=12), 0.5),
            (timedelta(days=7), 0.0),
            (timedelta(days=30), 0.0),
        ],
    )
    def test_linear_decay(self, age: timedelta, expected: float) -> None:
        """Recency decays linearly over the window using fractional days."""
        assert recency_factor(FIXED_NOW - age, FIXED_NOW, 7) == pytest.approx(
            expected
        )

    def test_future_items_clamped(self) -> None:
        """Items dated in the future do not exceed 1."""
        assert recency_factor(FIXED_NOW + timedelta(days=2), FIXED_NOW, 7) == 1.0

    def test_naive_timestamps_treated_as_utc(self) -> None:
        """Naive datetimes are interpreted as UTC."""
        naive = (FIXED_NOW - timedelta(days=1)).replace(tzinfo=None)
        assert recency_factor(naive, FIXED_NOW, 7) == pytest.approx(6 / 7)


class TestBlendScore:
    """Tests for blend_score."""

    def test_without_affinity_score_is_recency(self) -> None:
        """Unrated sources are ranked by recency alone."""
        assert blend_score(0.4, None, RankerConfig()) == 0.4

    def test_with_affinity(self) -> None:
        """0.7 * affinity + 0.3 * recency with the default weights."""
        score = blend_score(1.0, 4.0, RankerConfig())
        assert score == pytest.approx(0.7 * 4.0 + 0.3 * 1.0)

    def test_custom_weights(self) -> None:
        """Weights come from the ranker configuration."""
        config = RankerConfig(affinity_weight=0.5, recency_weight=0.5)
        assert blend_score(0.0, 2.0, config) == pytest.approx(1.0)
