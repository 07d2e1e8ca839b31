from decimal import Decimal

import pytest

from project_health.domain.models import NO_SCORE, TrafficLight
from project_health.domain.scoring import (
    classify,
    dimension_average,
    overall_mean,
    overall_score,
    status_label,
    to_decimal,
)
from project_health.infrastructure.exceptions import EmptyInputError


class TestDimensionAverage:
    def test_mean_rounded_to_one_decimal(self):
        assert dimension_average([5, 5, 5, 5]) == Decimal("5.0")
        assert dimension_average([3, 4, 5, 4]) == Decimal("4.0")
        assert str(dimension_average([3, 4, 5, 4])) == "4.0"
        assert dimension_average([1, 2, 3, 4]) == Decimal("2.5")

    def test_half_up_rounding(self):
        """Ties round away from zero, not to even."""
        assert dimension_average([2, 2, 2, 3]) == Decimal("2.3")
        assert dimension_average([3, 3, 2, 3]) == Decimal("2.8")
        assert dimension_average([1, 1, 1, 2]) == Decimal("1.3")

    def test_empty_input_yields_zero(self):
        assert dimension_average([]) == Decimal("0")

    def test_empty_input_strict_raises(self):
        with pytest.raises(EmptyInputError):
            dimension_average([], strict=True)

    def test_accepts_numeric_strings(self):
        assert dimension_average(["5", "4", "4", "4"]) == Decimal("4.3")


class TestOverallScore:
    def test_unweighted_mean(self):
        assert overall_score(["4.0", "3.5", "3.0", "4.5", "5.0"]) == Decimal("4.0")
        assert overall_score([4.2, 3.8, 3.5, 4.1, 3.9]) == Decimal("3.9")

    def test_no_dimensions_gives_sentinel(self):
        assert overall_score([]) == NO_SCORE
        assert overall_mean([]) is None

    def test_overall_mean_is_unrounded(self):
        assert overall_mean(["4.0", "4.0", "4.0", "4.0", "3.9"]) == Decimal("3.98")

    def test_float_inputs_have_no_binary_noise(self):
        assert to_decimal(0.1) == Decimal("0.1")

    def test_non_numeric_rejected(self):
        with pytest.raises(ValueError):
            to_decimal("abc")


class TestClassify:
    @pytest.mark.parametrize(
        ("score", "expected"),
        [
            (5, TrafficLight.GOOD),
            ("4.0", TrafficLight.GOOD),
            (3.99, TrafficLight.WARNING),
            ("3.999", TrafficLight.WARNING),
            (3.0, TrafficLight.WARNING),
            (Decimal("2.9"), TrafficLight.CRITICAL),
            (2.999, TrafficLight.CRITICAL),
            (1, TrafficLight.CRITICAL),
        ],
    )
    def test_bands_have_inclusive_lower_bounds(self, score, expected):
        assert classify(score) == expected

    def test_status_labels(self):
        assert status_label(TrafficLight.GOOD) == "Healthy"
        assert status_label("warning") == "At risk"
        assert status_label(TrafficLight.CRITICAL) == "Critical"
        assert status_label(None) == "N/A"
        assert status_label("unknown") == "N/A"
