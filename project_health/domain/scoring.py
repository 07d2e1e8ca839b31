"""
Score arithmetic shared by the whole engine.

All rounding uses ``ROUND_HALF_UP`` on ``Decimal`` values, so ``2.25`` becomes
``2.3`` and ``2.75`` becomes ``2.8``.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Literal

from ..infrastructure.exceptions import EmptyInputError
from .models import NO_SCORE, TrafficLight

ONE_DECIMAL = Decimal("0.1")
TWO_DECIMALS = Decimal("0.01")

GOOD_THRESHOLD = Decimal(4)
WARNING_THRESHOLD = Decimal(3)

Number = int | float | Decimal | str

_STATUS_LABELS = {
    TrafficLight.GOOD: "Healthy",
    TrafficLight.WARNING: "At risk",
    TrafficLight.CRITICAL: "Critical",
}


def to_decimal(value: Number) -> Decimal:
    """Convert ints, floats, Decimals and numeric strings without binary noise."""
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValueError(f"Not a numeric score: {value!r}") from exc


def round_score(value: Decimal, places: Decimal = ONE_DECIMAL) -> Decimal:
    return value.quantize(places, rounding=ROUND_HALF_UP)


def _mean(values: Iterable[Number], operation: str) -> Decimal:
    decimals = [to_decimal(v) for v in values]
    if not decimals:
        raise EmptyInputError(operation)
    return sum(decimals, Decimal(0)) / len(decimals)


def dimension_average(sub_scores: Iterable[Number], *, strict: bool = False) -> Decimal:
    """
    Mean of a dimension's sub-criterion ratings, rounded to one decimal.

    An empty input yields ``Decimal("0")``; with ``strict=True`` it raises
    ``EmptyInputError`` instead.

    Example:
        >>> dimension_average([1, 2, 3, 4])
        Decimal('2.5')
    """
    try:
        return round_score(_mean(sub_scores, "dimension average"))
    except EmptyInputError:
        if strict:
            raise
        return Decimal("0")


def overall_mean(dimension_scores: Iterable[Number]) -> Decimal | None:
    """Unrounded mean of the dimension scores; ``None`` when there are none."""
    try:
        return _mean(dimension_scores, "overall score")
    except EmptyInputError:
        return None


def overall_score(dimension_scores: Iterable[Number]) -> Decimal | Literal["-"]:
    """
    Unweighted mean of the dimension scores rounded to one decimal, or ``"-"``
    when the project has nothing to score.
    """
    mean = overall_mean(dimension_scores)
    if mean is None:
        return NO_SCORE
    return round_score(mean)


def classify(score: Number) -> TrafficLight:
    """
    Traffic-light band of a score. Lower bounds are inclusive:
    ``4.0`` is good and ``3.0`` is warning.
    """
    value = to_decimal(score)
    if value >= GOOD_THRESHOLD:
        return TrafficLight.GOOD
    if value >= WARNING_THRESHOLD:
        return TrafficLight.WARNING
    return TrafficLight.CRITICAL


def status_label(status: TrafficLight | str | None) -> str:
    if status is None:
        return "N/A"
    try:
        return _STATUS_LABELS[TrafficLight(status)]
    except ValueError:
        return "N/A"
