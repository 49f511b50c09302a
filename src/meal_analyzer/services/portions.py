"""Snap estimated gram weights to known discrete portions."""

from collections.abc import Sequence

from meal_analyzer.domain.food import Portion

MIN_PORTION_GRAMS = 1.0


def select_portion(estimated_grams: float, known_portions: Sequence[Portion]) -> float:
    """Return the known portion weight closest to the estimate.

    Ties go to the smaller weight. Without usable portions the estimate is
    returned, floored at ``MIN_PORTION_GRAMS``.
    """
    estimate = max(MIN_PORTION_GRAMS, float(estimated_grams))
    weights = [
        float(portion.gram_weight)
        for portion in known_portions
        if portion.gram_weight > 0
    ]
    if not weights:
        return estimate
    return min(weights, key=lambda weight: (abs(weight - estimate), weight))
