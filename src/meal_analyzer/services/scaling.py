"""Scale basis nutrients to a portion and aggregate totals."""

import math
from collections.abc import Iterable

from meal_analyzer.domain.analysis import AnalysisTotals, AnalyzedItem, NutrientTuple

_OPTIONAL_FIELDS = ("fiber", "sugars", "sat_fat", "sodium")


def scale_nutrients(basis: NutrientTuple, portion_grams: float) -> NutrientTuple:
    """Scale per-100g basis values to ``portion_grams``.

    Calories round to whole kcal, everything else to one decimal, halves
    rounding up. Unknown optional fields stay unknown.
    """
    if portion_grams <= 0:
        raise ValueError("portion_grams must be positive")
    ratio = portion_grams / 100.0
    optional = {
        name: _round_tenth(value * ratio)
        for name in _OPTIONAL_FIELDS
        if (value := getattr(basis, name)) is not None
    }
    return NutrientTuple(
        calories=round_half_up(max(0.0, basis.calories) * ratio),
        protein=_round_tenth(basis.protein * ratio),
        carbs=_round_tenth(basis.carbs * ratio),
        fat=_round_tenth(basis.fat * ratio),
        **optional,
    )


def sum_totals(items: Iterable[AnalyzedItem]) -> AnalysisTotals:
    """Sum item nutrients pointwise, counting unknown fields as zero."""
    totals = {
        "calories": 0.0,
        "protein": 0.0,
        "carbs": 0.0,
        "fat": 0.0,
        "fiber": 0.0,
        "sugars": 0.0,
        "sat_fat": 0.0,
        "sodium": 0.0,
    }
    portion_grams = 0.0
    for item in items:
        for name in totals:
            totals[name] += getattr(item.nutrients, name) or 0.0
        portion_grams += item.portion_grams

    rounded = {name: round_half_up(value, 1) for name, value in totals.items()}
    energy_density = (
        round_half_up(totals["calories"] / portion_grams * 100.0, 1)
        if portion_grams > 0
        else 0.0
    )
    return AnalysisTotals(
        **rounded,
        energy_density=energy_density,
        portion_grams=round_half_up(portion_grams, 1),
    )


def round_half_up(value: float, digits: int = 0) -> float:
    """Round to ``digits`` decimals with exact halves going up, not to even."""
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


def _round_tenth(value: float) -> float:
    return round_half_up(max(0.0, value), 1)
