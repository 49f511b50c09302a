"""Plausibility checks for analysis results."""

from collections.abc import Sequence

from meal_analyzer.domain.analysis import AnalysisTotals, AnalyzedItem, SanityIssue

MIN_PORTION_GRAMS = 5.0
MAX_PORTION_GRAMS = 1500.0
MAX_KCAL_PER_GRAM = 9.5
MACRO_KCAL_TOLERANCE = 0.35
MACRO_CHECK_MIN_KCAL = 50.0
ZERO_KCAL_MACRO_GRAMS = 1.0
MAX_MEAL_KCAL_PER_100G = 900.0


def check_sanity(
    items: Sequence[AnalyzedItem], totals: AnalysisTotals
) -> list[SanityIssue]:
    """Return plausibility issues for the items and the meal totals."""
    issues: list[SanityIssue] = []
    for index, item in enumerate(items):
        issues.extend(_check_item(index, item))

    if totals.portion_grams > 0:
        density = totals.calories / totals.portion_grams * 100
        if density > MAX_MEAL_KCAL_PER_100G:
            issues.append(
                SanityIssue(
                    type="suspicious_energy_density",
                    level="error",
                    message=(
                        f"Meal energy density {density:.0f} kcal/100g is implausible"
                    ),
                )
            )
    return issues


def is_suspicious(issues: Sequence[SanityIssue]) -> bool:
    """An analysis is suspicious when any error-level issue was found."""
    return any(issue.level == "error" for issue in issues)


def _check_item(index: int, item: AnalyzedItem) -> list[SanityIssue]:
    issues: list[SanityIssue] = []
    grams = item.portion_grams
    nutrients = item.nutrients

    if grams < MIN_PORTION_GRAMS:
        message = f"Portion of {grams:g} g is very small"
        issues.append(_issue("portion_too_small", "warning", message, index, item))
    elif grams > MAX_PORTION_GRAMS:
        message = f"Portion of {grams:g} g is very large"
        issues.append(_issue("portion_too_large", "warning", message, index, item))

    if grams > 0 and nutrients.calories / grams > MAX_KCAL_PER_GRAM:
        issues.append(
            _issue(
                "calories_per_gram_out_of_range",
                "error",
                f"{nutrients.calories / grams:.1f} kcal/g exceeds pure fat",
                index,
                item,
            )
        )

    macro_grams = nutrients.protein + nutrients.carbs + nutrients.fat
    if nutrients.calories == 0 and macro_grams > ZERO_KCAL_MACRO_GRAMS:
        issues.append(
            _issue(
                "zero_calories_nonzero_portion",
                "warning",
                "Zero calories reported for a portion with macronutrients",
                index,
                item,
            )
        )
    elif nutrients.calories >= MACRO_CHECK_MIN_KCAL:
        estimated = 4 * nutrients.protein + 4 * nutrients.carbs + 9 * nutrients.fat
        deviation = abs(estimated - nutrients.calories) / nutrients.calories
        if deviation > MACRO_KCAL_TOLERANCE:
            message = (
                f"Macros imply {estimated:.0f} kcal "
                f"but {nutrients.calories:.0f} kcal reported"
            )
            issues.append(
                _issue("macro_kcal_mismatch", "warning", message, index, item)
            )
    return issues


def _issue(
    issue_type: str, level: str, message: str, index: int, item: AnalyzedItem
) -> SanityIssue:
    return SanityIssue(
        type=issue_type,
        level=level,
        message=message,
        item_index=index,
        item_name=item.name,
    )
