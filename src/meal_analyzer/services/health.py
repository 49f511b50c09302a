"""Heuristic health score for an analyzed meal."""

from collections.abc import Sequence

from meal_analyzer.domain.analysis import NutrientTuple
from meal_analyzer.domain.health import (
    Grade,
    HealthFactors,
    HealthFeedback,
    HealthScoreResult,
)
from meal_analyzer.services.scaling import round_half_up

TARGET_SPLIT = {"protein": 30.0, "carbs": 40.0, "fat": 30.0}
REFERENCE_MEAL_KCAL = 500.0
NEUTRAL_CALORIE_SCORE = 50.0

WEIGHTS = {
    "macro_balance": 0.35,
    "calorie_density": 0.25,
    "protein_quality": 0.25,
    "processing_level": 0.15,
}

PROCESSED_KEYWORDS = (
    "fried",
    "deep fried",
    "processed",
    "canned",
    "packaged",
    "fast food",
    "soda",
    "sweetened",
    "sugar",
    "syrup",
    "artificial",
    "preserved",
)
WHOLE_FOOD_KEYWORDS = (
    "fresh",
    "raw",
    "steamed",
    "grilled",
    "baked",
    "boiled",
    "organic",
)
PROCESSED_PENALTY = 15.0
WHOLE_FOOD_BONUS = 5.0


def compute_health_score(
    totals: NutrientTuple, item_labels: Sequence[str]
) -> HealthScoreResult:
    """Score a meal from its totals and item labels.

    Four factors are combined with fixed weights: macro balance against a
    30/40/30 protein/carbs/fat split, calorie distance from a ~500 kcal
    reference meal, protein share, and a keyword heuristic for processing.
    Negative inputs are treated as zero.
    """
    calories = max(0.0, totals.calories)
    protein = max(0.0, totals.protein)
    carbs = max(0.0, totals.carbs)
    fat = max(0.0, totals.fat)

    macro_total = protein + carbs + fat
    if macro_total > 0:
        protein_ratio = protein / macro_total * 100
        carbs_ratio = carbs / macro_total * 100
        fat_ratio = fat / macro_total * 100
    else:
        protein_ratio = carbs_ratio = fat_ratio = 0.0

    macro_balance = (
        100
        - (
            abs(protein_ratio - TARGET_SPLIT["protein"])
            + abs(carbs_ratio - TARGET_SPLIT["carbs"])
            + abs(fat_ratio - TARGET_SPLIT["fat"])
        )
        / 3
    )
    if calories > 0:
        calorie_density = max(0.0, 100 - abs(calories - REFERENCE_MEAL_KCAL) / 5)
    else:
        calorie_density = NEUTRAL_CALORIE_SCORE
    protein_quality = min(100.0, protein_ratio * 2)
    processing_level = _processing_score(item_labels)

    factors = HealthFactors(
        macro_balance=_clamp(macro_balance),
        calorie_density=_clamp(calorie_density),
        protein_quality=_clamp(protein_quality),
        processing_level=_clamp(processing_level),
    )
    weighted = (
        factors.macro_balance * WEIGHTS["macro_balance"]
        + factors.calorie_density * WEIGHTS["calorie_density"]
        + factors.protein_quality * WEIGHTS["protein_quality"]
        + factors.processing_level * WEIGHTS["processing_level"]
    )
    score = int(_clamp(round_half_up(weighted)))
    return HealthScoreResult(
        score=score,
        grade=grade_for(score),
        factors=factors,
        feedback=_build_feedback(factors, calories, score),
    )


def grade_for(score: int) -> Grade:
    """Map a 0-100 score to a letter grade."""
    if score >= 90:
        return "A"
    if score >= 70:
        return "B"
    if score >= 50:
        return "C"
    if score >= 30:
        return "D"
    return "F"


def _processing_score(item_labels: Sequence[str]) -> float:
    names = " ".join(label.lower() for label in item_labels if label)
    score = 100.0
    for keyword in PROCESSED_KEYWORDS:
        if keyword in names:
            score -= PROCESSED_PENALTY
    for keyword in WHOLE_FOOD_KEYWORDS:
        if keyword in names:
            score = min(100.0, score + WHOLE_FOOD_BONUS)
    return score


def _build_feedback(
    factors: HealthFactors, calories: float, score: int
) -> list[HealthFeedback]:
    feedback: list[HealthFeedback] = []
    if factors.macro_balance < 50:
        feedback.append(
            HealthFeedback(
                key="macroBalance",
                label="Macro balance",
                action="increase",
                message="Macronutrient balance could be improved",
            )
        )
    if factors.calorie_density < 50:
        if calories > 700:
            feedback.append(
                HealthFeedback(
                    key="calorieDensity",
                    label="Calorie density",
                    action="reduce",
                    message="High calorie content - consider portion size",
                )
            )
        elif calories < 300:
            feedback.append(
                HealthFeedback(
                    key="calorieDensity",
                    label="Calorie density",
                    action="monitor",
                    message="Low calorie content - may need additional nutrients",
                )
            )
    if factors.protein_quality < 50:
        feedback.append(
            HealthFeedback(
                key="proteinQuality",
                label="Protein quality",
                action="increase",
                message="Consider adding more protein sources",
            )
        )
    if factors.processing_level < 50:
        feedback.append(
            HealthFeedback(
                key="processingLevel",
                label="Processing level",
                action="reduce",
                message="Contains processed ingredients - whole foods are better",
            )
        )

    if score >= 80:
        feedback.append(
            HealthFeedback(
                key="overall",
                label="Overall balance",
                action="celebrate",
                message="Great nutritional balance!",
            )
        )
    elif score >= 60:
        feedback.append(
            HealthFeedback(
                key="overall",
                label="Overall balance",
                action="monitor",
                message="Good nutritional profile with room for improvement",
            )
        )
    else:
        feedback.append(
            HealthFeedback(
                key="overall",
                label="Overall balance",
                action="reduce",
                message="Consider healthier alternatives",
            )
        )
    return feedback


def _clamp(value: float) -> float:
    return max(0.0, min(100.0, float(value)))
