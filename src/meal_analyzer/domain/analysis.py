"""Analysis envelope models serialized to clients and the result cache."""

from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from meal_analyzer.domain.food import FoodSource
from meal_analyzer.domain.health import HealthScoreResult


class EnvelopeModel(BaseModel):
    """Immutable model with camelCase JSON field names."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class BasisKind(StrEnum):
    """Reference frame the basis nutrients were expressed in."""

    LABEL_PER_SERVING = "label_per_serving"
    COMPOSITION_PER_100G = "composition_per_100g"


class NutrientTuple(EnvelopeModel):
    """Calories (kcal) and nutrients (g, sodium in mg)."""

    calories: float = 0.0
    protein: float = 0.0
    carbs: float = 0.0
    fat: float = 0.0
    fiber: float | None = None
    sugars: float | None = None
    sat_fat: float | None = None
    sodium: float | None = None
    energy_density: float | None = None


class AnalysisTotals(NutrientTuple):
    """Pointwise sum of item nutrients plus the combined portion weight."""

    portion_grams: float = 0.0


class AnalyzedItem(EnvelopeModel):
    """A component resolved to a food record and scaled to its portion."""

    name: str
    label: str | None = None
    portion_grams: float
    nutrients: NutrientTuple
    source: FoodSource
    basis_used: BasisKind
    match_score: float
    external_id: int | None = None
    data_type: str | None = None
    trace_info: dict[str, object] = Field(default_factory=dict)


TraceType = Literal["matched", "no_match", "rate_limited", "error"]


class ComponentTrace(EnvelopeModel):
    """Per-component record of what the resolver did."""

    type: TraceType
    component_name: str
    query: str
    external_id: int | None = None
    score: float | None = None
    source: FoodSource | None = None
    error: str | None = None
    original_portion_grams: float | None = None
    final_portion_grams: float | None = None


SanityIssueType = Literal[
    "portion_too_small",
    "portion_too_large",
    "calories_per_gram_out_of_range",
    "macro_kcal_mismatch",
    "zero_calories_nonzero_portion",
    "suspicious_energy_density",
]


class SanityIssue(EnvelopeModel):
    """An implausible value detected in an analysis."""

    type: SanityIssueType
    level: Literal["warning", "error"]
    message: str
    item_index: int | None = None
    item_name: str | None = None


class AnalysisDebug(EnvelopeModel):
    """Trace block attached to every analysis."""

    components: list[ComponentTrace] = Field(default_factory=list)
    sanity: list[SanityIssue] = Field(default_factory=list)
    timestamp: str
    model: str | None = None
    outcome: Literal["analyzed", "nothing_detected"] = "analyzed"


class AnalysisResult(EnvelopeModel):
    """Result envelope returned for one analysis request."""

    items: list[AnalyzedItem]
    totals: AnalysisTotals
    health_score: HealthScoreResult | None = None
    debug: AnalysisDebug | None = None
    is_suspicious: bool = False

    def to_json(self) -> str:
        """Serialize with the public camelCase field names."""
        return self.model_dump_json(by_alias=True)
