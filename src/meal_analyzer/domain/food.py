"""Nutrition database domain models."""

from dataclasses import dataclass, field
from enum import StrEnum


class DataTypeClass(StrEnum):
    """Provenance tier of a nutrition record, using FDC data type names."""

    BRANDED = "Branded"
    FOUNDATION = "Foundation"
    SURVEY = "Survey (FNDDS)"
    LEGACY = "SR Legacy"


class FoodSource(StrEnum):
    """Where a food record was resolved from."""

    LOCAL = "local"
    REMOTE_API = "remote_api"
    KEYWORD_TABLE = "keyword_table"


@dataclass(frozen=True)
class Portion:
    """A discrete known serving of a food, e.g. 1 slice = 30g."""

    gram_weight: float
    measure_unit_label: str
    modifier: str | None = None
    amount: float | None = None


@dataclass(frozen=True)
class NutrientEntry:
    """Per-100g composition value keyed by FDC nutrient id."""

    nutrient_type_id: int
    amount: float


@dataclass(frozen=True)
class LabelNutrients:
    """On-label per-serving values of a branded food."""

    calories: float | None = None
    protein: float | None = None
    fat: float | None = None
    carbohydrates: float | None = None
    fiber: float | None = None
    sugars: float | None = None
    sodium: float | None = None
    saturated_fat: float | None = None


@dataclass(frozen=True)
class FoodRecord:
    """A food as stored in the nutrition database."""

    external_id: int
    description: str
    data_type: DataTypeClass | None
    source: FoodSource = FoodSource.LOCAL
    brand_owner: str | None = None
    scientific_name: str | None = None
    serving_size_grams: float | None = None
    portions: tuple[Portion, ...] = field(default_factory=tuple)
    nutrient_entries: tuple[NutrientEntry, ...] = field(default_factory=tuple)
    label_nutrients: LabelNutrients | None = None


@dataclass(frozen=True)
class MatchCandidate:
    """Ranked result of a text lookup."""

    record: FoodRecord
    score: float


def parse_data_type(raw: object) -> DataTypeClass | None:
    """Map an FDC data type string to the enum, tolerating unknown values."""
    if not isinstance(raw, str):
        return None
    try:
        return DataTypeClass(raw)
    except ValueError:
        return None
