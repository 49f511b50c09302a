"""Resolve a food record into a canonical nutrient tuple."""

from dataclasses import dataclass
from typing import Literal

from meal_analyzer.domain.analysis import BasisKind, NutrientTuple
from meal_analyzer.domain.food import FoodRecord, LabelNutrients, NutrientEntry

NUTRIENT_IDS = {
    "energy": 1008,
    "energy_atwater_general": 2047,
    "energy_atwater_specific": 2048,
    "protein": 1003,
    "fat": 1004,
    "carbs": 1005,
    "fiber": 1079,
    "sugars": 2000,
    "sodium": 1093,
    "sat_fat": 1258,
}

_ATWATER_IDS = (
    NUTRIENT_IDS["energy_atwater_general"],
    NUTRIENT_IDS["energy_atwater_specific"],
)

EnergySource = Literal["label", "atwater", "energy", "missing"]


@dataclass(frozen=True)
class ResolvedBasis:
    """Basis nutrients of a record and the frame they are expressed in."""

    basis: BasisKind
    nutrients: NutrientTuple
    energy_source: EnergySource


def resolve_basis(record: FoodRecord) -> ResolvedBasis:
    """Extract basis nutrients from a record.

    On-label values win when present. Otherwise composition entries are
    read by nutrient id, with Atwater-derived energy preferred over the
    plain energy entry. Missing values default to zero.
    """
    if record.label_nutrients is not None:
        return ResolvedBasis(
            basis=BasisKind.LABEL_PER_SERVING,
            nutrients=_from_label(record.label_nutrients),
            energy_source="label",
        )
    nutrients, energy_source = _from_entries(record.nutrient_entries)
    return ResolvedBasis(
        basis=BasisKind.COMPOSITION_PER_100G,
        nutrients=nutrients,
        energy_source=energy_source,
    )


def _from_label(label: LabelNutrients) -> NutrientTuple:
    return NutrientTuple(
        calories=_non_negative(label.calories),
        protein=_non_negative(label.protein),
        fat=_non_negative(label.fat),
        carbs=_non_negative(label.carbohydrates),
        fiber=_non_negative(label.fiber),
        sugars=_non_negative(label.sugars),
        sodium=_non_negative(label.sodium),
        sat_fat=(
            _non_negative(label.saturated_fat)
            if label.saturated_fat is not None
            else None
        ),
    )


def _from_entries(
    entries: tuple[NutrientEntry, ...],
) -> tuple[NutrientTuple, EnergySource]:
    amounts: dict[int, float] = {}
    for entry in entries:
        amounts.setdefault(entry.nutrient_type_id, entry.amount)

    energy_source: EnergySource = "missing"
    energy: float | None = None
    atwater = [amounts[key] for key in _ATWATER_IDS if key in amounts]
    if atwater:
        energy, energy_source = atwater[0], "atwater"
    elif NUTRIENT_IDS["energy"] in amounts:
        energy, energy_source = amounts[NUTRIENT_IDS["energy"]], "energy"

    sat_fat = amounts.get(NUTRIENT_IDS["sat_fat"])
    nutrients = NutrientTuple(
        calories=_non_negative(energy),
        protein=_non_negative(amounts.get(NUTRIENT_IDS["protein"])),
        fat=_non_negative(amounts.get(NUTRIENT_IDS["fat"])),
        carbs=_non_negative(amounts.get(NUTRIENT_IDS["carbs"])),
        fiber=_non_negative(amounts.get(NUTRIENT_IDS["fiber"])),
        sugars=_non_negative(amounts.get(NUTRIENT_IDS["sugars"])),
        sodium=_non_negative(amounts.get(NUTRIENT_IDS["sodium"])),
        sat_fat=_non_negative(sat_fat) if sat_fat is not None else None,
    )
    return nutrients, energy_source


def _non_negative(value: float | None) -> float:
    if value is None:
        return 0.0
    return max(0.0, float(value))
