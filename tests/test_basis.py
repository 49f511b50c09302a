"""Tests for basis nutrient resolution."""

from meal_analyzer.domain.analysis import BasisKind
from meal_analyzer.domain.food import FoodRecord, LabelNutrients, NutrientEntry
from meal_analyzer.services.basis import resolve_basis


def _record(
    *entries: tuple[int, float], label: LabelNutrients | None = None
) -> FoodRecord:
    return FoodRecord(
        external_id=1,
        description="Test food",
        data_type=None,
        nutrient_entries=tuple(
            NutrientEntry(nutrient_type_id=nid, amount=amount)
            for nid, amount in entries
        ),
        label_nutrients=label,
    )


def test_label_nutrients_take_precedence() -> None:
    label = LabelNutrients(calories=210, protein=12, fat=8, carbohydrates=22, sugars=4)
    record = _record((1008, 100), (1003, 1), label=label)

    resolved = resolve_basis(record)

    assert resolved.basis == BasisKind.LABEL_PER_SERVING
    assert resolved.energy_source == "label"
    assert resolved.nutrients.calories == 210
    assert resolved.nutrients.carbs == 22
    assert resolved.nutrients.sugars == 4
    assert resolved.nutrients.fiber == 0.0
    assert resolved.nutrients.sat_fat is None


def test_atwater_energy_overrides_plain_energy() -> None:
    record = _record((1008, 100), (2047, 95), (1003, 10))

    resolved = resolve_basis(record)

    assert resolved.basis == BasisKind.COMPOSITION_PER_100G
    assert resolved.energy_source == "atwater"
    assert resolved.nutrients.calories == 95
    assert resolved.nutrients.protein == 10


def test_specific_atwater_energy_is_used_when_general_missing() -> None:
    resolved = resolve_basis(_record((1008, 100), (2048, 97)))

    assert resolved.nutrients.calories == 97


def test_plain_energy_used_without_atwater() -> None:
    resolved = resolve_basis(_record((1008, 130), (1005, 28)))

    assert resolved.energy_source == "energy"
    assert resolved.nutrients.calories == 130
    assert resolved.nutrients.carbs == 28


def test_missing_entries_default_to_zero() -> None:
    resolved = resolve_basis(_record())

    assert resolved.energy_source == "missing"
    assert resolved.nutrients.calories == 0.0
    assert resolved.nutrients.protein == 0.0
    assert resolved.nutrients.sodium == 0.0


def test_negative_values_are_clamped() -> None:
    resolved = resolve_basis(_record((1008, -20), (1003, -1), (1258, -3)))

    assert resolved.nutrients.calories == 0.0
    assert resolved.nutrients.protein == 0.0
    assert resolved.nutrients.sat_fat == 0.0


def test_first_entry_per_nutrient_wins() -> None:
    resolved = resolve_basis(_record((1003, 10), (1003, 99)))

    assert resolved.nutrients.protein == 10
