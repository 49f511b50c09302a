"""Supabase implementation of the local nutrition database."""

from collections.abc import Sequence
from dataclasses import dataclass, replace

from supabase import Client

from meal_analyzer.domain.food import (
    FoodRecord,
    FoodSource,
    LabelNutrients,
    NutrientEntry,
    Portion,
    parse_data_type,
)
from meal_analyzer.services.matching import FoodRepository

_FOOD_SELECT = "*, food_portions(*), food_nutrients(*), food_label_nutrients(*)"
_LABEL_COLUMNS = (
    "calories",
    "protein",
    "fat",
    "carbohydrates",
    "fiber",
    "sugars",
    "sodium",
    "saturated_fat",
)


@dataclass
class SupabaseFoodRepository(FoodRepository):
    """Supabase-backed repository for foods and their child rows."""

    client: Client

    def search_by_description(self, query: str, limit: int) -> list[FoodRecord]:
        """Case-insensitive substring search over food descriptions."""
        response = (
            self.client.table("foods")
            .select(_FOOD_SELECT)
            .ilike("description", f"%{query}%")
            .limit(limit)
            .execute()
        )
        return [_parse_food(row) for row in response.data or []]

    def get_food(self, external_id: int) -> FoodRecord | None:
        """Return a stored food by external id, if present."""
        response = (
            self.client.table("foods")
            .select(_FOOD_SELECT)
            .eq("external_id", external_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_food(response.data[0])

    def upsert_food(self, record: FoodRecord) -> FoodRecord:
        """Insert or update a food keyed on external id, then sync its children.

        Every write is an upsert on a natural key followed by deleting rows
        the record no longer has, so a concurrent writer of the same food
        never duplicates child rows and a reader never sees them missing.
        """
        response = (
            self.client.table("foods")
            .upsert(_food_row(record), on_conflict="external_id")
            .execute()
        )
        if not response.data:
            raise RuntimeError(f"Failed to upsert food {record.external_id}")
        food_id = response.data[0]["id"]

        self._sync_portions(food_id, record.portions)
        self._sync_nutrients(food_id, record.nutrient_entries)
        self._sync_label(food_id, record.label_nutrients)
        return replace(record, source=FoodSource.LOCAL)

    def _sync_portions(self, food_id: object, portions: Sequence[Portion]) -> None:
        table = "food_portions"
        if portions:
            self.client.table(table).upsert(
                [
                    {
                        "food_id": food_id,
                        "position": position,
                        "gram_weight": portion.gram_weight,
                        "measure_unit_label": portion.measure_unit_label,
                        "modifier": portion.modifier,
                        "amount": portion.amount,
                    }
                    for position, portion in enumerate(portions)
                ],
                on_conflict="food_id,position",
            ).execute()
        (
            self.client.table(table)
            .delete()
            .eq("food_id", food_id)
            .gte("position", len(portions))
            .execute()
        )

    def _sync_nutrients(
        self, food_id: object, entries: Sequence[NutrientEntry]
    ) -> None:
        table = "food_nutrients"
        amounts = {entry.nutrient_type_id: entry.amount for entry in entries}
        if not amounts:
            self.client.table(table).delete().eq("food_id", food_id).execute()
            return
        self.client.table(table).upsert(
            [
                {"food_id": food_id, "nutrient_type_id": nutrient_id, "amount": amount}
                for nutrient_id, amount in amounts.items()
            ],
            on_conflict="food_id,nutrient_type_id",
        ).execute()
        (
            self.client.table(table)
            .delete()
            .eq("food_id", food_id)
            .not_.in_("nutrient_type_id", list(amounts))
            .execute()
        )

    def _sync_label(self, food_id: object, label: LabelNutrients | None) -> None:
        table = "food_label_nutrients"
        if label is None:
            self.client.table(table).delete().eq("food_id", food_id).execute()
            return
        self.client.table(table).upsert(
            {
                "food_id": food_id,
                **{column: getattr(label, column) for column in _LABEL_COLUMNS},
            },
            on_conflict="food_id",
        ).execute()


def _food_row(record: FoodRecord) -> dict[str, object]:
    return {
        "external_id": record.external_id,
        "description": record.description,
        "data_type": record.data_type.value if record.data_type else None,
        "brand_owner": record.brand_owner,
        "scientific_name": record.scientific_name,
        "serving_size_grams": record.serving_size_grams,
    }


def _parse_food(row: dict[str, object]) -> FoodRecord:
    """Parse a food row with embedded child rows into a domain record."""
    portions = tuple(
        Portion(
            gram_weight=float(portion.get("gram_weight") or 0.0),
            measure_unit_label=str(portion.get("measure_unit_label") or ""),
            modifier=portion.get("modifier"),
            amount=_optional_float(portion.get("amount")),
        )
        for portion in sorted(
            _rows(row.get("food_portions")), key=lambda item: item.get("position") or 0
        )
    )
    entries = tuple(
        NutrientEntry(
            nutrient_type_id=int(entry["nutrient_type_id"]),
            amount=float(entry.get("amount") or 0.0),
        )
        for entry in _rows(row.get("food_nutrients"))
    )
    label_rows = _rows(row.get("food_label_nutrients"))
    label = (
        LabelNutrients(
            **{
                column: _optional_float(label_rows[0].get(column))
                for column in _LABEL_COLUMNS
            }
        )
        if label_rows
        else None
    )
    return FoodRecord(
        external_id=int(row["external_id"]),
        description=str(row.get("description") or ""),
        data_type=parse_data_type(row.get("data_type")),
        source=FoodSource.LOCAL,
        brand_owner=row.get("brand_owner"),
        scientific_name=row.get("scientific_name"),
        serving_size_grams=_optional_float(row.get("serving_size_grams")),
        portions=portions,
        nutrient_entries=entries,
        label_nutrients=label,
    )


def _rows(value: object) -> list[dict[str, object]]:
    """Normalize an embedded relation, which may be a list, an object or null."""
    if isinstance(value, dict):
        return [value]
    if isinstance(value, list):
        return [item for item in value if isinstance(item, dict)]
    return []


def _optional_float(value: object) -> float | None:
    if value is None:
        return None
    return float(value)
