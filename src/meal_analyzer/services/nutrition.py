"""Nutrition service integrating USDA FDC."""

import asyncio
import hashlib
import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from meal_analyzer.adapters.fdc_client import FdcClient
from meal_analyzer.domain.errors import FoodNotFoundError, RemoteApiRateLimitedError
from meal_analyzer.domain.food import (
    FoodRecord,
    FoodSource,
    LabelNutrients,
    NutrientEntry,
    Portion,
    parse_data_type,
)
from meal_analyzer.services.cache import Cache

_HTTP_NOT_FOUND = 404
_HTTP_TOO_MANY_REQUESTS = 429

_LABEL_FIELDS = {
    "calories": "calories",
    "protein": "protein",
    "fat": "fat",
    "carbohydrates": "carbohydrates",
    "fiber": "fiber",
    "sugars": "sugars",
    "sodium": "sodium",
    "saturatedFat": "saturated_fat",
}

_logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable


@dataclass
class NutritionService:
    """Remote nutrition lookups with response caching."""

    fdc_client: FdcClient
    cache: Cache
    search_ttl_seconds: int = 43200
    food_ttl_seconds: int = 259200
    debug: bool = False
    retry_attempts: int = 1
    retry_delay_seconds: float = 0.3

    async def search_records(
        self,
        query: str,
        page_size: int = 5,
        data_types: Sequence[str] | None = None,
    ) -> list[FoodRecord]:
        """Search FDC and parse the hits into food records."""
        body = {
            "query": query,
            "pageSize": page_size,
            "dataType": list(data_types or []),
        }
        digest = hashlib.sha256(json.dumps(body, sort_keys=True).encode()).hexdigest()
        payload = await self._cached_call(
            f"fdc:search:{digest}",
            lambda: self.fdc_client.search_foods(
                query, page_size=page_size, data_types=data_types
            ),
            ttl_seconds=self.search_ttl_seconds,
            action=f"search:{query}",
        )
        foods = payload.get("foods") or []
        records = [
            parse_food_payload(food, source=FoodSource.REMOTE_API)
            for food in foods
            if isinstance(food, dict) and food.get("fdcId") is not None
        ]
        if self.debug:
            _logger.info(
                "Nutrition search FDC: query=%s results=%s", query, len(records)
            )
        return records

    async def get_record(self, fdc_id: int) -> FoodRecord:
        """Retrieve a full food record from FDC."""
        try:
            payload = await self._cached_call(
                f"fdc:food:{fdc_id}",
                lambda: self.fdc_client.get_food(fdc_id),
                ttl_seconds=self.food_ttl_seconds,
                action=f"get_food:{fdc_id}",
            )
        except Exception as exc:
            if _status_code(exc) == _HTTP_NOT_FOUND:
                raise FoodNotFoundError(fdc_id) from exc
            raise
        return parse_food_payload(payload, source=FoodSource.REMOTE_API)

    async def _cached_call(
        self,
        cache_key: str,
        func: "Callable[[], Awaitable[dict[str, object]]]",
        *,
        ttl_seconds: int,
        action: str,
    ) -> dict[str, object]:
        cached = await self._cache_get(cache_key)
        if cached is not None:
            return json.loads(cached)
        payload = await self._call_with_retry(func, action=action)
        await self._cache_set(cache_key, json.dumps(payload), ttl_seconds)
        return payload

    async def _call_with_retry(
        self, func: "Callable[[], Awaitable[dict[str, object]]]", *, action: str
    ) -> dict[str, object]:
        """Call an async function with a short retry; 404 and 429 fail fast."""
        attempt = 0
        while True:
            try:
                return await func()
            except Exception as exc:
                attempt += 1
                status_code = _status_code(exc)
                _logger.warning(
                    "Nutrition %s failed (attempt %s/%s, status=%s): %s",
                    action,
                    attempt,
                    self.retry_attempts + 1,
                    status_code if status_code is not None else "n/a",
                    exc,
                )
                if status_code == _HTTP_TOO_MANY_REQUESTS:
                    raise RemoteApiRateLimitedError(
                        f"FDC rate limit exceeded during {action}"
                    ) from exc
                if status_code == _HTTP_NOT_FOUND or attempt > self.retry_attempts:
                    raise
                await asyncio.sleep(self.retry_delay_seconds)

    async def _cache_get(self, key: str) -> str | None:
        try:
            return await self.cache.get(key)
        except Exception:
            _logger.warning("Cache read failed for %s", key, exc_info=True)
            return None

    async def _cache_set(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            await self.cache.set(key, value, ttl_seconds=ttl_seconds)
        except Exception:
            _logger.warning("Cache write failed for %s", key, exc_info=True)


def _status_code(exc: Exception) -> int | None:
    """Extract HTTP status code from an exception, if available."""
    response = getattr(exc, "response", None)
    status_code = getattr(response, "status_code", None)
    if isinstance(status_code, int):
        return status_code
    return None


def parse_food_payload(payload: dict[str, object], source: FoodSource) -> FoodRecord:
    """Parse an FDC food (search hit or detail response) into a record."""
    label = payload.get("labelNutrients")
    return FoodRecord(
        external_id=int(payload["fdcId"]),
        description=str(payload.get("description") or ""),
        data_type=parse_data_type(payload.get("dataType")),
        source=source,
        brand_owner=payload.get("brandOwner"),
        scientific_name=payload.get("scientificName"),
        serving_size_grams=_serving_size_grams(payload),
        portions=tuple(_parse_portions(payload.get("foodPortions") or [])),
        nutrient_entries=tuple(_parse_nutrients(payload.get("foodNutrients") or [])),
        label_nutrients=_parse_label(label) if isinstance(label, dict) else None,
    )


def _serving_size_grams(payload: dict[str, object]) -> float | None:
    size = payload.get("servingSize")
    unit = str(payload.get("servingSizeUnit") or "g").lower()
    if isinstance(size, int | float) and size > 0 and unit in {"g", "grm"}:
        return float(size)
    return None


def _parse_portions(raw_portions: list[object]) -> list[Portion]:
    portions: list[Portion] = []
    for raw in raw_portions:
        if not isinstance(raw, dict):
            continue
        gram_weight = raw.get("gramWeight")
        if not isinstance(gram_weight, int | float) or gram_weight <= 0:
            continue
        measure_unit = raw.get("measureUnit")
        if isinstance(measure_unit, dict):
            unit_label = str(measure_unit.get("name") or "")
        else:
            unit_label = str(measure_unit or raw.get("portionDescription") or "")
        amount = raw.get("amount")
        portions.append(
            Portion(
                gram_weight=float(gram_weight),
                measure_unit_label=unit_label,
                modifier=raw.get("modifier"),
                amount=float(amount) if isinstance(amount, int | float) else None,
            )
        )
    return portions


def _parse_nutrients(raw_nutrients: list[object]) -> list[NutrientEntry]:
    """Handle both detail (nutrient.id/amount) and search (nutrientId/value) shapes."""
    entries: list[NutrientEntry] = []
    for raw in raw_nutrients:
        if not isinstance(raw, dict):
            continue
        nutrient_info = raw.get("nutrient") or {}
        nutrient_id = nutrient_info.get("id") or raw.get("nutrientId")
        amount = raw.get("amount", raw.get("value"))
        if nutrient_id is None or not isinstance(amount, int | float):
            continue
        entries.append(
            NutrientEntry(nutrient_type_id=int(nutrient_id), amount=float(amount))
        )
    return entries


def _parse_label(raw_label: dict[str, object]) -> LabelNutrients:
    values: dict[str, float | None] = {}
    for wire_name, field_name in _LABEL_FIELDS.items():
        raw = raw_label.get(wire_name)
        if isinstance(raw, dict):
            raw = raw.get("value")
        values[field_name] = float(raw) if isinstance(raw, int | float) else None
    return LabelNutrients(**values)
