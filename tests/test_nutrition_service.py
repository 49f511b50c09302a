"""Tests for nutrition service."""

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field

import httpx
import pytest

from meal_analyzer.adapters.fdc_client import FdcClient
from meal_analyzer.domain.errors import FoodNotFoundError, RemoteApiRateLimitedError
from meal_analyzer.domain.food import DataTypeClass, FoodSource
from meal_analyzer.services.cache import Cache, InMemoryCache
from meal_analyzer.services.nutrition import NutritionService, parse_food_payload

DETAIL_PAYLOAD = {
    "fdcId": 2646170,
    "description": "Greek yogurt, plain, nonfat",
    "dataType": "Foundation",
    "foodNutrients": [
        {"nutrient": {"id": 1008}, "amount": 61},
        {"nutrient": {"id": 2047}, "amount": 59},
        {"nutrient": {"id": 1003}, "amount": 10.2},
        {"nutrient": {"id": 1004}, "amount": 0.4},
        {"nutrient": {"id": 1005}, "amount": 3.6},
        {"nutrient": {"id": 1093}},
    ],
    "foodPortions": [
        {"gramWeight": 170, "amount": 1, "measureUnit": {"name": "container"}},
        {"gramWeight": 0, "measureUnit": {"name": "broken"}},
    ],
}

BRANDED_PAYLOAD = {
    "fdcId": 999,
    "description": "KIRKLAND CHICKEN BREAST",
    "brandOwner": "Costco",
    "dataType": "Branded",
    "servingSize": 112,
    "servingSizeUnit": "g",
    "labelNutrients": {
        "calories": {"value": 120},
        "protein": {"value": 26},
        "fat": {"value": 1.5},
        "carbohydrates": {"value": 0},
        "saturatedFat": {"value": 0.5},
        "sodium": 460,
    },
}


def _http_error(status_code: int) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "https://api.test/food/1")
    return httpx.HTTPStatusError(
        "error",
        request=request,
        response=httpx.Response(status_code, request=request),
    )


@dataclass
class CountingFdcClient(FdcClient):
    search_calls: int = 0
    food_calls: int = 0
    failures: list[Exception] = field(default_factory=list)

    async def search_foods(
        self,
        query: str,
        page_size: int = 10,
        data_types: Sequence[str] | None = None,
    ) -> dict[str, object]:
        self.search_calls += 1
        if self.failures:
            raise self.failures.pop(0)
        return {
            "foods": [
                {
                    "fdcId": 999,
                    "description": "Kirkland chicken breast",
                    "dataType": "Branded",
                    "foodNutrients": [
                        {"nutrientId": 1008, "value": 165},
                        {"nutrientId": 1003, "value": 31},
                    ],
                },
                {"description": "missing id"},
            ]
        }

    async def get_food(self, fdc_id: int) -> dict[str, object]:
        self.food_calls += 1
        if self.failures:
            raise self.failures.pop(0)
        return DETAIL_PAYLOAD


class BrokenCache:
    async def get(self, key: str) -> str | None:
        raise ConnectionError("cache offline")

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        raise ConnectionError("cache offline")


def _service(client: FdcClient, cache: Cache | None = None) -> NutritionService:
    return NutritionService(client, cache or InMemoryCache(), retry_delay_seconds=0)


def test_search_uses_cache() -> None:
    client = CountingFdcClient()
    service = _service(client)

    results = asyncio.run(service.search_records("kirkland", page_size=1))
    cached = asyncio.run(service.search_records("kirkland", page_size=1))

    assert [record.external_id for record in results] == [999]
    assert results[0].source == FoodSource.REMOTE_API
    assert results[0].data_type == DataTypeClass.BRANDED
    assert cached == results
    assert client.search_calls == 1


def test_search_cache_key_includes_filters() -> None:
    client = CountingFdcClient()
    service = _service(client)

    asyncio.run(service.search_records("kirkland", page_size=5))
    asyncio.run(
        service.search_records("kirkland", page_size=5, data_types=["Branded"])
    )

    assert client.search_calls == 2


def test_get_record_parses_detail_payload() -> None:
    client = CountingFdcClient()
    service = _service(client)

    record = asyncio.run(service.get_record(2646170))

    assert record.description == "Greek yogurt, plain, nonfat"
    assert record.data_type == DataTypeClass.FOUNDATION
    ids = [entry.nutrient_type_id for entry in record.nutrient_entries]
    assert ids == [1008, 2047, 1003, 1004, 1005]
    assert [portion.gram_weight for portion in record.portions] == [170]
    assert record.portions[0].measure_unit_label == "container"
    assert record.label_nutrients is None


def test_get_record_not_found() -> None:
    client = CountingFdcClient(failures=[_http_error(404)])
    service = _service(client)

    with pytest.raises(FoodNotFoundError) as excinfo:
        asyncio.run(service.get_record(1))

    assert excinfo.value.external_id == 1
    assert client.food_calls == 1


def test_rate_limit_is_not_retried() -> None:
    client = CountingFdcClient(failures=[_http_error(429)])
    service = _service(client)

    with pytest.raises(RemoteApiRateLimitedError):
        asyncio.run(service.search_records("rice"))

    assert client.search_calls == 1


def test_transient_failure_is_retried_once() -> None:
    client = CountingFdcClient(failures=[httpx.ConnectError("reset")])
    service = _service(client)

    results = asyncio.run(service.search_records("rice"))

    assert results
    assert client.search_calls == 2


def test_repeated_failure_is_raised() -> None:
    client = CountingFdcClient(
        failures=[httpx.ConnectError("reset"), httpx.ConnectError("reset")]
    )
    service = _service(client)

    with pytest.raises(httpx.ConnectError):
        asyncio.run(service.search_records("rice"))

    assert client.search_calls == 2


def test_cache_errors_are_ignored() -> None:
    client = CountingFdcClient()
    service = _service(client, cache=BrokenCache())

    record = asyncio.run(service.get_record(2646170))

    assert record.external_id == 2646170


def test_parse_branded_label_nutrients() -> None:
    record = parse_food_payload(BRANDED_PAYLOAD, source=FoodSource.REMOTE_API)

    assert record.brand_owner == "Costco"
    assert record.serving_size_grams == 112
    assert record.label_nutrients is not None
    assert record.label_nutrients.calories == 120
    assert record.label_nutrients.saturated_fat == 0.5
    assert record.label_nutrients.sodium == 460
    assert record.label_nutrients.fiber is None
