"""Tests for vision service."""

import asyncio

import pytest

from meal_analyzer.domain.errors import ExtractionError
from meal_analyzer.services.vision import VisionService, _to_data_url
from tests.conftest import FakeVisionClient


def _service(client: FakeVisionClient) -> VisionService:
    return VisionService(
        client=client,
        model="gpt-5.2",
        reasoning_effort="high",
        store=False,
    )


def test_vision_service_returns_components() -> None:
    client = FakeVisionClient()

    components = asyncio.run(_service(client).extract_components(b"image-bytes"))

    assert [component.name for component in components] == ["grilled chicken breast"]
    assert components[0].preparation == "grilled"
    assert components[0].estimated_portion_grams == 150
    assert client.image_urls[0].startswith("data:image/jpeg;base64,")


def test_image_url_is_passed_through() -> None:
    client = FakeVisionClient()

    service = _service(client)

    asyncio.run(service.extract_components(image_url="https://img.test/x.png"))

    assert client.image_urls == ["https://img.test/x.png"]


def test_low_confidence_components_are_dropped() -> None:
    client = FakeVisionClient(
        payload={
            "components": [
                {
                    "name": "rice",
                    "preparation": "boiled",
                    "estimated_portion_grams": 150,
                    "confidence": 0.8,
                },
                {
                    "name": "sauce",
                    "preparation": "unknown",
                    "estimated_portion_grams": 20,
                    "confidence": 0.4,
                },
            ]
        }
    )

    components = asyncio.run(_service(client).extract_components(b"image-bytes"))

    assert [component.name for component in components] == ["rice"]


def test_schema_mismatch_yields_empty_list() -> None:
    client = FakeVisionClient(payload={"items": [{"label": "rice"}]})

    components = asyncio.run(_service(client).extract_components(b"image-bytes"))

    assert components == []


def test_unparseable_output_yields_empty_list() -> None:
    client = FakeVisionClient(error=ValueError("Expecting value"))

    components = asyncio.run(_service(client).extract_components(b"image-bytes"))

    assert components == []


def test_client_failure_raises_extraction_error() -> None:
    client = FakeVisionClient(error=RuntimeError("OpenAI returned an empty response"))

    with pytest.raises(ExtractionError):
        asyncio.run(_service(client).extract_components(b"image-bytes"))


def test_missing_input_raises_extraction_error() -> None:
    with pytest.raises(ExtractionError):
        asyncio.run(_service(FakeVisionClient()).extract_components())


def test_to_data_url_uses_png_header() -> None:
    data = b"\x89PNG\r\n\x1a\n" + b"rest"
    url = _to_data_url(data)

    assert url.startswith("data:image/png;base64,")


def test_to_data_url_detects_webp() -> None:
    data = b"RIFF\x00\x00\x00\x00WEBPVP8 "

    assert _to_data_url(data).startswith("data:image/webp;base64,")


def test_to_data_url_defaults_to_jpeg() -> None:
    data = b"unknown"
    url = _to_data_url(data)

    assert url.startswith("data:image/jpeg;base64,")
