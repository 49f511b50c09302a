"""Vision extraction service using LLMs."""

import base64
import logging
from dataclasses import dataclass
from typing import Protocol

from pydantic import ValidationError

from meal_analyzer.domain.errors import ExtractionError
from meal_analyzer.domain.vision import FoodComponent, VisionExtract

CONFIDENCE_FLOOR = 0.55

VISION_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "components": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "preparation": {
                        "type": "string",
                        "enum": [
                            "raw",
                            "boiled",
                            "steamed",
                            "baked",
                            "grilled",
                            "fried",
                            "roasted",
                            "sauteed",
                            "unknown",
                        ],
                    },
                    "estimated_portion_grams": {
                        "type": "number",
                        "exclusiveMinimum": 0,
                    },
                    "confidence": {"type": "number", "minimum": 0.0, "maximum": 1.0},
                },
                "required": [
                    "name",
                    "preparation",
                    "estimated_portion_grams",
                    "confidence",
                ],
                "additionalProperties": False,
            },
        }
    },
    "required": ["components"],
    "additionalProperties": False,
}

VISION_PROMPT = (
    "Identify every visible food component in the image, including sauces, "
    "oils and dressings. Use specific English names. For each component "
    "return its preparation method, an estimated portion in grams and a "
    "confidence between 0 and 1."
)

_logger = logging.getLogger(__name__)


class VisionClient(Protocol):
    """Interface for LLM vision extraction."""

    async def extract(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        image_url: str,
        schema: dict[str, object],
        prompt: str,
    ) -> dict[str, object]:
        """Return structured vision extraction data."""


@dataclass
class VisionService:
    """Service that prepares vision prompts and validates results."""

    client: VisionClient
    model: str
    reasoning_effort: str | None
    store: bool
    confidence_floor: float = CONFIDENCE_FLOOR

    async def extract_components(
        self, image_bytes: bytes | None = None, image_url: str | None = None
    ) -> list[FoodComponent]:
        """Extract food components from an image.

        Raises ExtractionError when the model call itself fails. A response
        that cannot be parsed yields an empty list.
        """
        if image_bytes:
            url = _to_data_url(image_bytes)
        elif image_url:
            url = image_url
        else:
            raise ExtractionError("Either image bytes or an image URL must be provided")

        try:
            raw = await self.client.extract(
                model=self.model,
                reasoning_effort=self.reasoning_effort,
                store=self.store,
                image_url=url,
                schema=VISION_SCHEMA,
                prompt=VISION_PROMPT,
            )
        except ValueError as exc:
            _logger.warning("Vision response could not be parsed: %s", exc)
            return []
        except Exception as exc:
            _logger.error("Vision extraction failed: %s", exc)
            raise ExtractionError(f"Vision analysis failed: {exc}") from exc

        try:
            extract = VisionExtract.model_validate(raw)
        except ValidationError as exc:
            _logger.warning("Vision response did not match schema: %s", exc)
            return []

        components: list[FoodComponent] = []
        for item in extract.components:
            if item.confidence < self.confidence_floor:
                _logger.warning(
                    "Low confidence component: %s (%s)", item.name, item.confidence
                )
                continue
            components.append(
                FoodComponent(
                    name=item.name,
                    preparation=item.preparation,
                    estimated_portion_grams=item.estimated_portion_grams,
                    confidence=item.confidence,
                )
            )
        return components


def _to_data_url(image_bytes: bytes) -> str:
    """Convert bytes to a base64 data URL for image input."""
    mime_type = _detect_mime_type(image_bytes)
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def _detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"
