"""Models for vision extraction results."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Preparation = Literal[
    "raw",
    "boiled",
    "steamed",
    "baked",
    "grilled",
    "fried",
    "roasted",
    "sauteed",
    "unknown",
]


class FoodComponent(BaseModel):
    """Single food component detected in an image or a description."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    name: str = Field(min_length=1)
    preparation: str = "unknown"
    estimated_portion_grams: float = Field(default=100.0, gt=0)
    confidence: float = Field(default=0.7, ge=0.0, le=1.0)


class VisionComponent(BaseModel):
    """Component as returned by the vision model's structured output."""

    name: str = Field(min_length=1)
    preparation: Preparation
    estimated_portion_grams: float = Field(gt=0)
    confidence: float = Field(ge=0.0, le=1.0)


class VisionExtract(BaseModel):
    """Structured output for vision extraction."""

    components: list[VisionComponent]
