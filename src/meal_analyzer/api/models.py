"""Request and response models for the HTTP API."""

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from meal_analyzer.domain.food import MatchCandidate


class ApiModel(BaseModel):
    """Base model accepting and emitting camelCase field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TextAnalysisRequest(ApiModel):
    description: str = Field(min_length=1)


class ImageAnalysisRequest(ApiModel):
    """Image given inline as base64 (optionally a data URL) or by URL."""

    image_base64: str | None = None
    image_url: str | None = None

    @model_validator(mode="after")
    def _require_image(self) -> "ImageAnalysisRequest":
        if not self.image_base64 and not self.image_url:
            raise ValueError("Either imageBase64 or imageUrl must be provided")
        return self


class FoodCandidate(ApiModel):
    external_id: int
    description: str
    data_type: str | None = None
    brand_owner: str | None = None
    source: str
    score: float

    @classmethod
    def from_match(cls, candidate: MatchCandidate) -> "FoodCandidate":
        record = candidate.record
        return cls(
            external_id=record.external_id,
            description=record.description,
            data_type=record.data_type.value if record.data_type else None,
            brand_owner=record.brand_owner,
            source=record.source.value,
            score=candidate.score,
        )


class FoodSearchResponse(ApiModel):
    candidates: list[FoodCandidate]
