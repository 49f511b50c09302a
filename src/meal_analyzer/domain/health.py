"""Health score models."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

FeedbackAction = Literal["celebrate", "increase", "reduce", "monitor"]
Grade = Literal["A", "B", "C", "D", "F"]


class _HealthModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class HealthFactors(_HealthModel):
    """Sub-scores, each within [0, 100]."""

    macro_balance: float = Field(ge=0.0, le=100.0)
    calorie_density: float = Field(ge=0.0, le=100.0)
    protein_quality: float = Field(ge=0.0, le=100.0)
    processing_level: float = Field(ge=0.0, le=100.0)


class HealthFeedback(_HealthModel):
    """One actionable feedback message."""

    key: str
    label: str
    action: FeedbackAction
    message: str


class HealthScoreResult(_HealthModel):
    """Overall health score for a meal."""

    score: int = Field(ge=0, le=100)
    grade: Grade
    factors: HealthFactors
    feedback: list[HealthFeedback]
