"""
Pydantic schemas for the external quality evaluator response
"""
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class DimensionScore(BaseModel):
    """
    One scored dimension as returned by the evaluator
    """
    score: float = Field(..., ge=0.0, le=100.0)
    feedback: str = ""


class QualityEvaluation(BaseModel):
    """
    Pydantic schema for the multi-dimensional quality evaluation.
    Accepts camelCase keys from the model and snake_case from Python.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    technical_accuracy: Optional[DimensionScore] = None
    clarity: Optional[DimensionScore] = None
    completeness: Optional[DimensionScore] = None
    practical_relevance: Optional[DimensionScore] = None
    structure_quality: Optional[DimensionScore] = None
    difficulty_calibration: Optional[DimensionScore] = None
    voice_readiness: Optional[DimensionScore] = None
    overall_assessment: str = ""
    top_improvements: List[str] = []

    def dimensions(self) -> dict[str, DimensionScore]:
        """Dimensions actually present in the response, keyed by field name."""
        present = {}
        for name in DIMENSIONS:
            value = getattr(self, name)
            if value is not None:
                present[name] = value
        return present


DIMENSIONS = (
    "technical_accuracy",
    "clarity",
    "completeness",
    "practical_relevance",
    "structure_quality",
    "difficulty_calibration",
    "voice_readiness",
)
