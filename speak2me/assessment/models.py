"""Assessment report models returned by the scoring service."""

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

CEFR_LEVELS = ("A1", "A2", "B1", "B2", "C1", "C2")

CEFRLevel = Literal["A1", "A2", "B1", "B2", "C1", "C2"]


class FeedbackPoint(BaseModel):
    """One remark about the learner's text."""
    type: Literal["correct", "warning", "error"]
    title: str
    description: str
    example: Optional[str] = None


class GrammarAnalysis(BaseModel):
    """CEFR level and 0-100 scores for a submitted transcript.

    Accepts the service's camelCase keys; missing or out-of-range values are
    normalized instead of rejected.
    """
    model_config = ConfigDict(populate_by_name=True)

    detected_level: CEFRLevel = Field("A1", alias="detectedLevel")
    grammar_score: int = Field(0, alias="grammarScore")
    vocabulary_score: int = Field(0, alias="vocabularyScore")
    structure_score: int = Field(0, alias="structureScore")
    overall_score: int = Field(0, alias="overallScore")
    feedback_points: List[FeedbackPoint] = Field(default_factory=list, alias="feedbackPoints")
    suggestions: List[str] = Field(default_factory=list)

    @field_validator("detected_level", mode="before")
    @classmethod
    def _known_level(cls, value):
        if isinstance(value, str) and value.strip().upper() in CEFR_LEVELS:
            return value.strip().upper()
        return "A1"

    @field_validator("grammar_score", "vocabulary_score", "structure_score", "overall_score", mode="before")
    @classmethod
    def _clamp_score(cls, value):
        try:
            score = float(value)
        except (TypeError, ValueError):
            return 0
        return int(round(max(0.0, min(100.0, score))))

    @field_validator("feedback_points", "suggestions", mode="before")
    @classmethod
    def _none_as_empty(cls, value):
        return [] if value is None else value
