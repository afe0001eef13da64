"""Models for vision scoring results."""

from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, Field

Score = float


class TechnicalSubScores(BaseModel):
    """Sub-scores returned by the technical analysis."""

    clarity: Score = Field(ge=0.0, le=10.0)
    lighting: Score = Field(ge=0.0, le=10.0)
    composition: Score = Field(ge=0.0, le=10.0)
    color: Score = Field(ge=0.0, le=10.0)


class TechnicalAnalysis(BaseModel):
    """Structured output of the technical analysis."""

    scores: TechnicalSubScores
    reasoning: str


class ContentSubScores(BaseModel):
    """Sub-scores returned by the content analysis."""

    subject_clarity: Score = Field(ge=0.0, le=10.0)
    composition: Score = Field(ge=0.0, le=10.0)
    interest: Score = Field(ge=0.0, le=10.0)
    scene: Score = Field(ge=0.0, le=10.0)


class ContentAnalysis(BaseModel):
    """Structured output of the content analysis."""

    scores: ContentSubScores
    reasoning: str
    has_people: bool = False
    is_group_shot: bool = False
    is_selfie: bool = False
    is_people_main: bool = False


class EmotionalSubScores(BaseModel):
    """Sub-scores returned by the emotional analysis."""

    atmosphere: Score = Field(ge=0.0, le=10.0)
    connection: Score = Field(ge=0.0, le=10.0)
    impact: Score = Field(ge=0.0, le=10.0)
    poetry: Score = Field(ge=0.0, le=10.0)


class EmotionalAnalysis(BaseModel):
    """Structured output of the emotional analysis."""

    scores: EmotionalSubScores
    reasoning: str
    has_people: bool = False
    is_humorous: bool = False


RejectionReason = Literal[
    "nudity",
    "blurry",
    "blank",
    "dark",
    "resolution",
    "orientation",
    "receipts",
    "qr",
    "presentation",
    "screenshot",
    "none",
]


class ScreeningResult(BaseModel):
    """Structured output of the screening pass."""

    is_acceptable: bool
    rejection_reason: RejectionReason | None = None
    quality_issue: str | None = None


@dataclass(frozen=True)
class ScoreComponent:
    """One scored quality dimension."""

    score: float
    reasoning: str
    is_selfie: bool = False


@dataclass(frozen=True)
class ScoreResult:
    """Composite score for a photo."""

    composite: float
    technical: float
    content: float
    emotional: float
    is_selfie: bool
