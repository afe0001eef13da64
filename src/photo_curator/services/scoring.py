"""Quality scoring: per-dimension vision analyzers and the composite score."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Protocol

from photo_curator.domain.errors import MissingScoreError
from photo_curator.domain.photos import Photo
from photo_curator.domain.scores import (
    ContentAnalysis,
    EmotionalAnalysis,
    ScoreComponent,
    ScoreResult,
    TechnicalAnalysis,
)
from photo_curator.services.prompts import (
    CONTENT_PROMPT,
    EMOTIONAL_PROMPT,
    TECHNICAL_PROMPT,
)
from photo_curator.services.retry import RetryExecutor
from photo_curator.services.vision import (
    VisionClient,
    parse_vision_payload,
    strict_schema,
    to_data_url,
)

_logger = logging.getLogger(__name__)

MAX_SCORE = 10.0

_WEIGHTS = {
    False: (0.35, 0.30, 0.35),
    True: (0.15, 0.30, 0.55),
}


def composite_score(
    technical: float | None,
    content: float | None,
    emotional: float | None,
    *,
    is_selfie: bool,
) -> float:
    """Combine the three quality dimensions into one 0-10 score.

    Selfies lean on emotional impact and forgive technical flaws; every other
    photo weights technical and emotional quality equally.
    """
    values = {"technical": technical, "content": content, "emotional": emotional}
    missing = [name for name, value in values.items() if value is None]
    if missing:
        raise MissingScoreError(f"Missing score dimension(s): {', '.join(missing)}")
    for name, value in values.items():
        if not 0.0 <= value <= MAX_SCORE:  # type: ignore[operator]
            raise ValueError(f"{name} score {value} outside [0, {MAX_SCORE}]")
    technical_weight, content_weight, emotional_weight = _WEIGHTS[bool(is_selfie)]
    return (
        technical * technical_weight  # type: ignore[operator]
        + content * content_weight  # type: ignore[operator]
        + emotional * emotional_weight  # type: ignore[operator]
    )


def technical_component(analysis: TechnicalAnalysis) -> ScoreComponent:
    """Weight the technical sub-scores."""
    scores = analysis.scores
    score = (
        scores.clarity * 0.35
        + scores.lighting * 0.25
        + scores.composition * 0.25
        + scores.color * 0.15
    )
    return ScoreComponent(score=score, reasoning=analysis.reasoning)


def content_component(analysis: ContentAnalysis) -> ScoreComponent:
    """Weight the content sub-scores and apply the people bonus."""
    scores = analysis.scores
    score = (
        scores.subject_clarity * 0.3
        + scores.composition * 0.3
        + scores.interest * 0.2
        + scores.scene * 0.2
    )
    reasoning = analysis.reasoning
    if analysis.has_people and scores.subject_clarity >= 6 and scores.composition >= 5:
        if (analysis.is_selfie or analysis.is_people_main) and analysis.is_group_shot:
            boost = 1.5 if analysis.is_people_main else 1.35
            reasoning += f" (Group bonus applied: {boost}x)"
        else:
            boost = 1.2
        score = min(score * boost, MAX_SCORE)
    return ScoreComponent(
        score=score, reasoning=reasoning, is_selfie=analysis.is_selfie
    )


def emotional_component(analysis: EmotionalAnalysis) -> ScoreComponent:
    """Weight the emotional sub-scores and apply the humor bonus."""
    scores = analysis.scores
    score = (
        scores.atmosphere * 0.3
        + scores.connection * 0.25
        + scores.impact * 0.25
        + scores.poetry * 0.2
    )
    reasoning = analysis.reasoning
    if analysis.is_humorous:
        score = min(score * 1.2, MAX_SCORE)
        reasoning += " (Bonus applied for humorous content)"
    return ScoreComponent(score=score, reasoning=reasoning)


class ScoreRepository(Protocol):
    """Persistence interface for per-dimension scores."""

    def update_fields(self, photo_id: str, fields: dict[str, object]) -> None:
        """Update named fields on a photo."""


@dataclass
class ScoringService:
    """Scores photos along three dimensions through the vision client."""

    client: VisionClient
    repository: ScoreRepository
    retry: RetryExecutor
    model: str
    reasoning_effort: str | None
    store: bool

    async def score(self, photo: Photo, image_bytes: bytes) -> ScoreResult:
        """Score missing dimensions, persist them, and return the composite."""
        data_url = to_data_url(image_bytes)
        technical, content, emotional = await asyncio.gather(
            self._technical(photo, data_url),
            self._content(photo, data_url),
            self._emotional(photo, data_url),
        )
        composite = composite_score(
            technical, content, emotional, is_selfie=photo.is_selfie
        )
        _logger.info(
            "Scored %s: composite=%.2f technical=%.2f content=%.2f emotional=%.2f "
            "selfie=%s",
            photo.file_name,
            composite,
            technical,
            content,
            emotional,
            photo.is_selfie,
        )
        return ScoreResult(
            composite=composite,
            technical=technical,
            content=content,
            emotional=emotional,
            is_selfie=photo.is_selfie,
        )

    async def _technical(self, photo: Photo, data_url: str) -> float:
        if photo.technical_score is not None:
            return photo.technical_score
        raw = await self._extract(data_url, TECHNICAL_PROMPT, TechnicalAnalysis)
        component = technical_component(
            parse_vision_payload(raw, TechnicalAnalysis)
        )
        photo.technical_score = component.score
        photo.technical_reason = component.reasoning
        self.repository.update_fields(
            photo.id,
            {
                "technical_score": component.score,
                "technical_reason": component.reasoning,
            },
        )
        return component.score

    async def _content(self, photo: Photo, data_url: str) -> float:
        if photo.content_score is not None:
            return photo.content_score
        raw = await self._extract(data_url, CONTENT_PROMPT, ContentAnalysis)
        component = content_component(parse_vision_payload(raw, ContentAnalysis))
        photo.content_score = component.score
        photo.content_reason = component.reasoning
        photo.is_selfie = component.is_selfie
        self.repository.update_fields(
            photo.id,
            {
                "content_score": component.score,
                "content_reason": component.reasoning,
                "is_selfie": component.is_selfie,
            },
        )
        return component.score

    async def _emotional(self, photo: Photo, data_url: str) -> float:
        if photo.emotional_score is not None:
            return photo.emotional_score
        raw = await self._extract(data_url, EMOTIONAL_PROMPT, EmotionalAnalysis)
        component = emotional_component(
            parse_vision_payload(raw, EmotionalAnalysis)
        )
        photo.emotional_score = component.score
        photo.emotional_reason = component.reasoning
        self.repository.update_fields(
            photo.id,
            {
                "emotional_score": component.score,
                "emotional_reason": component.reasoning,
            },
        )
        return component.score

    async def _extract(
        self, data_url: str, prompt: str, model: type
    ) -> dict[str, object]:
        schema = strict_schema(model)
        return await self.retry.run(
            lambda: self.client.extract(
                model=self.model,
                reasoning_effort=self.reasoning_effort,
                store=self.store,
                image_data_url=data_url,
                schema=schema,
                prompt=prompt,
            ),
            action=f"vision:{model.__name__}",
        )
