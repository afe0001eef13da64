"""Tests for composite scoring and the scoring service."""

import asyncio
from datetime import UTC, datetime

import pytest

from photo_curator.domain.errors import MalformedResponseError, MissingScoreError
from photo_curator.domain.photos import Photo
from photo_curator.domain.scores import (
    ContentAnalysis,
    ContentSubScores,
    EmotionalAnalysis,
    EmotionalSubScores,
)
from photo_curator.services.prompts import (
    CONTENT_PROMPT,
    EMOTIONAL_PROMPT,
    TECHNICAL_PROMPT,
)
from photo_curator.services.retry import RetryExecutor
from photo_curator.services.scoring import (
    ScoringService,
    composite_score,
    content_component,
    emotional_component,
)
from tests.conftest import FakeVisionClient, InMemoryPhotoRepository


def _service(
    client: FakeVisionClient, repository: InMemoryPhotoRepository, retry: RetryExecutor
) -> ScoringService:
    return ScoringService(
        client=client,
        repository=repository,
        retry=retry,
        model="gpt-5.2",
        reasoning_effort="high",
        store=False,
    )


def _photo(**overrides: object) -> Photo:
    return Photo(
        id="photo-1",
        file_name="IMG_0001.jpg",
        taken_at=datetime(2024, 5, 1, tzinfo=UTC),
        **overrides,  # type: ignore[arg-type]
    )


def test_selfie_composite() -> None:
    assert composite_score(8, 9, 6, is_selfie=True) == pytest.approx(7.2)


def test_regular_composite() -> None:
    assert composite_score(8, 9, 6, is_selfie=False) == pytest.approx(7.6)


def test_missing_dimension_raises() -> None:
    with pytest.raises(MissingScoreError):
        composite_score(8, None, 6, is_selfie=False)


def test_out_of_range_dimension_raises() -> None:
    with pytest.raises(ValueError):
        composite_score(8, 11, 6, is_selfie=False)


def test_group_shot_bonus_is_capped() -> None:
    analysis = ContentAnalysis(
        scores=ContentSubScores(subject_clarity=9, composition=9, interest=8, scene=8),
        reasoning="Friends at dinner.",
        has_people=True,
        is_group_shot=True,
        is_people_main=True,
    )

    component = content_component(analysis)

    assert component.score == pytest.approx(10.0)
    assert "Group bonus applied: 1.5x" in component.reasoning


def test_selfie_group_bonus() -> None:
    analysis = ContentAnalysis(
        scores=ContentSubScores(subject_clarity=6, composition=5, interest=5, scene=5),
        reasoning="Selfie.",
        has_people=True,
        is_group_shot=True,
        is_selfie=True,
    )

    component = content_component(analysis)

    assert component.score == pytest.approx(5.3 * 1.35)
    assert component.is_selfie is True


def test_people_bonus_needs_clear_subject() -> None:
    analysis = ContentAnalysis(
        scores=ContentSubScores(subject_clarity=5, composition=9, interest=5, scene=5),
        reasoning="Blurry person.",
        has_people=True,
    )

    assert content_component(analysis).score == pytest.approx(6.2)


def test_humor_bonus() -> None:
    analysis = EmotionalAnalysis(
        scores=EmotionalSubScores(atmosphere=5, connection=5, impact=5, poetry=5),
        reasoning="A dog in sunglasses.",
        is_humorous=True,
    )

    component = emotional_component(analysis)

    assert component.score == pytest.approx(6.0)
    assert "humorous" in component.reasoning


def test_service_scores_and_persists_each_dimension(retry: RetryExecutor) -> None:
    client = FakeVisionClient()
    repository = InMemoryPhotoRepository()
    photo = _photo()
    repository.rows[photo.id] = _photo()

    service = _service(client, repository, retry)
    result = asyncio.run(service.score(photo, b"\xff\xd8\xff"))

    assert result.composite == pytest.approx(7.0)
    assert photo.technical_score == pytest.approx(8.0)
    assert repository.rows[photo.id].content_score == pytest.approx(7.0)
    assert repository.rows[photo.id].emotional_reason == "Pleasant mood."
    assert sorted(client.prompts) == sorted(
        [TECHNICAL_PROMPT, CONTENT_PROMPT, EMOTIONAL_PROMPT]
    )


def test_service_skips_scored_dimensions(retry: RetryExecutor) -> None:
    client = FakeVisionClient()
    repository = InMemoryPhotoRepository()
    photo = _photo(technical_score=9.0, emotional_score=9.0)
    repository.rows[photo.id] = _photo()

    result = asyncio.run(_service(client, repository, retry).score(photo, b"bytes"))

    assert client.prompts == [CONTENT_PROMPT]
    assert result.composite == pytest.approx(0.35 * 9 + 0.30 * 7 + 0.35 * 9)


def test_selfie_flag_from_content_switches_weights(retry: RetryExecutor) -> None:
    client = FakeVisionClient()
    client.payloads[CONTENT_PROMPT] = {
        **client.payloads[CONTENT_PROMPT],
        "is_selfie": True,
    }
    repository = InMemoryPhotoRepository()
    photo = _photo()
    repository.rows[photo.id] = _photo()

    result = asyncio.run(_service(client, repository, retry).score(photo, b"bytes"))

    assert result.is_selfie is True
    assert result.composite == pytest.approx(0.15 * 8 + 0.30 * 7 + 0.55 * 6)
    assert repository.rows[photo.id].is_selfie is True


def test_malformed_payload_is_not_retried(retry: RetryExecutor) -> None:
    client = FakeVisionClient()
    client.payloads[TECHNICAL_PROMPT] = {"scores": {"clarity": "sharp"}}
    repository = InMemoryPhotoRepository()
    photo = _photo(content_score=5.0, emotional_score=5.0)
    repository.rows[photo.id] = _photo()

    with pytest.raises(MalformedResponseError):
        asyncio.run(_service(client, repository, retry).score(photo, b"bytes"))

    assert client.prompts == [TECHNICAL_PROMPT]
