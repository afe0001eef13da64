"""Duplicate clustering over capture time and image embeddings."""

import logging
import math
from collections.abc import Iterable, Sequence
from datetime import timedelta

import numpy as np

from photo_curator.domain.errors import SimilarityError
from photo_curator.domain.photos import Photo

_logger = logging.getLogger(__name__)

SIMILARITY_THRESHOLD = 0.885
CLOSE_TIME_THRESHOLD = 0.85
TIME_WINDOW = timedelta(minutes=10)
CLOSE_TIME_WINDOW = timedelta(seconds=12)


def cosine_similarity(left: Sequence[float], right: Sequence[float]) -> float:
    """Return the cosine similarity of two vectors.

    Raises SimilarityError instead of returning a guess when the value is
    undefined (zero vectors, NaN entries, mismatched lengths).
    """
    a = np.asarray(left, dtype=np.float64)
    b = np.asarray(right, dtype=np.float64)
    if a.shape != b.shape or a.ndim != 1:
        raise SimilarityError(
            f"Embedding shapes differ or are not vectors: {a.shape} vs {b.shape}"
        )
    norm = float(np.linalg.norm(a) * np.linalg.norm(b))
    if norm == 0.0 or not math.isfinite(norm):
        raise SimilarityError("Similarity undefined for zero or non-finite vectors")
    similarity = float(np.dot(a, b) / norm)
    if not math.isfinite(similarity):
        raise SimilarityError("Similarity is not a finite number")
    return similarity


def threshold_for(first: Photo, second: Photo) -> float:
    """Pick the acceptance threshold for a pair from their time gap."""
    gap = abs(first.taken_at - second.taken_at)
    return CLOSE_TIME_THRESHOLD if gap <= CLOSE_TIME_WINDOW else SIMILARITY_THRESHOLD


def clusterable(photos: Iterable[Photo]) -> list[Photo]:
    """Return photos that carry both a timestamp and an embedding."""
    eligible: list[Photo] = []
    for photo in photos:
        if photo.taken_at is None or photo.embedding is None:
            _logger.warning(
                "Skipping %s for duplicate clustering: missing %s",
                photo.file_name,
                "timestamp" if photo.taken_at is None else "embedding",
            )
            continue
        eligible.append(photo)
    return eligible


def find_and_mark_duplicates(photos: Iterable[Photo]) -> list[list[Photo]]:
    """Group near-identical captures and mark all but the best of each group.

    Returns the duplicate groups (size > 1), representative first.
    """
    ordered = sorted(clusterable(photos), key=lambda photo: photo.taken_at)
    processed: set[str] = set()
    groups: list[list[Photo]] = []

    for index, anchor in enumerate(ordered):
        if anchor.id in processed:
            continue
        group = [anchor]
        window_end = anchor.taken_at + TIME_WINDOW

        for candidate in ordered[index + 1 :]:
            if candidate.id in processed:
                continue
            if candidate.taken_at > window_end:
                break
            if _matches_group(candidate, group):
                group.append(candidate)

        processed.update(photo.id for photo in group)
        if len(group) > 1:
            groups.append(_mark_group(group))

    _logger.info("Found %s duplicate group(s)", len(groups))
    return groups


def _matches_group(candidate: Photo, group: list[Photo]) -> bool:
    for member in group:
        similarity = cosine_similarity(member.embedding, candidate.embedding)  # type: ignore[arg-type]
        threshold = threshold_for(member, candidate)
        if similarity >= threshold:
            _logger.debug(
                "Duplicate: %s ~ %s similarity=%.4f threshold=%s",
                member.file_name,
                candidate.file_name,
                similarity,
                threshold,
            )
            return True
        _logger.debug(
            "Not duplicate: %s ~ %s similarity=%.4f threshold=%s",
            member.file_name,
            candidate.file_name,
            similarity,
            threshold,
        )
    return False


def _mark_group(group: list[Photo]) -> list[Photo]:
    ranked = sorted(group, key=_rank_key, reverse=True)
    best = ranked[0]
    best.is_lesser_duplicate = False
    best.better_duplicate_ref = None
    for photo in ranked[1:]:
        photo.is_lesser_duplicate = True
        photo.better_duplicate_ref = best.ref
    return ranked


def _rank_key(photo: Photo) -> tuple[float, float]:
    score = photo.composite_score if photo.composite_score is not None else -math.inf
    return (score, photo.taken_at.timestamp())
