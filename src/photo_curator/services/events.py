"""Event segmentation and representative selection."""

import logging
from collections.abc import Iterable
from datetime import timedelta

from photo_curator.domain.photos import Photo

_logger = logging.getLogger(__name__)

MAX_EVENT_INTERVAL = timedelta(minutes=30)
KEEP_SCORE = 7.9


def detect_bursts(photos: Iterable[Photo]) -> list[list[Photo]]:
    """Split photos into bursts sharing a location tag with short time gaps."""
    ordered = sorted(photos, key=lambda photo: photo.taken_at)
    bursts: list[list[Photo]] = []
    current: list[Photo] = []

    for photo in ordered:
        if not current:
            current.append(photo)
            continue
        gap = photo.taken_at - current[-1].taken_at
        if gap <= MAX_EVENT_INTERVAL and photo.location_tag == current[0].location_tag:
            current.append(photo)
        else:
            bursts.append(current)
            current = [photo]

    if current:
        bursts.append(current)
    return bursts


def demote_count(size: int) -> int:
    """Return how many members of a burst of `size` are demotion candidates.

    Bursts of two come back as `size`, so they are never demoted.
    """
    if size > 2:
        return max(1, size // 2)
    return size


def mark_event_representatives(photos: Iterable[Photo]) -> list[list[Photo]]:
    """Demote lower-scoring members of oversized bursts and return the bursts."""
    bursts = detect_bursts(photos)
    better: list[Photo] = []
    lesser: list[Photo] = []

    for burst in bursts:
        size = len(burst)
        demoted = demote_count(size)
        if size <= demoted:
            continue
        scored = sorted(
            (photo for photo in burst if photo.composite_score is not None),
            key=lambda photo: photo.composite_score,  # type: ignore[arg-type,return-value]
            reverse=True,
        )
        if not scored:
            continue
        keep = size - demoted
        _logger.info(
            "Event at %s has %s photos, keeping %s",
            burst[0].file_name,
            size,
            keep,
        )
        better.extend(scored[:keep])
        lesser.extend(scored[keep:])

    better_refs = list(dict.fromkeys(photo.ref for photo in better))
    for photo in lesser:
        if photo.composite_score < KEEP_SCORE:  # type: ignore[operator]
            photo.is_lesser_in_event = True
            photo.better_event_refs = list(better_refs)
    return bursts
