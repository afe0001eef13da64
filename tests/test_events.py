"""Tests for event segmentation."""

from datetime import timedelta

import pytest

from photo_curator.services.events import (
    KEEP_SCORE,
    demote_count,
    detect_bursts,
    mark_event_representatives,
)
from tests.conftest import MAY_FIRST, make_photo


def _burst(scores: list[float | None], *, step: timedelta = timedelta(minutes=5)):
    return [
        make_photo(
            f"p{index}", MAY_FIRST + step * index, score=score, location_tag="Soho"
        )
        for index, score in enumerate(scores)
    ]


def test_five_photo_burst_demotes_two_lowest() -> None:
    photos = _burst([9.5, 8.0, 7.5, 6.0, 5.0])

    bursts = mark_event_representatives(photos)

    assert len(bursts) == 1
    assert [photo.is_lesser_in_event for photo in photos] == [
        False,
        False,
        False,
        True,
        True,
    ]
    assert photos[3].better_event_refs == ["p0", "p1", "p2"]
    assert photos[4].better_event_refs == ["p0", "p1", "p2"]


def test_high_scores_are_never_demoted() -> None:
    photos = _burst([9.9, 9.5, 9.0, 8.5, 8.0])

    mark_event_representatives(photos)

    assert all(photo.composite_score >= KEEP_SCORE for photo in photos)
    assert not any(photo.is_lesser_in_event for photo in photos)


def test_two_member_bursts_are_never_demoted() -> None:
    photos = _burst([9.0, 1.0])

    mark_event_representatives(photos)

    assert not any(photo.is_lesser_in_event for photo in photos)


@pytest.mark.parametrize(
    ("size", "expected"),
    [(1, 1), (2, 2), (3, 1), (4, 2), (5, 2), (9, 4)],
)
def test_demote_count(size: int, expected: int) -> None:
    assert demote_count(size) == expected


def test_gap_over_thirty_minutes_splits_bursts() -> None:
    photos = _burst([5.0, 5.0, 5.0], step=timedelta(minutes=31))

    assert [len(burst) for burst in detect_bursts(photos)] == [1, 1, 1]


def test_location_change_splits_bursts() -> None:
    photos = _burst([5.0, 6.0, 7.0, 8.0])
    photos[2].location_tag = "Midtown"
    photos[3].location_tag = "Midtown"

    assert [len(burst) for burst in detect_bursts(photos)] == [2, 2]


def test_gap_is_measured_from_previous_member() -> None:
    photos = _burst([5.0, 5.0, 5.0, 5.0], step=timedelta(minutes=25))

    assert [len(burst) for burst in detect_bursts(photos)] == [4]


def test_unscored_members_are_not_ranked() -> None:
    photos = _burst([9.0, None, 4.0, 3.0])

    mark_event_representatives(photos)

    assert photos[1].is_lesser_in_event is False
    assert photos[1].better_event_refs == []
    assert photos[3].is_lesser_in_event is True


def test_better_refs_span_all_bursts() -> None:
    first = _burst([9.0, 8.0, 2.0])
    second = [
        make_photo(
            f"q{index}", MAY_FIRST + timedelta(hours=3, minutes=index), score=score
        )
        for index, score in enumerate([7.0, 6.0, 1.0])
    ]

    mark_event_representatives(first + second)

    assert first[2].better_event_refs == ["p0", "p1", "q0", "q1"]
    assert second[2].better_event_refs == ["p0", "p1", "q0", "q1"]
