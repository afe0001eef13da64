"""Tests for the highlight overlay."""

from datetime import datetime
from io import BytesIO

from PIL import Image

from photo_curator.services.overlay import add_overlay
from tests.conftest import make_jpeg


def test_overlay_keeps_format_size_and_exif() -> None:
    content = make_jpeg(datetime(2024, 5, 1, 12, 0), size=(640, 480), color=(0, 0, 0))

    rendered = add_overlay(content, "Brooklyn, NY", "May 2024")

    with Image.open(BytesIO(rendered)) as image:
        assert image.format == "JPEG"
        assert image.size == (640, 480)
        assert image.getexif().get(0x010F) == "Apple"
        corner = image.convert("RGB").getpixel((639, 0))
        assert max(corner) < 10


def test_overlay_draws_caption_box_in_bottom_left() -> None:
    content = make_jpeg(size=(640, 480), color=(0, 0, 0))

    rendered = add_overlay(content, "Brooklyn, NY", "May 2024")

    with Image.open(BytesIO(rendered)) as image:
        pixels = image.convert("L")
        caption_area = pixels.crop((140, 300, 400, 460))
        assert caption_area.getextrema()[1] > 100


def test_overlay_promotes_subtitle_when_title_missing() -> None:
    content = make_jpeg(size=(320, 240))

    rendered = add_overlay(content, None, "May 2024")

    assert rendered != content
    with Image.open(BytesIO(rendered)) as image:
        assert image.size == (320, 240)
