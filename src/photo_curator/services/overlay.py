"""Location/date caption overlay for highlight images."""

from io import BytesIO

from PIL import Image, ImageDraw, ImageFont, ImageOps

_TITLE_SIZE = 64
_SUBTITLE_SIZE = 56
_BOX_HEIGHT = 200
_MARGIN = 20
_LEFT_PADDING = 140
_RIGHT_PADDING = 100
_BACKGROUND = (0, 0, 0, 110)
_TITLE_COLOR = (255, 255, 255, 255)
_SUBTITLE_COLOR = (255, 255, 255, 205)


def add_overlay(content: bytes, title: str | None, subtitle: str | None) -> bytes:
    """Draw a caption box in the bottom-left corner and keep the EXIF block.

    An empty title promotes the subtitle to the title line.
    """
    if not title or title in {"null", "None"}:
        title, subtitle = subtitle or "", None

    with Image.open(BytesIO(content)) as original:
        image_format = original.format or "JPEG"
        image = ImageOps.exif_transpose(original)
        exif = image.getexif()
        base = image.convert("RGBA")

    title_font = ImageFont.load_default(size=_TITLE_SIZE)
    subtitle_font = ImageFont.load_default(size=_SUBTITLE_SIZE)
    measure = ImageDraw.Draw(base)
    title_width = measure.textlength(title, font=title_font)
    subtitle_width = measure.textlength(subtitle, font=subtitle_font) if subtitle else 0
    box_width = int(max(title_width, subtitle_width)) + _LEFT_PADDING + _RIGHT_PADDING

    left = _MARGIN
    top = max(base.height - _BOX_HEIGHT - _MARGIN, 0)
    layer = Image.new("RGBA", base.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(layer)
    draw.rectangle(
        (left, top, min(left + box_width, base.width), top + _BOX_HEIGHT),
        fill=_BACKGROUND,
    )
    title_y = top + (88 if subtitle else 100)
    draw.text(
        (left + _LEFT_PADDING, title_y),
        title,
        font=title_font,
        fill=_TITLE_COLOR,
        anchor="lm",
    )
    if subtitle:
        draw.text(
            (left + _LEFT_PADDING, top + 152),
            subtitle,
            font=subtitle_font,
            fill=_SUBTITLE_COLOR,
            anchor="lm",
        )

    composed = Image.alpha_composite(base, layer)
    if image_format.upper() in {"JPEG", "JPG"}:
        composed = composed.convert("RGB")
    output = BytesIO()
    composed.save(output, format=image_format, exif=exif.tobytes())
    return output.getvalue()
