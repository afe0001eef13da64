"""EXIF metadata extraction and screenshot detection."""

import logging
from datetime import UTC, datetime
from io import BytesIO

from PIL import ExifTags, Image

from photo_curator.domain.photos import ImageMetadata

_logger = logging.getLogger(__name__)

_EXIF_DATE_FORMAT = "%Y:%m:%d %H:%M:%S"
_COMMON_ASPECT_RATIOS = (4 / 3, 16 / 9, 3 / 2, 1.0)
_ASPECT_TOLERANCE = 0.05
_CAMERA_TAGS = ("Make", "Model", "ExposureTime", "ISOSpeedRatings")


def extract_metadata(content: bytes) -> ImageMetadata:
    """Read capture time, GPS, device and size information from image bytes."""
    if not content:
        raise ValueError("Invalid image buffer")
    with Image.open(BytesIO(content)) as image:
        image_format = (image.format or "jpeg").lower()
        width, height = image.size
        has_alpha = _has_alpha(image)
        exif = image.getexif()
        base = {ExifTags.TAGS.get(key, key): value for key, value in exif.items()}
        details = {
            ExifTags.TAGS.get(key, key): value
            for key, value in exif.get_ifd(ExifTags.IFD.Exif).items()
        }
        gps = {
            ExifTags.GPSTAGS.get(key, key): value
            for key, value in exif.get_ifd(ExifTags.IFD.GPSInfo).items()
        }

    latitude, longitude = parse_gps(gps)
    camera_tags = {**base, **details}
    has_camera = (
        any(camera_tags.get(tag) for tag in _CAMERA_TAGS) or latitude is not None
    )
    altitude = gps.get("GPSAltitude")
    return ImageMetadata(
        mime_type=f"image/{'jpeg' if image_format == 'jpg' else image_format}",
        size=len(content),
        taken_at=parse_exif_datetime(details.get("DateTimeOriginal")),
        latitude=latitude,
        longitude=longitude,
        altitude=str(float(altitude)) if altitude is not None else None,
        device_make=_clean(base.get("Make")),
        device_model=_clean(base.get("Model")),
        width=width,
        height=height,
        is_screenshot=is_likely_screenshot(
            has_camera_metadata=has_camera,
            has_alpha=has_alpha,
            width=width,
            height=height,
        ),
    )


def parse_exif_datetime(value: object) -> datetime | None:
    """Parse an EXIF timestamp, treating it as UTC."""
    if not value:
        return None
    try:
        parsed = datetime.strptime(str(value).strip("\x00 "), _EXIF_DATE_FORMAT)
    except ValueError:
        _logger.warning("Unparseable EXIF timestamp: %r", value)
        return None
    return parsed.replace(tzinfo=UTC)


def parse_gps(gps: dict[object, object]) -> tuple[float | None, float | None]:
    """Convert EXIF GPS degrees/minutes/seconds into signed decimal degrees."""
    lat_value = gps.get("GPSLatitude")
    lng_value = gps.get("GPSLongitude")
    lat_ref = gps.get("GPSLatitudeRef")
    lng_ref = gps.get("GPSLongitudeRef")
    if not lat_value or not lng_value or not lat_ref or not lng_ref:
        return None, None
    try:
        latitude = _to_degrees(lat_value)
        longitude = _to_degrees(lng_value)
    except (TypeError, ValueError, ZeroDivisionError):
        _logger.warning("Invalid GPS values: %r %r", lat_value, lng_value)
        return None, None
    if str(lat_ref).upper().startswith("S"):
        latitude = -latitude
    if str(lng_ref).upper().startswith("W"):
        longitude = -longitude
    if not is_valid_coordinate(latitude, longitude):
        _logger.warning("Invalid GPS coordinates: %s, %s", latitude, longitude)
        return None, None
    return latitude, longitude


def is_valid_coordinate(latitude: float, longitude: float) -> bool:
    """Return True when the pair is a real position on the globe."""
    return -90 <= latitude <= 90 and -180 <= longitude <= 180  # noqa: PLR2004


def is_likely_screenshot(
    *, has_camera_metadata: bool, has_alpha: bool, width: int, height: int
) -> bool:
    """Flag images that look like screenshots rather than camera captures."""
    return (
        not has_camera_metadata
        and has_alpha
        and is_unusual_resolution(width, height)
    )


def is_unusual_resolution(width: int, height: int) -> bool:
    """Return True for resolutions phone cameras do not produce."""
    if not width or not height:
        return True
    aspect_ratio = width / height
    megapixels = (width * height) / 1_000_000
    common_megapixels = 8 <= megapixels <= 108  # noqa: PLR2004
    standard_aspect = any(
        abs(aspect_ratio - ratio) <= _ASPECT_TOLERANCE
        for ratio in _COMMON_ASPECT_RATIOS
    )
    return (
        (width % 100 != 0 and height % 100 != 0)
        or megapixels < 2  # noqa: PLR2004
        or (not standard_aspect and not common_megapixels)
    )


def _to_degrees(value: object) -> float:
    degrees, minutes, seconds = value  # type: ignore[misc]
    return float(degrees) + float(minutes) / 60 + float(seconds) / 3600


def _has_alpha(image: Image.Image) -> bool:
    return image.mode in {"RGBA", "LA", "PA"} or (
        image.mode == "P" and "transparency" in image.info
    )


def _clean(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip("\x00 ")
    return text or None
