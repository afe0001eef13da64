"""Domain models for photos and curation decisions."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class Photo:
    """A photo record annotated in place as the pipeline progresses."""

    id: str
    file_name: str
    taken_at: datetime
    source_path: str = ""
    mime_type: str = "image/jpeg"
    size: int | None = None
    url: str | None = None
    embedding: list[float] | None = None
    location_tag: str | None = None
    city: str | None = None
    state: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    altitude: str | None = None
    device_make: str | None = None
    device_model: str | None = None
    technical_score: float | None = None
    technical_reason: str | None = None
    content_score: float | None = None
    content_reason: str | None = None
    emotional_score: float | None = None
    emotional_reason: str | None = None
    composite_score: float | None = None
    is_selfie: bool = False
    rejection_reason: str | None = None
    is_processed: bool = False
    is_lesser_duplicate: bool = False
    better_duplicate_ref: str | None = None
    is_lesser_in_event: bool = False
    better_event_refs: list[str] = field(default_factory=list)

    @property
    def ref(self) -> str:
        """Reference used by other photos to point at this one."""
        return self.id

    def decision_fields(self) -> dict[str, object]:
        """Return the derived decision fields for persistence."""
        return {
            "is_lesser_duplicate": self.is_lesser_duplicate,
            "better_duplicate_ref": self.better_duplicate_ref,
            "is_lesser_in_event": self.is_lesser_in_event,
            "better_event_refs": list(self.better_event_refs),
        }


@dataclass(frozen=True)
class Location:
    """Reverse-geocoded place for a coordinate pair."""

    address: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    postal_code: str | None = None
    neighborhood: str | None = None
    sublocality: str | None = None


@dataclass(frozen=True)
class ImageMetadata:
    """Metadata extracted from image bytes."""

    mime_type: str
    size: int
    taken_at: datetime | None = None
    latitude: float | None = None
    longitude: float | None = None
    altitude: str | None = None
    device_make: str | None = None
    device_model: str | None = None
    width: int | None = None
    height: int | None = None
    is_screenshot: bool = False


@dataclass(frozen=True)
class RemoteFile:
    """A file listed by the sync backend."""

    id: str
    name: str
    path: str
    size: int
    server_modified: datetime
    content_hash: str | None = None

