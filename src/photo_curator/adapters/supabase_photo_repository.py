"""Supabase-backed photo repository."""

import json
from dataclasses import dataclass
from datetime import datetime

from supabase import Client

from photo_curator.domain.photos import Photo
from photo_curator.services.pipeline import PhotoRepository

_TABLE = "photos"


@dataclass
class SupabasePhotoRepository(PhotoRepository):
    """Supabase implementation for photo records."""

    client: Client

    def upsert_photo(self, values: dict[str, object]) -> Photo:
        """Insert or update a photo by its stable id and return the stored row."""
        payload = {key: _serialize(value) for key, value in values.items()}
        response = (
            self.client.table(_TABLE).upsert(payload, on_conflict="id").execute()
        )
        if not response.data:
            raise RuntimeError("Failed to upsert photo")
        return parse_photo(response.data[0])

    def update_fields(self, photo_id: str, fields: dict[str, object]) -> None:
        """Update named fields on a photo."""
        payload = {key: _serialize(value) for key, value in fields.items()}
        self.client.table(_TABLE).update(payload).eq("id", photo_id).execute()

    def get_photo(self, photo_id: str) -> Photo | None:
        """Return a photo by id."""
        response = (
            self.client.table(_TABLE).select("*").eq("id", photo_id).limit(1).execute()
        )
        if not response.data:
            return None
        return parse_photo(response.data[0])

    def select_unprocessed_ids(self) -> list[str]:
        """Return ids of photos not yet marked processed."""
        response = (
            self.client.table(_TABLE)
            .select("id")
            .eq("is_processed", False)
            .order("taken_at", desc=False)
            .execute()
        )
        return [str(row["id"]) for row in response.data or []]

    def list_processed_file_names(self) -> set[str]:
        """Return file names of every processed photo."""
        response = (
            self.client.table(_TABLE)
            .select("file_name")
            .eq("is_processed", True)
            .execute()
        )
        return {str(row["file_name"]) for row in response.data or []}


def parse_photo(row: dict[str, object]) -> Photo:
    """Build a Photo from a database row."""
    return Photo(
        id=str(row["id"]),
        file_name=str(row.get("file_name", "")),
        taken_at=_parse_datetime(row["taken_at"]),
        source_path=str(row.get("source_path") or ""),
        mime_type=str(row.get("mime_type") or "image/jpeg"),
        size=_optional_int(row.get("size")),
        url=row.get("url"),  # type: ignore[arg-type]
        embedding=_parse_embedding(row.get("embedding")),
        location_tag=row.get("location_tag"),  # type: ignore[arg-type]
        city=row.get("city"),  # type: ignore[arg-type]
        state=row.get("state"),  # type: ignore[arg-type]
        latitude=_optional_float(row.get("latitude")),
        longitude=_optional_float(row.get("longitude")),
        altitude=row.get("altitude"),  # type: ignore[arg-type]
        device_make=row.get("device_make"),  # type: ignore[arg-type]
        device_model=row.get("device_model"),  # type: ignore[arg-type]
        technical_score=_optional_float(row.get("technical_score")),
        technical_reason=row.get("technical_reason"),  # type: ignore[arg-type]
        content_score=_optional_float(row.get("content_score")),
        content_reason=row.get("content_reason"),  # type: ignore[arg-type]
        emotional_score=_optional_float(row.get("emotional_score")),
        emotional_reason=row.get("emotional_reason"),  # type: ignore[arg-type]
        composite_score=_optional_float(row.get("composite_score")),
        is_selfie=bool(row.get("is_selfie")),
        rejection_reason=row.get("rejection_reason"),  # type: ignore[arg-type]
        is_processed=bool(row.get("is_processed")),
        is_lesser_duplicate=bool(row.get("is_lesser_duplicate")),
        better_duplicate_ref=row.get("better_duplicate_ref"),  # type: ignore[arg-type]
        is_lesser_in_event=bool(row.get("is_lesser_in_event")),
        better_event_refs=list(row.get("better_event_refs") or []),  # type: ignore[call-overload]
    )


def _serialize(value: object) -> object:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _parse_datetime(value: object) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def _parse_embedding(value: object) -> list[float] | None:
    # pgvector columns come back from PostgREST as "[0.1,0.2,...]" strings.
    if value is None:
        return None
    if isinstance(value, str):
        value = json.loads(value)
    return [float(item) for item in value]  # type: ignore[attr-defined]


def _optional_float(value: object) -> float | None:
    return float(value) if value is not None else None  # type: ignore[arg-type]


def _optional_int(value: object) -> int | None:
    return int(value) if value is not None else None  # type: ignore[call-overload]
