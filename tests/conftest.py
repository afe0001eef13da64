"""Shared test fixtures."""

from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime
from functools import partial
from io import BytesIO

import pytest
from PIL import ExifTags, Image

from photo_curator.adapters.dropbox_client import SyncClient
from photo_curator.adapters.jina_embedding_client import EmbeddingClient
from photo_curator.adapters.supabase_object_storage import ObjectStorage
from photo_curator.config import Settings
from photo_curator.containers import AppContainer
from photo_curator.domain.errors import TransientRemoteError
from photo_curator.domain.photos import Photo, RemoteFile
from photo_curator.services.locations import GeocodeClient, LocationResolver
from photo_curator.services.pipeline import (
    PhotoRepository,
    PipelineDriver,
    PipelineSettings,
)
from photo_curator.services.prompts import (
    CONTENT_PROMPT,
    EMOTIONAL_PROMPT,
    SCREENING_PROMPT,
    TECHNICAL_PROMPT,
)
from photo_curator.services.retry import RetryExecutor, RetryPolicy
from photo_curator.services.runs import RunService
from photo_curator.services.scheduler import TaskScheduler
from photo_curator.services.scoring import ScoringService
from photo_curator.services.screening import ImageScreener
from photo_curator.services.vision import VisionClient


async def no_sleep(_delay: float) -> None:
    return None


def make_jpeg(
    taken_at: datetime | None = None,
    *,
    make: str | None = "Apple",
    color: tuple[int, int, int] = (120, 60, 30),
    size: tuple[int, int] = (64, 48),
) -> bytes:
    """Render a small JPEG carrying camera EXIF."""
    exif = Image.Exif()
    if make:
        exif[ExifTags.Base.Make] = make
        exif[ExifTags.Base.Model] = "iPhone 15"
    if taken_at is not None:
        exif[ExifTags.IFD.Exif] = {
            ExifTags.Base.DateTimeOriginal: taken_at.strftime("%Y:%m:%d %H:%M:%S")
        }
    output = BytesIO()
    Image.new("RGB", size, color).save(output, format="JPEG", exif=exif)
    return output.getvalue()


def make_png_screenshot(size: tuple[int, int] = (390, 844)) -> bytes:
    """Render an RGBA PNG without camera metadata."""
    output = BytesIO()
    Image.new("RGBA", size, (255, 255, 255, 255)).save(output, format="PNG")
    return output.getvalue()


def make_photo(
    photo_id: str,
    taken_at: datetime,
    *,
    score: float | None = None,
    embedding: list[float] | None = None,
    location_tag: str | None = None,
) -> Photo:
    return Photo(
        id=photo_id,
        file_name=f"{photo_id}.jpg",
        taken_at=taken_at,
        composite_score=score,
        embedding=embedding,
        location_tag=location_tag,
    )


@dataclass
class InMemoryPhotoRepository(PhotoRepository):
    """In-memory photo repository for tests."""

    rows: dict[str, Photo] = field(default_factory=dict)
    updates: list[tuple[str, dict[str, object]]] = field(default_factory=list)

    def upsert_photo(self, values: dict[str, object]) -> Photo:
        current = self.rows.get(str(values["id"]))
        photo = Photo(**values) if current is None else replace(current, **values)  # type: ignore[arg-type]
        self.rows[photo.id] = photo
        return _copy(photo)

    def update_fields(self, photo_id: str, fields: dict[str, object]) -> None:
        self.updates.append((photo_id, dict(fields)))
        photo = self.rows[photo_id]
        for key, value in fields.items():
            setattr(photo, key, value)

    def get_photo(self, photo_id: str) -> Photo | None:
        photo = self.rows.get(photo_id)
        return _copy(photo) if photo else None

    def select_unprocessed_ids(self) -> list[str]:
        return [
            photo.id
            for photo in sorted(self.rows.values(), key=lambda row: row.taken_at)
            if not photo.is_processed
        ]

    def list_processed_file_names(self) -> set[str]:
        return {photo.file_name for photo in self.rows.values() if photo.is_processed}


def _copy(photo: Photo) -> Photo:
    return replace(photo, better_event_refs=list(photo.better_event_refs))


@dataclass
class FakeSyncClient(SyncClient):
    """Fake file-sync backend serving in-memory files."""

    files: list[RemoteFile] = field(default_factory=list)
    contents: dict[str, bytes] = field(default_factory=dict)
    uploads: dict[str, bytes] = field(default_factory=dict)
    broken_downloads: set[str] = field(default_factory=set)
    list_error: Exception | None = None

    def add(self, remote: RemoteFile, content: bytes) -> None:
        self.files.append(remote)
        self.contents[remote.id] = content

    async def list_images(
        self,
        folder: str,
        exclusions: set[str],
        *,
        day: date | None = None,
    ) -> list[RemoteFile]:
        if self.list_error is not None:
            raise self.list_error
        return [
            remote
            for remote in self.files
            if remote.name not in exclusions
            and (day is None or remote.server_modified.date() == day)
        ]

    async def download(self, file: RemoteFile) -> bytes:
        if file.id in self.broken_downloads:
            raise TransientRemoteError("download failed", service="dropbox")
        return self.contents[file.id]

    async def upload(self, content: bytes, path: str) -> str:
        self.uploads[path] = content
        return path


@dataclass
class FakeObjectStorage(ObjectStorage):
    """Fake object storage recording uploads."""

    uploads: dict[str, tuple[bytes, str]] = field(default_factory=dict)

    async def upload(self, content: bytes, key: str, content_type: str) -> str:
        self.uploads[key] = (content, content_type)
        return f"https://storage.test/{key}"


@dataclass
class FakeEmbeddingClient(EmbeddingClient):
    """Fake embedding client keyed by image bytes."""

    vectors: dict[bytes, list[float]] = field(default_factory=dict)
    default: list[float] = field(default_factory=lambda: [0.0, 0.0, 1.0])

    async def embed_image(self, image_bytes: bytes) -> list[float]:
        return list(self.vectors.get(image_bytes, self.default))


def default_vision_payloads() -> dict[str, dict[str, object]]:
    return {
        SCREENING_PROMPT: {
            "is_acceptable": True,
            "rejection_reason": "none",
            "quality_issue": None,
        },
        TECHNICAL_PROMPT: {
            "scores": {"clarity": 8, "lighting": 8, "composition": 8, "color": 8},
            "reasoning": "Sharp and well lit.",
        },
        CONTENT_PROMPT: {
            "scores": {
                "subject_clarity": 7,
                "composition": 7,
                "interest": 7,
                "scene": 7,
            },
            "reasoning": "Clear subject.",
            "has_people": False,
            "is_group_shot": False,
            "is_selfie": False,
            "is_people_main": False,
        },
        EMOTIONAL_PROMPT: {
            "scores": {"atmosphere": 6, "connection": 6, "impact": 6, "poetry": 6},
            "reasoning": "Pleasant mood.",
            "has_people": False,
            "is_humorous": False,
        },
    }


@dataclass
class FakeVisionClient(VisionClient):
    """Fake vision client answering by prompt."""

    payloads: dict[str, dict[str, object]] = field(
        default_factory=default_vision_payloads
    )
    prompts: list[str] = field(default_factory=list)

    async def extract(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        image_data_url: str,
        schema: dict[str, object],
        prompt: str,
    ) -> dict[str, object]:
        self.prompts.append(prompt)
        return self.payloads[prompt]


@dataclass
class FakeGeocodeClient(GeocodeClient):
    """Fake geocoder returning a fixed payload."""

    payload: dict[str, object] = field(
        default_factory=lambda: {"status": "ZERO_RESULTS", "results": []}
    )
    calls: list[tuple[float, float]] = field(default_factory=list)

    async def reverse_geocode(
        self, latitude: float, longitude: float
    ) -> dict[str, object]:
        self.calls.append((latitude, longitude))
        return self.payload


@dataclass
class PipelineHarness:
    """A driver wired to fakes, with the fakes exposed for assertions."""

    driver: PipelineDriver
    repository: InMemoryPhotoRepository
    sync_client: FakeSyncClient
    storage: FakeObjectStorage
    embedding_client: FakeEmbeddingClient
    vision_client: FakeVisionClient
    geocode_client: FakeGeocodeClient


@pytest.fixture
def retry() -> RetryExecutor:
    return RetryExecutor(RetryPolicy(timeout=5.0), sleep=no_sleep)


@pytest.fixture
def harness(retry: RetryExecutor) -> PipelineHarness:
    repository = InMemoryPhotoRepository()
    sync_client = FakeSyncClient()
    storage = FakeObjectStorage()
    embedding_client = FakeEmbeddingClient()
    vision_client = FakeVisionClient()
    geocode_client = FakeGeocodeClient()
    driver = PipelineDriver(
        repository=repository,
        sync_client=sync_client,
        storage=storage,
        embedding_client=embedding_client,
        screener=ImageScreener(
            client=vision_client,
            retry=retry,
            model="gpt-5.2",
            reasoning_effort=None,
            store=False,
        ),
        scoring_service=ScoringService(
            client=vision_client,
            repository=repository,
            retry=retry,
            model="gpt-5.2",
            reasoning_effort=None,
            store=False,
        ),
        location_resolver=LocationResolver(client=geocode_client, retry=retry),
        retry=retry,
        settings=PipelineSettings(),
        scheduler_factory=partial(TaskScheduler, sleep=no_sleep),
    )
    return PipelineHarness(
        driver=driver,
        repository=repository,
        sync_client=sync_client,
        storage=storage,
        embedding_client=embedding_client,
        vision_client=vision_client,
        geocode_client=geocode_client,
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="header.payload.signature",
        admin_token="admin-token",
        openai_api_key="openai-key",
        jina_api_key="jina-key",
        google_maps_api_key="maps-key",
        dropbox_client_id="dropbox-id",
        dropbox_client_secret="dropbox-secret",
        dropbox_refresh_token="dropbox-refresh",
    )


@pytest.fixture
def container(settings: Settings, harness: PipelineHarness) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        pipeline_driver=harness.driver,
        run_service=RunService(harness.driver),
        close_resources=close_resources,
    )


def remote_file(file_id: str, server_modified: datetime) -> RemoteFile:
    return RemoteFile(
        id=file_id,
        name=f"{file_id}.jpg",
        path=f"/camera uploads/{file_id}.jpg",
        size=1024,
        server_modified=server_modified,
    )


MAY_FIRST = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)
