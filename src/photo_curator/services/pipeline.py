"""Pipeline driver: ingest, score, decide and publish one intake batch at a time."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, timedelta
from functools import partial
from typing import Protocol
from uuid import uuid4

from photo_curator.adapters.dropbox_client import SyncClient
from photo_curator.adapters.jina_embedding_client import EmbeddingClient
from photo_curator.adapters.supabase_object_storage import ObjectStorage
from photo_curator.domain.photos import Photo, RemoteFile
from photo_curator.domain.reports import BatchReport, RunReport, TaskStatus
from photo_curator.services.duplicates import find_and_mark_duplicates
from photo_curator.services.events import mark_event_representatives
from photo_curator.services.locations import LocationResolver, format_place
from photo_curator.services.metadata import extract_metadata
from photo_curator.services.overlay import add_overlay
from photo_curator.services.retry import RetryExecutor
from photo_curator.services.scheduler import TaskScheduler
from photo_curator.services.scoring import ScoringService
from photo_curator.services.screening import ACCEPTED, ImageScreener

_logger = logging.getLogger(__name__)

INGESTED = "ingested"
REJECTED = "rejected"
SKIPPED = "skipped"


class PhotoRepository(Protocol):
    """Persistence interface for photo records."""

    def upsert_photo(self, values: dict[str, object]) -> Photo:
        """Insert or update a photo by its stable id and return the stored row."""

    def update_fields(self, photo_id: str, fields: dict[str, object]) -> None:
        """Update named fields on a photo."""

    def get_photo(self, photo_id: str) -> Photo | None:
        """Return a photo by id."""

    def select_unprocessed_ids(self) -> list[str]:
        """Return ids of photos not yet marked processed."""

    def list_processed_file_names(self) -> set[str]:
        """Return file names of every processed photo."""


@dataclass(frozen=True)
class PipelineSettings:
    """Tuning for one pipeline driver."""

    source_folder: str = "/Camera Uploads"
    highlights_folder: str = "/Highlights"
    highlight_threshold: float = 6.91
    date_concurrency: int = 2
    date_delay_floor: float = 0.0
    date_delay_ceiling: float = 1.0
    photo_concurrency: int = 4
    photo_delay_floor: float = 0.3
    photo_delay_ceiling: float = 0.5


@dataclass
class IngestedPhoto:
    """A photo that made it through ingest, with the bytes needed to publish."""

    photo: Photo
    content: bytes
    was_processed: bool


@dataclass
class PipelineDriver:
    """Runs intake batches per capture day through the curation stages."""

    repository: PhotoRepository
    sync_client: SyncClient
    storage: ObjectStorage
    embedding_client: EmbeddingClient
    screener: ImageScreener
    scoring_service: ScoringService
    location_resolver: LocationResolver
    retry: RetryExecutor
    settings: PipelineSettings = field(default_factory=PipelineSettings)
    scheduler_factory: Callable[..., TaskScheduler] = TaskScheduler
    active_runs: dict[str, dict[str, TaskScheduler]] = field(default_factory=dict)
    last_finished: dict[str, dict[str, object]] = field(default_factory=dict)

    async def run(
        self, start: date, end: date, *, run_key: str | None = None
    ) -> RunReport:
        """Process every day from `start` to `end` inclusive.

        Scheduler tables live under `run_key` while the run is active and are
        replaced by a serialized snapshot in `last_finished` once it ends.
        """
        days = dates_in_range(start, end)
        key = run_key or uuid4().hex
        registry: dict[str, TaskScheduler] = {}
        self.active_runs[key] = registry
        try:
            return await self._run_days(start, end, days, registry)
        finally:
            del self.active_runs[key]
            self.last_finished = _serialize_tables(registry)

    async def _run_days(
        self,
        start: date,
        end: date,
        days: list[date],
        registry: dict[str, TaskScheduler],
    ) -> RunReport:
        exclusions = self.repository.list_processed_file_names()
        _logger.info("Found %s existing processed image(s)", len(exclusions))

        date_scheduler = _register(
            registry,
            self.scheduler_factory,
            f"dates:{start.isoformat()}..{end.isoformat()}",
            concurrency=self.settings.date_concurrency,
            delay_floor=self.settings.date_delay_floor,
            delay_ceiling=self.settings.date_delay_ceiling,
        )
        handles = {
            day: date_scheduler.submit(
                f"Processing date: {day.isoformat()}",
                partial(self.process_day, day, exclusions, registry),
            )
            for day in days
        }
        await date_scheduler.drain()

        report = RunReport()
        for day, handle in handles.items():
            if handle.cancelled() or handle.exception() is not None:
                report.failed_batches.append(day.isoformat())
            else:
                report.add(handle.result())
        totals = report.totals()
        _logger.info(
            "Finished. Uploaded %s image(s) out of %s",
            totals["uploaded"],
            totals["fetched"],
        )
        return report

    async def process_day(
        self,
        day: date,
        exclusions: set[str],
        registry: dict[str, TaskScheduler] | None = None,
    ) -> BatchReport:
        """Ingest, decide and publish all photos modified on one day."""
        batch = day.isoformat()
        files = await self.retry.run(
            lambda: self.sync_client.list_images(
                self.settings.source_folder, exclusions, day=day
            ),
            action=f"list images {batch}",
        )
        _logger.info("Fetched %s image(s) to process for %s", len(files), batch)

        scheduler = _register(
            registry if registry is not None else {},
            self.scheduler_factory,
            f"photos:{batch}",
            concurrency=self.settings.photo_concurrency,
            delay_floor=self.settings.photo_delay_floor,
            delay_ceiling=self.settings.photo_delay_ceiling,
        )
        results: list[IngestedPhoto] = []
        lock = asyncio.Lock()
        handles = [
            scheduler.submit(
                f"Processing image: {remote.name}",
                partial(self.ingest, remote, results, lock),
            )
            for remote in files
        ]
        await scheduler.drain()
        outcomes = [
            handle.result()
            for handle in handles
            if not handle.cancelled() and handle.exception() is None
        ]

        photos = [item.photo for item in results]
        decide(photos)
        for photo in photos:
            self.repository.update_fields(photo.id, photo.decision_fields())

        publish_handles = [
            (
                item,
                scheduler.submit(
                    f"Publishing highlight: {item.photo.file_name}",
                    partial(self.publish, item),
                ),
            )
            for item in results
        ]
        await scheduler.drain()
        uploaded = 0
        for item, handle in publish_handles:
            if handle.cancelled() or handle.exception() is not None:
                continue
            if handle.result():
                uploaded += 1
            self.repository.update_fields(item.photo.id, {"is_processed": True})
            item.photo.is_processed = True

        failed = sum(
            1
            for meta in scheduler.statuses().values()
            if meta.status is TaskStatus.FAILED
        )
        report = BatchReport(
            batch=batch,
            fetched=len(files),
            processed=len(photos),
            rejected=outcomes.count(REJECTED),
            lesser_duplicates=sum(photo.is_lesser_duplicate for photo in photos),
            lesser_in_event=sum(photo.is_lesser_in_event for photo in photos),
            failed=failed,
            uploaded=uploaded,
        )
        _logger.info("Batch %s done: %s", batch, report)
        return report

    async def ingest(
        self, remote: RemoteFile, results: list[IngestedPhoto], lock: asyncio.Lock
    ) -> str:
        """Bring one file up to date: record, screen, upload, score, geocode, embed."""
        existing = self.repository.get_photo(remote.id)
        if existing is not None and existing.is_processed:
            _logger.info("Image already processed: %s", remote.name)
            return SKIPPED

        content = await self.retry.run(
            lambda: self.sync_client.download(remote), action=f"download {remote.name}"
        )
        metadata = extract_metadata(content)
        record: dict[str, object] = {
            "id": remote.id,
            "file_name": remote.name,
            "source_path": remote.path,
            "size": remote.size,
            "mime_type": metadata.mime_type,
            "taken_at": metadata.taken_at or remote.server_modified,
        }
        if metadata.is_screenshot:
            _logger.info("Encountered screenshot, continuing: %s", remote.name)
            self.repository.upsert_photo(
                {**record, "rejection_reason": "screenshot", "is_processed": True}
            )
            return REJECTED

        photo = self.repository.upsert_photo(
            {
                **record,
                "latitude": metadata.latitude,
                "longitude": metadata.longitude,
                "altitude": metadata.altitude,
                "device_make": metadata.device_make,
                "device_model": metadata.device_model,
            }
        )

        if photo.rejection_reason is None:
            photo.rejection_reason = await self.screener.screen(photo, content)
            self.repository.update_fields(
                photo.id, {"rejection_reason": photo.rejection_reason}
            )
            if photo.rejection_reason != ACCEPTED:
                self.repository.update_fields(photo.id, {"is_processed": True})
                _logger.info("Image rejected: %s", photo.file_name)
                return REJECTED
        elif photo.rejection_reason != ACCEPTED:
            _logger.info("Skipping previously rejected image: %s", photo.file_name)
            return REJECTED

        if photo.url is None:
            key = original_key(photo.file_name, remote.name)
            _logger.info("Uploading original: %s", photo.file_name)
            photo.url = await self.retry.run(
                lambda: self.storage.upload(content, key, metadata.mime_type),
                action=f"upload original {photo.file_name}",
            )
            self.repository.update_fields(photo.id, {"url": photo.url})

        if photo.composite_score is None:
            result = await self.scoring_service.score(photo, content)
            photo.composite_score = result.composite
            self.repository.update_fields(
                photo.id,
                {"composite_score": result.composite, "is_selfie": result.is_selfie},
            )

        if (
            photo.location_tag is None
            and photo.latitude is not None
            and photo.longitude is not None
        ):
            location = await self.location_resolver.resolve(
                photo.latitude, photo.longitude
            )
            if location is not None:
                photo.location_tag = location.neighborhood
                photo.city = location.city
                photo.state = location.state or location.sublocality
                self.repository.update_fields(
                    photo.id,
                    {
                        "location_tag": photo.location_tag,
                        "city": photo.city,
                        "state": photo.state,
                    },
                )

        if photo.embedding is None:
            _logger.info("Extracting image embedding: %s", photo.file_name)
            photo.embedding = await self.retry.run(
                lambda: self.embedding_client.embed_image(content),
                action=f"embed {photo.file_name}",
            )
            self.repository.update_fields(photo.id, {"embedding": photo.embedding})

        async with lock:
            results.append(
                IngestedPhoto(
                    photo=photo, content=content, was_processed=photo.is_processed
                )
            )
        return INGESTED

    async def publish(self, item: IngestedPhoto) -> bool:
        """Upload a captioned copy of a highlight; return False when not one."""
        photo = item.photo
        if item.was_processed or not is_highlight(
            photo, self.settings.highlight_threshold
        ):
            return False
        place = format_place(photo.location_tag, photo.city, photo.state)
        month = photo.taken_at.strftime("%b %Y")
        _logger.info(
            "Adding overlay for %s with location: %s", photo.file_name, place
        )
        rendered = await asyncio.to_thread(add_overlay, item.content, place, month)
        destination = f"{self.settings.highlights_folder}/{photo.file_name}"
        await self.retry.run(
            lambda: self.sync_client.upload(rendered, destination),
            action=f"upload highlight {photo.file_name}",
        )
        return True

    def task_statuses(self) -> dict[str, object]:
        """Return live tables per active run and the last finished run's tables."""
        return {
            "running": {
                key: _serialize_tables(registry)
                for key, registry in self.active_runs.items()
            },
            "last_finished": self.last_finished,
        }


def _register(
    registry: dict[str, TaskScheduler],
    factory: Callable[..., TaskScheduler],
    name: str,
    **kwargs: object,
) -> TaskScheduler:
    scheduler = factory(name=name, **kwargs)
    registry[name] = scheduler
    return scheduler


def _serialize_tables(
    registry: dict[str, TaskScheduler],
) -> dict[str, dict[str, object]]:
    return {
        name: {
            "summary": scheduler.summary(),
            "tasks": [meta.as_dict() for meta in scheduler.statuses().values()],
        }
        for name, scheduler in registry.items()
    }


def decide(photos: list[Photo]) -> None:
    """Mark lesser duplicates, then lesser event members among the rest."""
    find_and_mark_duplicates(photos)
    mark_event_representatives(
        [photo for photo in photos if not photo.is_lesser_duplicate]
    )


def is_highlight(photo: Photo, threshold: float) -> bool:
    """Return True for accepted, top-ranked photos worth publishing."""
    return (
        not photo.is_lesser_duplicate
        and not photo.is_lesser_in_event
        and photo.rejection_reason == ACCEPTED
        and photo.composite_score is not None
        and photo.composite_score >= threshold
    )


def original_key(file_name: str, remote_name: str) -> str:
    """Return the object-storage key for an original upload."""
    _, _, extension = remote_name.rpartition(".")
    return f"images/{file_name.replace(' ', '_')}/original.{extension.lower()}"


def dates_in_range(start: date, end: date) -> list[date]:
    """Return every date from `start` to `end` inclusive."""
    if end < start:
        raise ValueError("end date must not be before start date")
    return [start + timedelta(days=offset) for offset in range((end - start).days + 1)]
