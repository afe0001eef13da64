"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from photo_curator.adapters.dropbox_client import HttpxDropboxClient
from photo_curator.adapters.google_geocode_client import HttpxGeocodeClient
from photo_curator.adapters.jina_embedding_client import JinaEmbeddingClient
from photo_curator.adapters.openai_vision_client import OpenAIVisionClient
from photo_curator.adapters.supabase_object_storage import SupabaseObjectStorage
from photo_curator.adapters.supabase_photo_repository import SupabasePhotoRepository
from photo_curator.config import Settings
from photo_curator.services.locations import LocationResolver
from photo_curator.services.pipeline import PipelineDriver
from photo_curator.services.retry import RetryExecutor
from photo_curator.services.runs import RunService
from photo_curator.services.scoring import ScoringService
from photo_curator.services.screening import ImageScreener


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    pipeline_driver: PipelineDriver
    run_service: RunService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    photo_repository = SupabasePhotoRepository(supabase_client)
    storage = SupabaseObjectStorage(supabase_client, resolved_settings.supabase_bucket)
    retry = RetryExecutor(resolved_settings.retry_policy())

    openai_client = OpenAIVisionClient.create(resolved_settings.openai_api_key)
    scoring_service = ScoringService(
        client=openai_client,
        repository=photo_repository,
        retry=retry,
        model=resolved_settings.openai_model,
        reasoning_effort=resolved_settings.openai_reasoning_effort,
        store=resolved_settings.openai_store,
    )
    screener = ImageScreener(
        client=openai_client,
        retry=retry,
        model=resolved_settings.openai_model,
        reasoning_effort=resolved_settings.openai_reasoning_effort,
        store=resolved_settings.openai_store,
    )
    embedding_client = JinaEmbeddingClient.create(
        api_key=resolved_settings.jina_api_key,
        model=resolved_settings.jina_model,
        dimensions=resolved_settings.jina_dimensions,
    )
    geocode_client = HttpxGeocodeClient.create(resolved_settings.google_maps_api_key)
    sync_client = HttpxDropboxClient.create(
        client_id=resolved_settings.dropbox_client_id,
        client_secret=resolved_settings.dropbox_client_secret,
        refresh_token=resolved_settings.dropbox_refresh_token,
    )
    pipeline_driver = PipelineDriver(
        repository=photo_repository,
        sync_client=sync_client,
        storage=storage,
        embedding_client=embedding_client,
        screener=screener,
        scoring_service=scoring_service,
        location_resolver=LocationResolver(client=geocode_client, retry=retry),
        retry=retry,
        settings=resolved_settings.pipeline_settings(),
    )
    run_service = RunService(pipeline_driver)

    async def close_resources() -> None:
        await sync_client.close()
        await embedding_client.close()
        await geocode_client.close()
        await openai_client.close()

    return AppContainer(
        settings=resolved_settings,
        pipeline_driver=pipeline_driver,
        run_service=run_service,
        close_resources=close_resources,
    )
