"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

from photo_curator.services.pipeline import PipelineSettings
from photo_curator.services.retry import RetryPolicy

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    supabase_bucket: str = "photos"
    admin_token: str
    openai_api_key: str
    openai_model: str = "gpt-5.2"
    openai_reasoning_effort: str = "high"
    openai_store: bool = False
    jina_api_key: str
    jina_model: str = "jina-clip-v2"
    jina_dimensions: int = 1024
    google_maps_api_key: str
    dropbox_client_id: str
    dropbox_client_secret: str
    dropbox_refresh_token: str
    source_folder: str = "/Camera Uploads"
    highlights_folder: str = "/Highlights"
    highlight_threshold: float = 6.91
    date_concurrency: int = 2
    date_delay_floor: float = 0.0
    date_delay_ceiling: float = 1.0
    photo_concurrency: int = 4
    photo_delay_floor: float = 0.3
    photo_delay_ceiling: float = 0.5
    retry_max_attempts: int = 3
    retry_initial_delay: float = 1.0
    retry_max_delay: float = 30.0
    retry_backoff_factor: float = 2.0
    retry_rate_limit_delay: float = 60.0
    retry_timeout: float | None = 60.0
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    def pipeline_settings(self) -> PipelineSettings:
        """Return the driver tuning derived from these settings."""
        return PipelineSettings(
            source_folder=self.source_folder,
            highlights_folder=self.highlights_folder,
            highlight_threshold=self.highlight_threshold,
            date_concurrency=self.date_concurrency,
            date_delay_floor=self.date_delay_floor,
            date_delay_ceiling=self.date_delay_ceiling,
            photo_concurrency=self.photo_concurrency,
            photo_delay_floor=self.photo_delay_floor,
            photo_delay_ceiling=self.photo_delay_ceiling,
        )

    def retry_policy(self) -> RetryPolicy:
        """Return the retry policy for remote calls."""
        return RetryPolicy(
            max_attempts=self.retry_max_attempts,
            initial_delay=self.retry_initial_delay,
            max_delay=self.retry_max_delay,
            backoff_factor=self.retry_backoff_factor,
            default_rate_limit_delay=self.retry_rate_limit_delay,
            timeout=self.retry_timeout,
        )
