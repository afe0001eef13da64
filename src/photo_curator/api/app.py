"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from photo_curator.api.admin import router as admin_router
from photo_curator.app_logging import configure_logging
from photo_curator.containers import AppContainer


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app serving the curation admin API."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        state_container: AppContainer = app.state.container
        logger.info(
            "Photo curator started (environment=%s)",
            state_container.settings.environment,
        )
        yield
        cancelled = await state_container.run_service.shutdown()
        if cancelled:
            logger.warning("Cancelled %s unfinished run(s) on shutdown", cancelled)
        await state_container.close_resources()

    app = FastAPI(title="photo-curator", lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    return app
