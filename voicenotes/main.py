"""Voice Notes API - Main Application."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from voicenotes import __version__
from voicenotes.api.routes import (
    ingest_router,
    notes_router,
    search_router,
    summary_router,
)
from voicenotes.config import settings
from voicenotes.scheduler import create_scheduler
from voicenotes.services.container import ServiceContainer, build_container
from voicenotes.services.transcription import AVAILABLE_LOCAL_MODELS
from voicenotes.utils.logging_utils import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    container: ServiceContainer | None = getattr(app.state, "container", None)
    owns_container = container is None
    if container is None:
        setup_logging(settings.log_level, settings.log_file)
        container = build_container(settings)
        app.state.container = container

    if not container.transcriber.is_available():
        logger.warning(
            f"Transcription backend unavailable: {container.transcriber.unavailable_reason()}"
        )

    container.worker.start()
    await container.worker.requeue_unfinished()

    scheduler_instance = create_scheduler(container)
    if scheduler_instance is not None:
        scheduler_instance.start()

    logger.info(f"{container.settings.app_name} started")
    yield

    if scheduler_instance is not None:
        scheduler_instance.shutdown(wait=False)
    await container.worker.stop()
    if owns_container:
        container.engine.dispose()
        app.state.container = None


def create_app(container: ServiceContainer | None = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        container: Optional pre-built service container; built from
            settings at startup when omitted
    """
    app = FastAPI(
        title=settings.app_name,
        description="Self-hosted voice notes with transcription, AI summaries and search",
        version=__version__,
        lifespan=lifespan,
    )
    if container is not None:
        app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(ingest_router)
    app.include_router(notes_router)
    app.include_router(search_router)
    app.include_router(summary_router)

    @app.get("/health")
    async def health_check() -> dict:
        """
        System health check.

        Reports the transcription backend and whether AI processing is on.
        """
        active: ServiceContainer = app.state.container
        transcriber = active.transcriber
        available = transcriber.is_available()
        return {
            "status": "ok",
            "version": __version__,
            "transcription": {
                "backend": transcriber.name,
                "available": available,
                "detail": None if available else transcriber.unavailable_reason(),
                "local_models": AVAILABLE_LOCAL_MODELS,
            },
            "ai_processing_enabled": active.enricher is not None,
            "notifications_enabled": active.notifier is not None,
        }

    return app


app = create_app()
