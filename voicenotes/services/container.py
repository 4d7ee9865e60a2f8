"""Construction of the service graph from settings."""

from dataclasses import dataclass

from sqlalchemy.engine import Engine

from voicenotes.config import Settings
from voicenotes.database import build_engine, create_db_and_tables
from voicenotes.repositories.note_repository import NoteStorage
from voicenotes.services.enrichment import EnrichmentBackend, get_enrichment_backend
from voicenotes.services.note_service import NoteService
from voicenotes.services.notifier import WebhookNotifier
from voicenotes.services.pipeline import NotePipeline
from voicenotes.services.transcription import (
    TranscriptionBackend,
    get_transcription_backend,
)
from voicenotes.tasks.processing_tasks import PipelineWorker


@dataclass
class ServiceContainer:
    """Every long-lived dependency, passed explicitly instead of module globals."""

    settings: Settings
    engine: Engine
    storage: NoteStorage
    transcriber: TranscriptionBackend
    enricher: EnrichmentBackend | None
    notifier: WebhookNotifier | None
    pipeline: NotePipeline
    note_service: NoteService
    worker: PipelineWorker


def build_container(
    settings: Settings,
    transcriber: TranscriptionBackend | None = None,
    enricher: EnrichmentBackend | None = None,
    notifier: WebhookNotifier | None = None,
) -> ServiceContainer:
    """
    Wire storage, backends, pipeline and worker together.

    Backends not passed in are built from settings.

    Args:
        settings: Application settings
        transcriber: Optional transcription backend override
        enricher: Optional enrichment backend override
        notifier: Optional notification sink override

    Returns:
        Ready-to-use container (workers not yet started)
    """
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    engine = build_engine(settings.resolved_database_url)
    create_db_and_tables(engine)
    storage = NoteStorage(engine, settings.audio_dir)

    transcriber = transcriber or get_transcription_backend(settings)
    if enricher is None:
        enricher = get_enrichment_backend(settings)
    if notifier is None and settings.notification_webhook_url:
        notifier = WebhookNotifier(
            settings.notification_webhook_url, timeout=settings.notification_timeout
        )

    pipeline = NotePipeline(
        storage=storage,
        transcriber=transcriber,
        settings=settings,
        enricher=enricher,
        notifier=notifier,
    )
    return ServiceContainer(
        settings=settings,
        engine=engine,
        storage=storage,
        transcriber=transcriber,
        enricher=enricher,
        notifier=notifier,
        pipeline=pipeline,
        note_service=NoteService(storage, enricher),
        worker=PipelineWorker(
            pipeline, worker_count=settings.worker_count, queue_size=settings.queue_size
        ),
    )
