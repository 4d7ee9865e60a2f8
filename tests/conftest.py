"""Pytest configuration and fixtures."""

import uuid
from collections.abc import Generator
from contextlib import ExitStack
from datetime import timedelta
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from fakes import FakeTranscriber

from voicenotes.config import Settings
from voicenotes.main import create_app
from voicenotes.repositories.note_repository import NoteStorage
from voicenotes.schemas.note import Note, ProcessingStatus, SourceChannel, Transcript
from voicenotes.services.container import ServiceContainer, build_container
from voicenotes.services.enrichment import EnrichmentBackend
from voicenotes.services.pipeline import NotePipeline
from voicenotes.services.transcription import TranscriptionBackend
from voicenotes.utils.datetime import placeholder_title, utc_now

API_KEY = "test-secret"


@pytest.fixture(name="settings")
def settings_fixture(tmp_path: Path) -> Settings:
    """Isolated settings pointing at a temporary data directory."""
    return Settings(
        _env_file=None,
        data_dir=tmp_path / "data",
        api_secret_key=API_KEY,
        worker_count=1,
        transcription_timeout=5.0,
        enrichment_timeout=5.0,
    )


@pytest.fixture(name="transcriber")
def transcriber_fixture() -> FakeTranscriber:
    return FakeTranscriber()


@pytest.fixture(name="make_container")
def make_container_fixture(settings: Settings, transcriber: FakeTranscriber):
    """Factory for containers wired with fake backends."""
    built: list[ServiceContainer] = []

    def _make(
        transcriber_override: TranscriptionBackend | None = None,
        enricher: EnrichmentBackend | None = None,
        notifier=None,
        **overrides,
    ) -> ServiceContainer:
        active_settings = settings.model_copy(update=overrides) if overrides else settings
        container = build_container(
            active_settings,
            transcriber=transcriber_override or transcriber,
            enricher=enricher,
            notifier=notifier,
        )
        built.append(container)
        return container

    yield _make
    for container in built:
        container.engine.dispose()


@pytest.fixture(name="container")
def container_fixture(make_container) -> ServiceContainer:
    return make_container()


@pytest.fixture(name="storage")
def storage_fixture(container: ServiceContainer) -> NoteStorage:
    return container.storage


@pytest.fixture(name="make_pipeline")
def make_pipeline_fixture(container: ServiceContainer):
    """Pipelines over the shared storage with per-test backends."""

    def _make(
        transcriber: TranscriptionBackend | None = None,
        enricher: EnrichmentBackend | None = None,
        notifier=None,
        **overrides,
    ) -> NotePipeline:
        settings = container.settings
        if overrides:
            settings = settings.model_copy(update=overrides)
        return NotePipeline(
            storage=container.storage,
            transcriber=transcriber or FakeTranscriber(),
            settings=settings,
            enricher=enricher,
            notifier=notifier,
        )

    return _make


@pytest.fixture(name="make_client")
def make_client_fixture() -> Generator:
    """Start the app around a container; the client closes at teardown."""
    with ExitStack() as stack:

        def _make(container: ServiceContainer) -> TestClient:
            return stack.enter_context(TestClient(create_app(container)))

        yield _make


@pytest.fixture(name="client")
def client_fixture(container: ServiceContainer, make_client) -> TestClient:
    return make_client(container)


@pytest.fixture(name="auth_headers")
def auth_headers_fixture() -> dict[str, str]:
    return {"X-API-Key": API_KEY}


@pytest.fixture(name="note_factory")
def note_factory_fixture(storage: NoteStorage):
    """Store finished notes directly, bypassing the pipeline."""

    def _make(
        text: str | None = "A finished voice note.",
        age: timedelta = timedelta(0),
        failed: bool = False,
        duration: float = 10.0,
        status: ProcessingStatus = ProcessingStatus.COMPLETED,
    ) -> Note:
        note_id = str(uuid.uuid4())
        created_at = utc_now() - age
        transcript = None
        if failed:
            transcript = Transcript.failed("engine crashed", backend="fake-whisper")
        elif text is not None:
            transcript = Transcript(text=text, language_code="en", duration_seconds=duration)
        note = Note(
            id=note_id,
            audio_ref=storage.put_audio(note_id, b"OggS fake audio", "memo.ogg"),
            created_at=created_at,
            updated_at=created_at,
            source_channel=SourceChannel.UPLOAD,
            original_filename="memo.ogg",
            content_type="audio/ogg",
            size_bytes=15,
            title=placeholder_title(created_at),
            processing_status=status,
            transcript=transcript,
        )
        storage.put_metadata(note)
        return note

    return _make
