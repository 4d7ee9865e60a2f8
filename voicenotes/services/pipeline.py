"""Voice note processing pipeline.

Takes a raw audio byte stream to a durable, queryable note:

1. persist the audio and an initial record (the only fatal step)
2. transcribe; a failure becomes a sentinel transcript
3. optionally enrich; a failure leaves the note without analysis
4. persist the final record in one transaction
5. forward the finished note to the notification sink
"""

import asyncio
import logging
import uuid
import weakref

from voicenotes.config import Settings
from voicenotes.repositories.note_repository import NoteStorage
from voicenotes.schemas.note import (
    Note,
    ProcessingStatus,
    Provenance,
    Transcript,
)
from voicenotes.services.enrichment import EnrichmentBackend, fallback_title
from voicenotes.services.notifier import WebhookNotifier
from voicenotes.services.transcription import (
    TranscriptionBackend,
    TranscriptionOptions,
)
from voicenotes.utils.datetime import placeholder_title, utc_now
from voicenotes.utils.exceptions import (
    BackendUnavailableError,
    EnrichmentError,
    InvalidAudioError,
    NoTranscriptError,
    PersistenceError,
    TranscriptionError,
)

logger = logging.getLogger(__name__)


class NotePipeline:
    """Coordinates storage, transcription and enrichment for one note at a time."""

    def __init__(
        self,
        storage: NoteStorage,
        transcriber: TranscriptionBackend,
        settings: Settings,
        enricher: EnrichmentBackend | None = None,
        notifier: WebhookNotifier | None = None,
    ):
        """
        Initialize the pipeline.

        Args:
            storage: Audio and metadata storage
            transcriber: Speech-to-text backend
            settings: Application settings (timeouts, language hint)
            enricher: Optional AI enrichment backend; None disables enrichment
            notifier: Optional sink for finished notes
        """
        self.storage = storage
        self.transcriber = transcriber
        self.settings = settings
        self.enricher = enricher
        self.notifier = notifier
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, note_id: str) -> asyncio.Lock:
        lock = self._locks.get(note_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[note_id] = lock
        return lock

    async def ingest(self, audio_bytes: bytes, provenance: Provenance) -> Note:
        """
        Durably store a new recording and its initial pending record.

        Args:
            audio_bytes: Raw audio
            provenance: Arrival metadata from the ingress adapter

        Returns:
            The pending Note

        Raises:
            InvalidAudioError: If there are no bytes
            BackendUnavailableError: If the transcription backend is missing
            PersistenceError: If audio or record could not be stored; nothing
                is left behind in that case
        """
        if not audio_bytes:
            raise InvalidAudioError("Audio file is empty")

        if not self.transcriber.is_available():
            raise BackendUnavailableError(self.transcriber.unavailable_reason())

        note_id = str(uuid.uuid4())
        audio_ref = await asyncio.to_thread(
            self.storage.put_audio, note_id, audio_bytes, provenance.original_filename
        )

        now = utc_now()
        note = Note(
            id=note_id,
            audio_ref=audio_ref,
            created_at=now,
            updated_at=now,
            source_channel=provenance.source_channel,
            original_filename=provenance.original_filename,
            content_type=provenance.content_type,
            size_bytes=len(audio_bytes),
            duration_seconds=provenance.duration_seconds,
            external_payload=provenance.external_payload,
            title=placeholder_title(now),
        )

        try:
            await asyncio.to_thread(self.storage.put_metadata, note)
        except PersistenceError:
            await asyncio.to_thread(self.storage.discard_audio, note_id)
            raise

        logger.info(
            f"Voice note {note_id} stored from {provenance.source_channel.value}"
        )
        return note

    async def process_note(self, audio_bytes: bytes, provenance: Provenance) -> Note:
        """Ingest a recording and run the whole pipeline on it."""
        note = await self.ingest(audio_bytes, provenance)
        return await self.complete(note.id)

    async def complete(self, note_id: str) -> Note:
        """
        Run transcription, enrichment and notification for a stored note.

        Backend failures never propagate; they are recorded on the note.

        Raises:
            NotFoundError: If the note does not exist
            PersistenceError: If the database rejects a write
        """
        async with self._lock_for(note_id):
            note = await asyncio.to_thread(self.storage.get_metadata, note_id)
            if note.processing_status == ProcessingStatus.COMPLETED:
                logger.info(f"Voice note {note_id} already processed")
                return note

            note = await self._save(note, processing_status=ProcessingStatus.TRANSCRIBING)
            transcript = await self._transcribe(note)
            note = await self._save(note, transcript=transcript)

            enrichment: dict = {}
            if self.enricher is not None and transcript.has_text:
                note = await self._save(note, processing_status=ProcessingStatus.ENRICHING)
                enrichment = await self._enrich(note, transcript.text, raise_errors=False)

            note = await self._save(
                note, processing_status=ProcessingStatus.COMPLETED, **enrichment
            )
            logger.info(f"Voice note processed: {note_id}")

        await self._notify(note)
        return note

    async def reprocess(self, note_id: str) -> Note:
        """
        Re-run enrichment on an existing note, replacing analysis and title.

        Raises:
            NotFoundError: If the note does not exist
            NoTranscriptError: If there is no usable transcript
            BackendUnavailableError: If enrichment is not configured
            EnrichmentError: If the analysis fails
        """
        if self.enricher is None:
            raise BackendUnavailableError("AI processing is not enabled")

        async with self._lock_for(note_id):
            note = await asyncio.to_thread(self.storage.get_metadata, note_id)
            if note.transcript is None or not note.transcript.has_text:
                raise NoTranscriptError()
            changes = await self._enrich(note, note.transcript.text, raise_errors=True)
            note = await self._save(note, **changes)

        return note

    async def delete(self, note_id: str) -> None:
        """
        Delete a note once no pipeline stage is running for it.

        Raises:
            NotFoundError: If the note does not exist
        """
        async with self._lock_for(note_id):
            await asyncio.to_thread(self.storage.delete, note_id)

    async def _save(self, note: Note, **changes) -> Note:
        """Write an updated copy of the note as a single atomic replace."""
        updated = note.model_copy(update={**changes, "updated_at": utc_now()})
        await asyncio.to_thread(self.storage.put_metadata, updated)
        return updated

    async def _transcribe(self, note: Note) -> Transcript:
        options = TranscriptionOptions(language_hint=self.settings.language_hint)
        try:
            audio_path = await asyncio.to_thread(self.storage.audio_path, note.id)
            return await asyncio.wait_for(
                self.transcriber.transcribe(audio_path, options),
                timeout=self.settings.transcription_timeout,
            )
        except TimeoutError:
            cause = f"timed out after {self.settings.transcription_timeout:g}s"
        except TranscriptionError as e:
            cause = e.cause
        except Exception as e:
            logger.exception(f"Unexpected transcription failure for note {note.id}")
            cause = str(e) or type(e).__name__

        logger.error(f"Transcription failed for note {note.id}: {cause}")
        return Transcript.failed(cause, backend=self.transcriber.name)

    async def _enrich(self, note: Note, text: str, raise_errors: bool) -> dict:
        """Analyze and retitle a note; returns the fields to update, empty on failure."""
        assert self.enricher is not None
        timeout = self.settings.enrichment_timeout

        try:
            analysis = await asyncio.wait_for(self.enricher.analyze(text), timeout)
        except (EnrichmentError, TimeoutError) as e:
            detail = str(e) or f"timed out after {timeout:g}s"
            logger.error(f"AI processing failed for note {note.id}: {detail}")
            if raise_errors:
                raise EnrichmentError(f"AI processing failed: {detail}") from e
            return {}
        except Exception as e:
            logger.exception(f"Unexpected AI processing failure for note {note.id}")
            if raise_errors:
                raise EnrichmentError(f"AI processing failed: {e}") from e
            return {}

        try:
            title = await asyncio.wait_for(self.enricher.generate_title(text), timeout)
        except Exception as e:
            logger.warning(f"Title generation failed for note {note.id}: {e!r}")
            title = fallback_title(text)

        logger.info(f"AI analysis completed for note {note.id}")
        return {"analysis": analysis, "title": title}

    async def _notify(self, note: Note) -> None:
        if self.notifier is None:
            return
        try:
            await self.notifier.send(
                "note.processed", {"note": note.model_dump(mode="json")}
            )
        except Exception:
            logger.exception(f"Failed to forward note {note.id} to notification sink")
