"""Service modules for business logic."""

from voicenotes.services.enrichment import EnrichmentBackend, LLMEnrichmentBackend
from voicenotes.services.note_service import NoteService
from voicenotes.services.pipeline import NotePipeline
from voicenotes.services.transcription import (
    LocalTranscriptionBackend,
    RemoteTranscriptionBackend,
    TranscriptionBackend,
)

__all__ = [
    "EnrichmentBackend",
    "LLMEnrichmentBackend",
    "LocalTranscriptionBackend",
    "NotePipeline",
    "NoteService",
    "RemoteTranscriptionBackend",
    "TranscriptionBackend",
]
