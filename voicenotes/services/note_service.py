"""Note service for listing, search, digests and statistics."""

import asyncio
import logging
from datetime import datetime, timedelta
from pathlib import Path

from voicenotes.repositories.note_repository import NoteStorage
from voicenotes.schemas.note import Note
from voicenotes.schemas.search import DigestPeriod, DigestResult, NoteStats
from voicenotes.services.enrichment import EnrichmentBackend
from voicenotes.services.search import keyword_search, ranked_search
from voicenotes.utils.datetime import utc_now
from voicenotes.utils.exceptions import BackendUnavailableError

logger = logging.getLogger(__name__)

DIGEST_WINDOWS = {
    DigestPeriod.DAILY: timedelta(days=1),
    DigestPeriod.WEEKLY: timedelta(days=7),
}


class NoteService:
    """Read-side operations over stored notes.

    Storage is consulted fresh on every call; nothing is cached here.
    """

    def __init__(self, storage: NoteStorage, enricher: EnrichmentBackend | None = None):
        """
        Initialize the note service.

        Args:
            storage: Note storage
            enricher: Optional enrichment backend for ranking and digests
        """
        self.storage = storage
        self.enricher = enricher

    def list_notes(self) -> list[Note]:
        """All notes, newest first."""
        return self.storage.list_metadata()

    def get_note(self, note_id: str) -> Note:
        """
        Get a single note by ID.

        Raises:
            NotFoundError: If the note does not exist
        """
        return self.storage.get_metadata(note_id)

    def audio_path(self, note_id: str) -> Path:
        """
        Path of a note's audio, for streaming it back.

        Raises:
            NotFoundError: If the note or its audio does not exist
        """
        note = self.storage.get_metadata(note_id)
        return self.storage.audio_path(note.id)

    def search(self, query: str) -> list[Note]:
        """Case-insensitive keyword search over transcripts."""
        return keyword_search(query, self.storage.list_metadata())

    async def semantic_search(self, query: str) -> list[Note]:
        """Keyword search re-ordered by AI relevance where possible."""
        notes = await asyncio.to_thread(self.storage.list_metadata)
        results = await ranked_search(query, notes, self.enricher)
        logger.info(f"Semantic search for '{query}' found {len(results)} results")
        return results

    async def generate_digest(
        self, period: DigestPeriod, now: datetime | None = None
    ) -> DigestResult:
        """
        Summarize the notes of the last day or week.

        Only notes with a real transcript are included.

        Raises:
            BackendUnavailableError: If AI processing is disabled
            EnrichmentError: If the digest call fails
        """
        cutoff = (now or utc_now()) - DIGEST_WINDOWS[period]
        notes = await asyncio.to_thread(self.storage.list_metadata)
        recent = [
            note
            for note in notes
            if note.created_at >= cutoff
            and note.transcript is not None
            and note.transcript.has_text
        ]

        if not recent:
            return DigestResult(
                period=period,
                note_count=0,
                summary=f"No voice notes found in the {period.value} period.",
            )

        if self.enricher is None:
            raise BackendUnavailableError("AI processing is not enabled")

        # Oldest first so the narrative follows the order things were said
        recent.sort(key=lambda n: n.created_at)
        summary = await self.enricher.digest(
            [n.transcript_text for n in recent], period
        )
        logger.info(f"Generated {period.value} digest over {len(recent)} notes")
        return DigestResult(period=period, note_count=len(recent), summary=summary)

    def get_stats(self) -> NoteStats:
        """Totals and averages over every stored note."""
        notes = self.storage.list_metadata()
        total_notes = len(notes)
        total_duration = 0.0
        total_words = 0

        for note in notes:
            if note.transcript is not None and note.transcript.duration_seconds:
                total_duration += note.transcript.duration_seconds
            else:
                total_duration += note.duration_seconds
            if note.transcript is not None and note.transcript.has_text:
                total_words += len(note.transcript.text.split())

        return NoteStats(
            total_notes=total_notes,
            total_duration_seconds=round(total_duration, 1),
            total_words=total_words,
            average_duration_seconds=(
                round(total_duration / total_notes, 1) if total_notes else 0.0
            ),
            average_words=total_words // total_notes if total_notes else 0,
        )
