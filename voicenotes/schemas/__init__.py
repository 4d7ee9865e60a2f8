"""Pydantic schemas."""

from voicenotes.schemas.note import (
    Analysis,
    Note,
    NoteAcceptedResponse,
    NoteListResponse,
    ProcessingStatus,
    Provenance,
    Segment,
    SourceChannel,
    Transcript,
)
from voicenotes.schemas.search import DigestPeriod, DigestResult, NoteStats, SearchResponse

__all__ = [
    "Analysis",
    "DigestPeriod",
    "DigestResult",
    "Note",
    "NoteAcceptedResponse",
    "NoteListResponse",
    "NoteStats",
    "ProcessingStatus",
    "Provenance",
    "SearchResponse",
    "Segment",
    "SourceChannel",
    "Transcript",
]
