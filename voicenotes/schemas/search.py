"""Search and summary schemas."""

from enum import Enum

from pydantic import BaseModel

from voicenotes.schemas.note import Note


class DigestPeriod(str, Enum):
    """Time window covered by a digest."""

    DAILY = "daily"
    WEEKLY = "weekly"


class SearchResponse(BaseModel):
    """Schema for search results."""

    query: str
    matches: int
    results: list[Note]


class DigestResult(BaseModel):
    """Narrative summary spanning many notes."""

    period: DigestPeriod
    note_count: int
    summary: str


class NoteStats(BaseModel):
    """Aggregate numbers over all stored notes."""

    total_notes: int
    total_duration_seconds: float
    total_words: int
    average_duration_seconds: float
    average_words: int
