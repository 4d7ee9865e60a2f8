"""Note schemas."""

from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field

TRANSCRIPTION_FAILED_PREFIX = "[Transcription failed"


class SourceChannel(str, Enum):
    """Where a recording entered the system."""

    UPLOAD = "upload"
    WEBHOOK = "webhook"
    BOT = "bot"


class ProcessingStatus(str, Enum):
    """Pipeline progress of a note."""

    PENDING = "pending"
    TRANSCRIBING = "transcribing"
    ENRICHING = "enriching"
    COMPLETED = "completed"


class Segment(BaseModel):
    """A timestamped piece of a transcript."""

    start: float
    end: float
    text: str


class Transcript(BaseModel):
    """Speech-to-text result, or a sentinel marking a failed attempt."""

    text: str
    language_code: str = "unknown"
    duration_seconds: float = 0.0
    segments: list[Segment] = Field(default_factory=list)
    backend: str | None = None
    model: str | None = None
    processing_seconds: float | None = None
    error: str | None = None

    @classmethod
    def failed(cls, cause: str, backend: str | None = None) -> "Transcript":
        """Build the sentinel recorded when transcription fails."""
        return cls(
            text=f"{TRANSCRIPTION_FAILED_PREFIX}: {cause}]",
            language_code="unknown",
            duration_seconds=0.0,
            segments=[],
            backend=backend,
            error=cause,
        )

    @property
    def is_failure(self) -> bool:
        return self.error is not None or self.text.startswith(
            TRANSCRIPTION_FAILED_PREFIX
        )

    @property
    def has_text(self) -> bool:
        """True when there is real transcribed text to work with."""
        return not self.is_failure and bool(self.text.strip())


class Analysis(BaseModel):
    """AI-derived enrichment of a transcript."""

    summary: str
    key_points: list[str] = Field(default_factory=list)
    action_items: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list, max_length=5)
    sentiment: Literal["positive", "neutral", "negative"] = "neutral"
    priority: Literal["high", "medium", "low"] = "medium"
    processed_at: datetime | None = None
    model: str | None = None


class Provenance(BaseModel):
    """Arrival metadata handed over by an ingress adapter."""

    source_channel: SourceChannel
    original_filename: str | None = None
    content_type: str | None = None
    duration_seconds: float = 0.0
    external_payload: dict[str, Any] | None = None


class Note(BaseModel):
    """The persisted record of one voice recording."""

    id: str
    audio_ref: str
    created_at: datetime
    updated_at: datetime
    source_channel: SourceChannel
    original_filename: str | None = None
    content_type: str | None = None
    size_bytes: int = 0
    duration_seconds: float = 0.0
    external_payload: dict[str, Any] | None = None
    title: str
    processing_status: ProcessingStatus = ProcessingStatus.PENDING
    transcript: Transcript | None = None
    analysis: Analysis | None = None

    @property
    def transcript_text(self) -> str:
        """Transcript text, empty while the note is still pending."""
        return self.transcript.text if self.transcript else ""


class NoteListResponse(BaseModel):
    """Schema for note list."""

    notes: list[Note]
    total: int


class NoteAcceptedResponse(BaseModel):
    """Acknowledgement returned once the audio is stored."""

    id: str
    processing_status: ProcessingStatus
    message: str = "Voice note received and processing"
