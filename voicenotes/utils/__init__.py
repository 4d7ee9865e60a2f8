"""Utility modules."""

from voicenotes.utils.datetime import placeholder_title, utc_now
from voicenotes.utils.exceptions import (
    AuthenticationError,
    BackendUnavailableError,
    EnrichmentError,
    InvalidAudioError,
    NotFoundError,
    NoTranscriptError,
    PersistenceError,
    QueueFullError,
    ServiceError,
    TranscriptionError,
    VoiceNotesException,
)

__all__ = [
    "placeholder_title",
    "utc_now",
    "AuthenticationError",
    "BackendUnavailableError",
    "EnrichmentError",
    "InvalidAudioError",
    "NotFoundError",
    "NoTranscriptError",
    "PersistenceError",
    "QueueFullError",
    "ServiceError",
    "TranscriptionError",
    "VoiceNotesException",
]
