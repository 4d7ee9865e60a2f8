"""Custom exception classes."""

from fastapi import HTTPException, status


class VoiceNotesException(Exception):
    """Base exception for the voice notes application."""

    def to_http_exception(self) -> HTTPException:
        """Convert to FastAPI HTTPException."""
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(self) or "Internal server error",
        )


class AuthenticationError(VoiceNotesException):
    """Raised when the shared API secret is missing or wrong."""

    def __init__(self, detail: str = "Unauthorized"):
        self.detail = detail
        super().__init__(detail)

    def to_http_exception(self) -> HTTPException:
        """Convert to FastAPI HTTPException."""
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=self.detail,
        )


class NotFoundError(VoiceNotesException):
    """Raised when a resource is not found."""

    def __init__(self, resource: str = "Resource", detail: str | None = None):
        self.detail = detail or f"{resource} not found"
        super().__init__(self.detail)

    def to_http_exception(self) -> HTTPException:
        """Convert to FastAPI HTTPException."""
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=self.detail,
        )


class PersistenceError(VoiceNotesException):
    """Raised when an incoming recording cannot be stored durably.

    Nothing is recorded when this is raised.
    """

    def __init__(self, detail: str = "Failed to store voice note"):
        self.detail = detail
        super().__init__(detail)

    def to_http_exception(self) -> HTTPException:
        """Convert to FastAPI HTTPException."""
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=self.detail,
        )


class BackendUnavailableError(VoiceNotesException):
    """Raised when a required backend is not installed or not configured."""

    def __init__(self, detail: str = "Backend unavailable"):
        self.detail = detail
        super().__init__(detail)

    def to_http_exception(self) -> HTTPException:
        """Convert to FastAPI HTTPException."""
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=self.detail,
        )


class TranscriptionError(VoiceNotesException):
    """Raised by a transcription backend when a single call fails or times out."""

    def __init__(self, cause: str):
        self.cause = cause
        super().__init__(cause)


class ServiceError(VoiceNotesException):
    """Raised when external service calls fail."""

    def __init__(self, detail: str = "External service error"):
        self.detail = detail
        super().__init__(detail)

    def to_http_exception(self) -> HTTPException:
        """Convert to FastAPI HTTPException."""
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=self.detail,
        )


class EnrichmentError(ServiceError):
    """Raised by an enrichment backend when a call fails or returns garbage."""

    def __init__(self, detail: str = "AI processing failed"):
        super().__init__(detail)


class InvalidAudioError(VoiceNotesException):
    """Raised when an uploaded file is not acceptable audio."""

    def __init__(
        self,
        detail: str = "Only audio files are allowed",
        status_code: int = status.HTTP_400_BAD_REQUEST,
    ):
        self.detail = detail
        self.status_code = status_code
        super().__init__(detail)

    def to_http_exception(self) -> HTTPException:
        """Convert to FastAPI HTTPException."""
        return HTTPException(status_code=self.status_code, detail=self.detail)


class NoTranscriptError(VoiceNotesException):
    """Raised when an operation needs a transcript the note does not have."""

    def __init__(self, detail: str = "No transcript available"):
        self.detail = detail
        super().__init__(detail)

    def to_http_exception(self) -> HTTPException:
        """Convert to FastAPI HTTPException."""
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=self.detail,
        )


class QueueFullError(VoiceNotesException):
    """Raised when the background processing queue cannot take more work."""

    def __init__(self, detail: str = "Processing queue is full, try again later"):
        self.detail = detail
        super().__init__(detail)

    def to_http_exception(self) -> HTTPException:
        """Convert to FastAPI HTTPException."""
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=self.detail,
        )
