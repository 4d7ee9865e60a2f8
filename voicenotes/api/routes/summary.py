"""Digest and statistics endpoints."""

from fastapi import APIRouter, HTTPException, status

from voicenotes.api.deps import ApiKeyDep, NoteServiceDep
from voicenotes.schemas.search import DigestPeriod, DigestResult, NoteStats
from voicenotes.utils.exceptions import VoiceNotesException

router = APIRouter(prefix="/api", tags=["summary"], dependencies=[ApiKeyDep])


@router.post("/summary/{period}", response_model=DigestResult)
async def generate_summary(period: str, note_service: NoteServiceDep) -> DigestResult:
    """
    Summarize the notes of the last day or week.

    ``period`` must be ``daily`` or ``weekly``.
    """
    try:
        digest_period = DigestPeriod(period)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Period must be 'daily' or 'weekly'",
        )

    try:
        return await note_service.generate_digest(digest_period)
    except VoiceNotesException as e:
        raise e.to_http_exception()


@router.get("/stats", response_model=NoteStats)
def get_stats(note_service: NoteServiceDep) -> NoteStats:
    """
    Totals and averages over all notes.
    """
    return note_service.get_stats()
