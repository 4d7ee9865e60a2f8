"""Notes endpoints."""

from fastapi import APIRouter
from fastapi.responses import FileResponse

from voicenotes.api.deps import ApiKeyDep, NoteServiceDep, PipelineDep
from voicenotes.schemas.note import Note, NoteListResponse
from voicenotes.utils.exceptions import VoiceNotesException

router = APIRouter(prefix="/api", tags=["notes"], dependencies=[ApiKeyDep])


@router.get("/notes", response_model=NoteListResponse)
def list_notes(note_service: NoteServiceDep) -> NoteListResponse:
    """
    List all notes, newest first.
    """
    notes = note_service.list_notes()
    return NoteListResponse(notes=notes, total=len(notes))


@router.get("/notes/{note_id}", response_model=Note)
def get_note(note_id: str, note_service: NoteServiceDep) -> Note:
    """
    Get a single note by ID.
    """
    try:
        return note_service.get_note(note_id)
    except VoiceNotesException as e:
        raise e.to_http_exception()


@router.get("/notes/{note_id}/audio")
def get_note_audio(note_id: str, note_service: NoteServiceDep) -> FileResponse:
    """
    Stream the stored audio of a note.
    """
    try:
        note = note_service.get_note(note_id)
        path = note_service.audio_path(note_id)
    except VoiceNotesException as e:
        raise e.to_http_exception()

    return FileResponse(
        path,
        media_type=note.content_type or "application/octet-stream",
        filename=note.original_filename or path.name,
    )


@router.delete("/notes/{note_id}")
async def delete_note(note_id: str, pipeline: PipelineDep) -> dict:
    """
    Delete a note and its audio.
    """
    try:
        await pipeline.delete(note_id)
        return {"success": True}
    except VoiceNotesException as e:
        raise e.to_http_exception()


@router.post("/notes/{note_id}/process", response_model=Note)
async def process_note(note_id: str, pipeline: PipelineDep) -> Note:
    """
    Re-run AI processing on a note's transcript.

    Replaces the note's analysis and title. Fails with 400 if the note has
    no usable transcript and 502 if the AI backend fails.
    """
    try:
        return await pipeline.reprocess(note_id)
    except VoiceNotesException as e:
        raise e.to_http_exception()
