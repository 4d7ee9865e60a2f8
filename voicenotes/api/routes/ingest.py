"""Ingestion endpoints: direct upload and external webhook."""

import json
import logging
from pathlib import Path
from typing import Annotated
from urllib.parse import urlparse

import httpx
from fastapi import APIRouter, File, Request, UploadFile, status
from starlette.datastructures import UploadFile as StarletteUploadFile

from voicenotes.api.deps import ApiKeyDep, PipelineDep, SettingsDep, WorkerDep
from voicenotes.schemas.note import NoteAcceptedResponse, Provenance, SourceChannel
from voicenotes.services.pipeline import NotePipeline
from voicenotes.tasks.processing_tasks import PipelineWorker
from voicenotes.utils.exceptions import (
    InvalidAudioError,
    QueueFullError,
    ServiceError,
    VoiceNotesException,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["ingest"], dependencies=[ApiKeyDep])

ALLOWED_EXTENSIONS = {".mp3", ".wav", ".ogg", ".m4a", ".opus", ".webm", ".oga"}
URL_FIELDS = ("audioUrl", "audio_url", "fileUrl")
DOWNLOAD_TIMEOUT = 60.0


def validate_audio_filename(filename: str | None) -> None:
    """
    Reject files whose extension is not a supported audio type.

    Raises:
        InvalidAudioError: If the extension is missing or not allowed
    """
    if Path(filename or "").suffix.lower() not in ALLOWED_EXTENSIONS:
        raise InvalidAudioError("Only audio files are allowed")


async def read_upload(upload: StarletteUploadFile, max_bytes: int) -> bytes:
    """
    Read an uploaded file, enforcing the size limit.

    Raises:
        InvalidAudioError: 413 if the file is larger than ``max_bytes``
    """
    content = await upload.read(max_bytes + 1)
    if len(content) > max_bytes:
        raise InvalidAudioError(
            f"File too large (limit {max_bytes} bytes)",
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
        )
    return content


async def download_audio(
    url: str,
    max_bytes: int,
    timeout: float = DOWNLOAD_TIMEOUT,
    transport: httpx.AsyncBaseTransport | None = None,
) -> bytes:
    """
    Download a recording referenced by a webhook.

    Args:
        url: HTTP(S) URL of the audio file
        max_bytes: Size limit
        timeout: Request timeout in seconds
        transport: Optional httpx transport (used by tests)

    Returns:
        The audio bytes

    Raises:
        InvalidAudioError: If the URL is not HTTP(S) or the file is too large
        ServiceError: If the download fails
    """
    if urlparse(url).scheme not in ("http", "https"):
        raise InvalidAudioError("Audio URL must be http or https")

    chunks: list[bytes] = []
    received = 0
    async with httpx.AsyncClient(transport=transport, follow_redirects=True) as client:
        try:
            async with client.stream("GET", url, timeout=timeout) as response:
                response.raise_for_status()
                async for chunk in response.aiter_bytes():
                    received += len(chunk)
                    if received > max_bytes:
                        raise InvalidAudioError(
                            f"File too large (limit {max_bytes} bytes)",
                            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                        )
                    chunks.append(chunk)
        except httpx.HTTPStatusError as e:
            logger.error(f"Audio download failed: {e.response.status_code} from {url}")
            raise ServiceError(
                f"Audio download failed with status {e.response.status_code}"
            )
        except httpx.HTTPError as e:
            logger.error(f"Audio download failed from {url}: {e}")
            raise ServiceError("Audio download failed")

    return b"".join(chunks)


def _form_payload(form) -> dict:
    """Plain (non-file) form fields."""
    return {
        key: value
        for key, value in form.multi_items()
        if not isinstance(value, StarletteUploadFile)
    }


async def _accept(
    pipeline: NotePipeline,
    worker: PipelineWorker,
    audio_bytes: bytes,
    provenance: Provenance,
) -> NoteAcceptedResponse:
    worker.ensure_capacity()
    note = await pipeline.ingest(audio_bytes, provenance)
    try:
        worker.submit(note.id)
    except QueueFullError:
        # Another request took the last slot while this one was storing.
        await pipeline.delete(note.id)
        raise
    return NoteAcceptedResponse(id=note.id, processing_status=note.processing_status)


@router.post(
    "/upload",
    response_model=NoteAcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def upload_voice_note(
    audio: Annotated[UploadFile, File(description="Audio file to transcribe")],
    request: Request,
    pipeline: PipelineDep,
    worker: WorkerDep,
    settings: SettingsDep,
) -> NoteAcceptedResponse:
    """
    Upload a voice note for transcription and processing.

    The audio is stored before this returns; transcription and enrichment
    happen in the background. Poll the note endpoint to check status.
    Extra form fields are kept on the note as ``external_payload``.
    """
    try:
        validate_audio_filename(audio.filename)
        content = await read_upload(audio, settings.max_upload_bytes)
        payload = _form_payload(await request.form())
        logger.info(f"Voice note uploaded: {audio.filename} ({len(content)} bytes)")

        return await _accept(
            pipeline,
            worker,
            content,
            Provenance(
                source_channel=SourceChannel.UPLOAD,
                original_filename=audio.filename,
                content_type=audio.content_type,
                external_payload=payload or None,
            ),
        )
    except VoiceNotesException as e:
        raise e.to_http_exception()


@router.post(
    "/webhook",
    response_model=NoteAcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def receive_webhook(
    request: Request,
    pipeline: PipelineDep,
    worker: WorkerDep,
    settings: SettingsDep,
) -> NoteAcceptedResponse:
    """
    Accept a recording from an external service.

    Either a multipart ``audio`` file, or a form / JSON body carrying an
    ``audioUrl``, ``audio_url`` or ``fileUrl`` to download.
    """
    try:
        upload: StarletteUploadFile | None = None
        if request.headers.get("content-type", "").startswith("application/json"):
            try:
                body = await request.json()
            except json.JSONDecodeError:
                raise InvalidAudioError("Invalid JSON body")
            payload = body if isinstance(body, dict) else {}
        else:
            form = await request.form()
            candidate = form.get("audio")
            if isinstance(candidate, StarletteUploadFile):
                upload = candidate
            payload = _form_payload(form)

        logger.info(f"Webhook received with fields: {sorted(payload)}")

        if upload is not None:
            validate_audio_filename(upload.filename)
            content = await read_upload(upload, settings.max_upload_bytes)
            filename, content_type = upload.filename, upload.content_type
        else:
            audio_url = next(
                (payload[f] for f in URL_FIELDS if isinstance(payload.get(f), str) and payload[f]),
                None,
            )
            if audio_url is None:
                raise InvalidAudioError("No audio file or URL provided")
            content = await download_audio(audio_url, settings.max_upload_bytes)
            filename = Path(urlparse(audio_url).path).name or None
            content_type = None

        return await _accept(
            pipeline,
            worker,
            content,
            Provenance(
                source_channel=SourceChannel.WEBHOOK,
                original_filename=filename,
                content_type=content_type,
                external_payload=payload or None,
            ),
        )
    except VoiceNotesException as e:
        raise e.to_http_exception()
