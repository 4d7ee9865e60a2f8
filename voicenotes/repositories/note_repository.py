"""Durable storage for voice note audio blobs and metadata records."""

import logging
import os
import re
import uuid
from pathlib import Path

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from voicenotes.models.note import NoteRecord
from voicenotes.schemas.note import Note
from voicenotes.utils.exceptions import NotFoundError, PersistenceError

logger = logging.getLogger(__name__)

DEFAULT_AUDIO_EXTENSION = ".ogg"
_EXTENSION_RE = re.compile(r"^\.[a-z0-9]{1,8}$")


def audio_extension(filename: str | None) -> str:
    """Return a safe lowercase extension for a stored blob."""
    suffix = Path(filename or "").suffix.lower()
    if _EXTENSION_RE.match(suffix):
        return suffix
    return DEFAULT_AUDIO_EXTENSION


class NoteStorage:
    """Audio blobs on disk plus metadata records in the database.

    Blobs are addressed by note id plus the original extension. Metadata
    records are addressed by note id and hold the full serialized ``Note``.
    """

    def __init__(self, engine: Engine, audio_dir: Path):
        """
        Initialize the storage.

        Args:
            engine: SQLAlchemy engine for metadata records
            audio_dir: Directory for audio blobs
        """
        self.engine = engine
        self.audio_dir = Path(audio_dir)
        self.audio_dir.mkdir(parents=True, exist_ok=True)

    # Audio blobs

    def put_audio(self, note_id: str, audio_bytes: bytes, filename: str | None) -> str:
        """
        Durably write an audio blob.

        The bytes are written to a temporary file, flushed to disk and then
        renamed into place, so a blob is either fully present or absent.

        Args:
            note_id: Note ID the blob belongs to
            audio_bytes: Raw audio
            filename: Original filename, used for the extension

        Returns:
            The audio reference (stored file name)

        Raises:
            PersistenceError: If the blob could not be written
        """
        audio_ref = f"{note_id}{audio_extension(filename)}"
        final_path = self.audio_dir / audio_ref
        temp_path = self.audio_dir / f".{audio_ref}.{uuid.uuid4().hex}.part"

        try:
            with open(temp_path, "wb") as f:
                f.write(audio_bytes)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, final_path)
        except OSError as e:
            logger.error(f"Failed to store audio for note {note_id}: {e}")
            temp_path.unlink(missing_ok=True)
            raise PersistenceError(f"Failed to store audio: {e}") from e

        logger.info(f"Audio saved: {final_path} ({len(audio_bytes)} bytes)")
        return audio_ref

    def audio_path(self, note_id: str) -> Path:
        """
        Locate the stored blob of a note.

        Raises:
            NotFoundError: If no blob exists for the note
        """
        try:
            uuid.UUID(note_id)
        except ValueError:
            raise NotFoundError("Audio")
        for candidate in sorted(self.audio_dir.glob(f"{note_id}.*")):
            if candidate.is_file():
                return candidate
        raise NotFoundError("Audio")

    def get_audio(self, note_id: str) -> bytes:
        """Read the stored blob of a note."""
        return self.audio_path(note_id).read_bytes()

    def discard_audio(self, note_id: str) -> None:
        """Remove a blob that never got a metadata record."""
        try:
            self.audio_path(note_id).unlink(missing_ok=True)
        except NotFoundError:
            pass

    # Metadata records

    def put_metadata(self, note: Note) -> None:
        """
        Insert or replace the metadata record of a note in one transaction.

        Raises:
            PersistenceError: If the record could not be committed
        """
        try:
            with Session(self.engine) as session:
                record = session.get(NoteRecord, note.id)
                if record is None:
                    record = NoteRecord(
                        id=note.id,
                        source_channel=note.source_channel.value,
                        created_at=note.created_at,
                        updated_at=note.updated_at,
                        document="",
                    )
                record.title = note.title
                record.processing_status = note.processing_status.value
                record.updated_at = note.updated_at
                record.document = note.model_dump_json()
                session.add(record)
                session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to write metadata for note {note.id}: {e}")
            raise PersistenceError(f"Failed to write metadata: {e}") from e

    def get_metadata(self, note_id: str) -> Note:
        """
        Read the metadata record of a note.

        Raises:
            NotFoundError: If the note has no record
            PersistenceError: If the blob or the record could not be removed
        """
        with Session(self.engine) as session:
            record = session.get(NoteRecord, note_id)
            if record is None:
                raise NotFoundError("Voice note")
            return Note.model_validate_json(record.document)

    def list_metadata(self) -> list[Note]:
        """Return every note, newest first."""
        with Session(self.engine) as session:
            statement = select(NoteRecord).order_by(
                NoteRecord.created_at.desc(),  # type: ignore
                NoteRecord.id,
            )
            records = session.exec(statement).all()
            return [Note.model_validate_json(r.document) for r in records]

    # Removal

    def delete(self, note_id: str) -> None:
        """
        Delete a note's metadata record and audio blob together.

        The blob is first renamed aside; if removing the record fails it is
        restored, so neither an orphan blob nor a record without audio is
        left behind.

        Raises:
            NotFoundError: If the note has no record
        """
        with Session(self.engine) as session:
            record = session.get(NoteRecord, note_id)
            if record is None:
                raise NotFoundError("Voice note")

            try:
                audio_path: Path | None = self.audio_path(note_id)
            except NotFoundError:
                logger.warning(f"Note {note_id} has no audio blob on disk")
                audio_path = None

            tombstone = None
            if audio_path is not None:
                tombstone = audio_path.with_name(f".{audio_path.name}.deleting")
                try:
                    os.replace(audio_path, tombstone)
                except OSError as e:
                    logger.error(f"Failed to remove audio for note {note_id}: {e}")
                    raise PersistenceError(f"Failed to delete audio: {e}") from e

            try:
                session.delete(record)
                session.commit()
            except SQLAlchemyError as e:
                if tombstone is not None and audio_path is not None:
                    os.replace(tombstone, audio_path)
                raise PersistenceError(f"Failed to delete note: {e}") from e

        if tombstone is not None:
            tombstone.unlink(missing_ok=True)
            logger.info(f"Deleted audio file: {audio_path}")
        logger.info(f"Deleted voice note {note_id}")
