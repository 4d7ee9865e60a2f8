"""Database models."""

from voicenotes.models.note import NoteRecord

__all__ = ["NoteRecord"]
