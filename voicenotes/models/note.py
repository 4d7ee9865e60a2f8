"""Note model."""

from datetime import datetime

from sqlalchemy import Column, Index, Text
from sqlmodel import Field, SQLModel


class NoteRecord(SQLModel, table=True):  # type: ignore
    """Stored metadata record of a voice note.

    ``document`` holds the full serialized ``Note``; the other columns are
    copies kept for ordering and filtering. A record is always written in a
    single transaction, so readers see either the old or the new document.
    """

    __tablename__ = "notes"  # type: ignore

    id: str = Field(primary_key=True)
    title: str = Field(default="")
    source_channel: str = Field(index=True)
    processing_status: str = Field(default="pending", index=True)

    document: str = Field(sa_column=Column(Text, nullable=False))

    # Timestamps
    created_at: datetime = Field(index=True)
    updated_at: datetime

    __table_args__ = (Index("ix_notes_status_created", "processing_status", "created_at"),)
