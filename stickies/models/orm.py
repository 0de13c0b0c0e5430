"""
Database Models

SQLAlchemy 2.0 ORM models for the note, embedding and cluster tables.
Uses pgvector for the per-note embedding column.

Tables:
    notes      - Captured notes with lifecycle state and manual ordering.
    embeddings - One 384-dim vector per note (cascade-deleted with it).
    clusters   - Result set of the latest clustering run.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from pgvector.sqlalchemy import Vector
from sqlalchemy import DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stickies.core.config import VECTOR_COLUMN_DIMENSION
from stickies.models.base import Base, TimestampMixin, utcnow
from stickies.models.schemas import NoteColor, NoteSource, NoteState

EMBEDDING_DIMENSION: int = VECTOR_COLUMN_DIMENSION


def _new_id() -> str:
    return str(uuid.uuid4())


def _enum_values(enum_cls: type) -> list[str]:
    # Persist the lowercase values, not the member names
    return [member.value for member in enum_cls]


class NoteRecord(Base, TimestampMixin):
    """
    Persistent storage for notes.

    Attributes:
        id: UUID4 string primary key (generated Python-side).
        content: Note text, no length limit.
        state / color / source: Postgres enums.
        position: Manual sort order, ascending.
        embedding: Related EmbeddingRecord (deleted by the FK cascade).
    """

    __tablename__ = "notes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    color: Mapped[NoteColor] = mapped_column(
        Enum(NoteColor, name="note_color", values_callable=_enum_values),
        nullable=False,
        default=NoteColor.YELLOW,
    )
    source: Mapped[NoteSource] = mapped_column(
        Enum(NoteSource, name="note_source", values_callable=_enum_values),
        nullable=False,
        default=NoteSource.TEXT,
    )
    state: Mapped[NoteState] = mapped_column(
        Enum(NoteState, name="note_state", values_callable=_enum_values),
        nullable=False,
        default=NoteState.INBOX,
        index=True,
    )
    raw_transcript: Mapped[str | None] = mapped_column(Text, nullable=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    snoozed_until: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_surfaced_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    linked_to: Mapped[str | None] = mapped_column(String(36), nullable=True)

    # passive_deletes: let the database ON DELETE CASCADE remove the vector
    embedding: Mapped[EmbeddingRecord | None] = relationship(
        back_populates="note",
        cascade="all, delete-orphan",
        passive_deletes=True,
        uselist=False,
    )

    def __repr__(self) -> str:
        return f"<NoteRecord(id={self.id:.8}, state={self.state}, pos={self.position})>"


class EmbeddingRecord(Base):
    """
    Embedding vector for a single note.

    ``note_id`` is both primary key and foreign key, so a note has at most
    one vector and re-indexing is an upsert. ``model`` records which
    provider produced the vector; vectors from another model are not
    comparable and must be re-indexed.
    """

    __tablename__ = "embeddings"

    note_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("notes.id", ondelete="CASCADE"),
        primary_key=True,
    )
    vector: Mapped[list[float]] = mapped_column(
        Vector(EMBEDDING_DIMENSION), nullable=False
    )
    model: Mapped[str] = mapped_column(String(200), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    note: Mapped[NoteRecord] = relationship(back_populates="embedding")

    def __repr__(self) -> str:
        return f"<EmbeddingRecord(note_id={self.note_id:.8}, model='{self.model}')>"


class ClusterRecord(Base, TimestampMixin):
    """
    One cluster of the latest clustering run.

    ``note_ids`` is an ordered JSONB array of note ids. The whole table is
    replaced on every run, so there is no foreign key to ``notes``.
    """

    __tablename__ = "clusters"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    note_ids: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list)
    # Output order of the run ("Cluster 1" first)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<ClusterRecord(name='{self.name}', size={len(self.note_ids)})>"
