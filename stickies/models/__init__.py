"""Models package: pydantic domain models and SQLAlchemy ORM records."""

from stickies.models.base import Base, TimestampMixin
from stickies.models.orm import (
    EMBEDDING_DIMENSION,
    ClusterRecord,
    EmbeddingRecord,
    NoteRecord,
)
from stickies.models.schemas import (
    Cluster,
    Note,
    NoteChanges,
    NoteColor,
    NoteSource,
    NoteState,
    NoteVector,
    SearchMode,
    SearchResult,
    VectorLike,
)

__all__ = [
    # Pydantic domain models
    "Cluster",
    "Note",
    "NoteChanges",
    "NoteColor",
    "NoteSource",
    "NoteState",
    "NoteVector",
    "SearchMode",
    "SearchResult",
    "VectorLike",
    # SQLAlchemy ORM (persistence layer)
    "Base",
    "TimestampMixin",
    "ClusterRecord",
    "EmbeddingRecord",
    "NoteRecord",
    "EMBEDDING_DIMENSION",
]
