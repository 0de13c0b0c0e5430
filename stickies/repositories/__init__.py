"""Repositories package."""

from stickies.repositories.base import BaseRepository
from stickies.repositories.clusters import ClusterRepository, cluster_repository
from stickies.repositories.embeddings import EmbeddingRepository, embedding_repository
from stickies.repositories.memory import InMemoryNoteStore
from stickies.repositories.notes import NoteRepository, note_repository
from stickies.repositories.store import NoteStore, SQLNoteStore, get_note_store

__all__ = [
    "BaseRepository",
    "ClusterRepository",
    "cluster_repository",
    "EmbeddingRepository",
    "embedding_repository",
    "InMemoryNoteStore",
    "NoteRepository",
    "note_repository",
    "NoteStore",
    "SQLNoteStore",
    "get_note_store",
]
