"""
Note Store

The persistence boundary consumed by the indexing, search and clustering
services. ``NoteStore`` is the protocol; ``SQLNoteStore`` implements it
on PostgreSQL + pgvector through the per-table repositories.

Every ``SQLNoteStore`` method opens its own session, so the store can be
shared by request handlers and background tasks alike (background tasks
run after the request session is closed).
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Any, Protocol

import numpy as np
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from stickies.core.config import settings
from stickies.core.database import get_session_factory
from stickies.core.exceptions import NoteNotFoundError, StoreError
from stickies.models import (
    Cluster,
    ClusterRecord,
    Note,
    NoteRecord,
    NoteState,
    VectorLike,
)
from stickies.models.base import utcnow
from stickies.repositories.clusters import cluster_repository
from stickies.repositories.embeddings import embedding_repository
from stickies.repositories.notes import note_repository

logger = logging.getLogger(__name__)


class NoteStore(Protocol):
    """
    Persistence operations required by the services.

    Contract:
        - ``list_notes`` orders by position ascending.
        - ``put_vector`` is an upsert; it raises ``NoteNotFoundError``
          for an unknown note so no vector outlives its note.
        - ``delete_note`` removes the note's vector too.
        - ``replace_clusters`` swaps the full cluster set atomically.
        - Backend failures surface as ``StoreError``.
    """

    async def create_note(self, note: Note) -> Note: ...

    async def get_note(self, note_id: str) -> Note | None: ...

    async def list_notes(self, state: NoteState | None = None) -> list[Note]: ...

    async def update_note(self, note_id: str, changes: dict[str, Any]) -> Note | None: ...

    async def delete_note(self, note_id: str) -> bool: ...

    async def min_position(self) -> int | None: ...

    async def reorder(self, note_ids: Sequence[str]) -> None: ...

    async def count_notes(self, state: NoteState | None = None) -> int: ...

    async def get_vector(self, note_id: str) -> np.ndarray | None: ...

    async def put_vector(self, note_id: str, vector: VectorLike, model: str) -> None: ...

    async def list_vectors(self) -> dict[str, np.ndarray]: ...

    async def list_clusters(self) -> list[Cluster]: ...

    async def replace_clusters(self, clusters: Sequence[Cluster]) -> None: ...


class SQLNoteStore:
    """
    ``NoteStore`` backed by PostgreSQL (asyncpg) and pgvector.

    Usage::

        store = SQLNoteStore(get_session_factory())
        notes = await store.list_notes(NoteState.INBOX)
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._notes = note_repository
        self._embeddings = embedding_repository
        self._clusters = cluster_repository

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        """Session scoped to one store call; SQLAlchemy errors become StoreError."""
        async with self._session_factory() as session:
            try:
                yield session
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error("Store operation failed: %s", e)
                raise StoreError(str(e)) from e

    # ------------------------------------------------------------------
    # Notes
    # ------------------------------------------------------------------

    async def create_note(self, note: Note) -> Note:
        async with self._session() as session:
            record = await self._notes.create(session, note.model_dump())
            return Note.model_validate(record)

    async def get_note(self, note_id: str) -> Note | None:
        async with self._session() as session:
            record = await self._notes.get_by_id(session, note_id)
            return None if record is None else Note.model_validate(record)

    async def list_notes(self, state: NoteState | None = None) -> list[Note]:
        async with self._session() as session:
            records = await self._notes.list_by_state(session, state)
            return [Note.model_validate(r) for r in records]

    async def update_note(self, note_id: str, changes: dict[str, Any]) -> Note | None:
        async with self._session() as session:
            record = await self._notes.get_by_id(session, note_id)
            if record is None:
                return None
            record = await self._notes.update(
                session, record, {**changes, "updated_at": utcnow()}
            )
            return Note.model_validate(record)

    async def delete_note(self, note_id: str) -> bool:
        async with self._session() as session:
            record = await self._notes.get_by_id(session, note_id)
            if record is None:
                return False
            # embeddings.note_id has ON DELETE CASCADE
            await self._notes.delete(session, record)
            return True

    async def min_position(self) -> int | None:
        async with self._session() as session:
            return await self._notes.min_position(session)

    async def reorder(self, note_ids: Sequence[str]) -> None:
        async with self._session() as session:
            await self._notes.set_positions(session, note_ids)

    async def count_notes(self, state: NoteState | None = None) -> int:
        async with self._session() as session:
            return await self._notes.count(session, state)

    # ------------------------------------------------------------------
    # Vectors
    # ------------------------------------------------------------------

    async def get_vector(self, note_id: str) -> np.ndarray | None:
        async with self._session() as session:
            return await self._embeddings.get_vector(session, note_id)

    async def put_vector(self, note_id: str, vector: VectorLike, model: str) -> None:
        values = [float(x) for x in vector]
        async with self._session() as session:
            try:
                await self._embeddings.upsert(session, note_id, values, model)
            except IntegrityError as e:
                # FK violation: the note was deleted before its vector landed
                await session.rollback()
                raise NoteNotFoundError(note_id) from e

    async def list_vectors(self) -> dict[str, np.ndarray]:
        async with self._session() as session:
            return await self._embeddings.get_all(session)

    # ------------------------------------------------------------------
    # Clusters
    # ------------------------------------------------------------------

    async def list_clusters(self) -> list[Cluster]:
        async with self._session() as session:
            records = await self._clusters.list_ordered(session)
            return [Cluster.model_validate(r) for r in records]

    async def replace_clusters(self, clusters: Sequence[Cluster]) -> None:
        records = [
            ClusterRecord(**cluster.model_dump(), position=index)
            for index, cluster in enumerate(clusters)
        ]
        async with self._session() as session:
            await self._clusters.replace_all(session, records)
        logger.info("Replaced clusters (%d records)", len(records))


@lru_cache(maxsize=1)
def get_note_store() -> NoteStore:
    """
    Process-wide store selected by ``STORE_BACKEND``.

    Also used as a FastAPI dependency; tests override it.
    """
    if settings.STORE_BACKEND == "memory":
        from stickies.repositories.memory import InMemoryNoteStore

        logger.info("Using in-memory note store")
        return InMemoryNoteStore(dimension=settings.EMBEDDING_DIMENSION)
    return SQLNoteStore(get_session_factory())
