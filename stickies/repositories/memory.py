"""
In-Memory Note Store

Process-local ``NoteStore`` with the same semantics as the SQL store:
position ordering, vector upsert, cascade on note deletion and atomic
cluster replacement. Used by the unit tests and ``STORE_BACKEND=memory``.

Methods never await while mutating, so each call is atomic with respect
to other coroutines on the event loop.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import numpy as np

from stickies.core.exceptions import InvalidDimensionError, NoteNotFoundError
from stickies.models import Cluster, Note, NoteState, VectorLike
from stickies.models.base import utcnow


class InMemoryNoteStore:
    """
    Dict-backed note, vector and cluster storage.

    Vectors are stored as read-only float32 copies, so a caller holding the
    original list (or a returned array) cannot change what is stored.

    Args:
        dimension: If set, ``put_vector`` rejects vectors of any other length.
    """

    def __init__(self, dimension: int | None = None) -> None:
        self._dimension = dimension
        self._notes: dict[str, Note] = {}
        self._vectors: dict[str, np.ndarray] = {}
        self._models: dict[str, str] = {}
        self._clusters: list[Cluster] = []

    # ------------------------------------------------------------------
    # Notes
    # ------------------------------------------------------------------

    async def create_note(self, note: Note) -> Note:
        self._notes[note.id] = note
        return note

    async def get_note(self, note_id: str) -> Note | None:
        return self._notes.get(note_id)

    async def list_notes(self, state: NoteState | None = None) -> list[Note]:
        notes = [n for n in self._notes.values() if state is None or n.state == state]
        # Same ordering as the SQL store: position, newest first, id
        notes.sort(key=lambda n: n.id)
        notes.sort(key=lambda n: n.created_at, reverse=True)
        notes.sort(key=lambda n: n.position)
        return notes

    async def update_note(self, note_id: str, changes: dict[str, Any]) -> Note | None:
        note = self._notes.get(note_id)
        if note is None:
            return None
        updated = note.model_copy(update={**changes, "updated_at": utcnow()})
        self._notes[note_id] = updated
        return updated

    async def delete_note(self, note_id: str) -> bool:
        if self._notes.pop(note_id, None) is None:
            return False
        self._vectors.pop(note_id, None)
        self._models.pop(note_id, None)
        return True

    async def min_position(self) -> int | None:
        if not self._notes:
            return None
        return min(n.position for n in self._notes.values())

    async def reorder(self, note_ids: Sequence[str]) -> None:
        now = utcnow()
        for index, note_id in enumerate(note_ids):
            note = self._notes.get(note_id)
            if note is not None:
                self._notes[note_id] = note.model_copy(
                    update={"position": index, "updated_at": now}
                )

    async def count_notes(self, state: NoteState | None = None) -> int:
        return sum(1 for n in self._notes.values() if state is None or n.state == state)

    # ------------------------------------------------------------------
    # Vectors
    # ------------------------------------------------------------------

    async def get_vector(self, note_id: str) -> np.ndarray | None:
        return self._vectors.get(note_id)

    async def put_vector(self, note_id: str, vector: VectorLike, model: str) -> None:
        if note_id not in self._notes:
            raise NoteNotFoundError(note_id)
        stored = np.array(vector, dtype=np.float32)
        if stored.ndim != 1:
            raise InvalidDimensionError(self._dimension or -1, stored.size)
        if self._dimension is not None and stored.shape[0] != self._dimension:
            raise InvalidDimensionError(self._dimension, stored.shape[0])
        stored.setflags(write=False)
        self._vectors[note_id] = stored
        self._models[note_id] = model

    async def list_vectors(self) -> dict[str, np.ndarray]:
        return dict(self._vectors)

    def vector_model(self, note_id: str) -> str | None:
        """Name of the provider that produced the stored vector."""
        return self._models.get(note_id)

    # ------------------------------------------------------------------
    # Clusters
    # ------------------------------------------------------------------

    async def list_clusters(self) -> list[Cluster]:
        return list(self._clusters)

    async def replace_clusters(self, clusters: Sequence[Cluster]) -> None:
        self._clusters = list(clusters)
