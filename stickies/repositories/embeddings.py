"""
Embedding Repository

Data access for the ``embeddings`` table: one pgvector row per note,
written with INSERT ... ON CONFLICT DO UPDATE so re-indexing a note
replaces its vector instead of adding a second one.
"""

from __future__ import annotations

import numpy as np
from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from stickies.models import EmbeddingRecord
from stickies.models.base import utcnow


class EmbeddingRepository:
    """
    Repository for note embeddings.

    Vectors come back from pgvector as float32 numpy arrays.
    """

    async def get_vector(
        self,
        session: AsyncSession,
        note_id: str,
    ) -> np.ndarray | None:
        """Stored vector for a note, or None if it was never indexed."""
        result = await session.execute(
            select(EmbeddingRecord.vector).where(EmbeddingRecord.note_id == note_id)
        )
        vector = result.scalar_one_or_none()
        return None if vector is None else np.asarray(vector, dtype=np.float32)

    async def get_all(self, session: AsyncSession) -> dict[str, np.ndarray]:
        """All stored vectors keyed by note id (single query)."""
        result = await session.execute(
            select(EmbeddingRecord.note_id, EmbeddingRecord.vector)
        )
        return {
            note_id: np.asarray(vector, dtype=np.float32)
            for note_id, vector in result.all()
        }

    async def upsert(
        self,
        session: AsyncSession,
        note_id: str,
        vector: list[float],
        model: str,
    ) -> None:
        """
        Insert or replace the vector for ``note_id``.

        Raises:
            sqlalchemy.exc.IntegrityError: If the note does not exist (FK).
        """
        stmt = pg_insert(EmbeddingRecord).values(
            note_id=note_id,
            vector=vector,
            model=model,
            updated_at=utcnow(),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[EmbeddingRecord.note_id],
            set_={
                "vector": stmt.excluded.vector,
                "model": stmt.excluded.model,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        await session.execute(stmt)
        await session.commit()


# Module-level instance
embedding_repository = EmbeddingRepository()
