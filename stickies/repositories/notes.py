"""
Note Repository

Data access layer for NoteRecord entities: state filtering, manual
ordering and counts on top of the generic CRUD in BaseRepository.
"""

from collections.abc import Sequence

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from stickies.models import NoteRecord, NoteState
from stickies.models.base import utcnow
from stickies.repositories.base import BaseRepository


class NoteRepository(BaseRepository[NoteRecord]):
    """
    Repository for notes.

    Inherits standard CRUD from BaseRepository and adds:
        - list_by_state: position-ordered listing, optionally by state
        - min_position: lowest position in use (new notes go above it)
        - set_positions: bulk reorder
        - count: number of notes, optionally by state
    """

    def __init__(self) -> None:
        super().__init__(NoteRecord)

    async def list_by_state(
        self,
        session: AsyncSession,
        state: NoteState | None = None,
    ) -> Sequence[NoteRecord]:
        """
        List notes ordered by manual position ascending.

        Newest first breaks position ties, then id, so the order is
        deterministic for identical data.
        """
        stmt = select(NoteRecord).order_by(
            NoteRecord.position.asc(),
            NoteRecord.created_at.desc(),
            NoteRecord.id.asc(),
        )
        if state is not None:
            stmt = stmt.where(NoteRecord.state == state)
        result = await session.execute(stmt)
        return result.scalars().all()

    async def min_position(self, session: AsyncSession) -> int | None:
        """Lowest position in use, or None when there are no notes."""
        result = await session.execute(select(func.min(NoteRecord.position)))
        return result.scalar_one_or_none()

    async def count(
        self,
        session: AsyncSession,
        state: NoteState | None = None,
    ) -> int:
        """Count notes, optionally restricted to one state."""
        stmt = select(func.count()).select_from(NoteRecord)
        if state is not None:
            stmt = stmt.where(NoteRecord.state == state)
        result = await session.execute(stmt)
        return int(result.scalar_one())

    async def set_positions(
        self,
        session: AsyncSession,
        note_ids: Sequence[str],
    ) -> None:
        """
        Assign ``position = index`` for each id in order.

        Unknown ids are ignored. All updates commit together.
        """
        now = utcnow()
        for index, note_id in enumerate(note_ids):
            await session.execute(
                update(NoteRecord)
                .where(NoteRecord.id == note_id)
                .values(position=index, updated_at=now)
            )
        await session.commit()


# Module-level instance
note_repository = NoteRepository()
