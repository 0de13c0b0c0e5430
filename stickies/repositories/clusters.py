"""
Cluster Repository

Data access for the ``clusters`` table. Clusters are never edited in
place: every clustering run swaps the whole table in one transaction.
"""

from collections.abc import Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from stickies.models import ClusterRecord
from stickies.repositories.base import BaseRepository


class ClusterRepository(BaseRepository[ClusterRecord]):
    """Repository for clusters with atomic full replacement."""

    def __init__(self) -> None:
        super().__init__(ClusterRecord)

    async def list_ordered(self, session: AsyncSession) -> Sequence[ClusterRecord]:
        """Clusters of the latest run in output order."""
        result = await session.execute(
            select(ClusterRecord).order_by(ClusterRecord.position.asc())
        )
        return result.scalars().all()

    async def replace_all(
        self,
        session: AsyncSession,
        records: Sequence[ClusterRecord],
    ) -> None:
        """
        Delete every cluster and insert ``records`` in one transaction.

        Readers see either the previous set or the new one, never a mix.
        """
        await session.execute(delete(ClusterRecord))
        session.add_all(records)
        await session.commit()


# Module-level instance
cluster_repository = ClusterRepository()
