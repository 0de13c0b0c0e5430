"""
Clustering Service

Groups the vectorized notes into topical clusters with k-means and
replaces the stored cluster set.

Each run is a full batch: it reads a snapshot of notes and vectors,
clusters them, and swaps the cluster table atomically. Notes without a
vector are left out; notes created during a run show up in the next one.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from typing import Protocol

import numpy as np

from stickies.core.config import settings
from stickies.models import Cluster, Note, NoteVector
from stickies.models.base import utcnow
from stickies.repositories.store import NoteStore
from stickies.services.kmeans import kmeans

logger = logging.getLogger(__name__)


class ClusterNamer(Protocol):
    """Names a cluster from its members. Returns (name, description)."""

    async def name(self, index: int, notes: Sequence[Note]) -> tuple[str, str | None]: ...


class PlaceholderNamer:
    """Names clusters "Cluster 1", "Cluster 2", ... in output order."""

    async def name(self, index: int, notes: Sequence[Note]) -> tuple[str, str | None]:
        return f"Cluster {index}", None


class ClusteringService:
    """
    Runs k-means over stored note vectors and persists the result.

    Args:
        store: Note/vector/cluster store.
        namer: Cluster naming strategy (placeholder names by default).
        max_iterations: k-means iteration cap.

    Usage::

        service = ClusteringService(store)
        clusters = await service.cluster_notes(k=5)
    """

    def __init__(
        self,
        store: NoteStore,
        *,
        namer: ClusterNamer | None = None,
        max_iterations: int = settings.KMEANS_MAX_ITERATIONS,
    ) -> None:
        self._store = store
        self._namer = namer or PlaceholderNamer()
        self._max_iterations = max_iterations

    async def cluster_notes(
        self,
        k: int = settings.DEFAULT_CLUSTER_COUNT,
        rng: np.random.Generator | None = None,
    ) -> list[Cluster]:
        """
        Recompute clusters from scratch.

        ``k`` is clamped to the number of vectorized notes; with fewer
        notes than ``k`` every note becomes its own cluster. An empty or
        fully un-vectorized corpus yields (and stores) no clusters.

        Raises:
            ValueError: If ``k`` is below 1.
        """
        if k < 1:
            raise ValueError(f"k must be >= 1, got {k}")

        notes = await self._store.list_notes()
        vectors = await self._store.list_vectors()
        items = [NoteVector(note, vectors[note.id]) for note in notes if note.id in vectors]

        skipped = len(notes) - len(items)
        if skipped:
            logger.info("Clustering skips %d notes without embeddings", skipped)

        groups: list[list[str]] = []
        if items:
            groups = kmeans(
                items,
                min(k, len(items)),
                max_iterations=self._max_iterations,
                rng=rng,
            )

        notes_by_id = {note.id: note for note in notes}
        now = utcnow()
        clusters: list[Cluster] = []
        for index, note_ids in enumerate(groups, start=1):
            name, description = await self._namer.name(
                index, [notes_by_id[note_id] for note_id in note_ids]
            )
            clusters.append(
                Cluster(
                    id=str(uuid.uuid4()),
                    name=name,
                    description=description,
                    note_ids=note_ids,
                    created_at=now,
                    updated_at=now,
                )
            )

        await self._store.replace_clusters(clusters)
        logger.info(
            "Clustered %d notes into %d clusters (requested k=%d)",
            len(items),
            len(clusters),
            k,
        )
        return clusters

    async def list_clusters(self) -> list[Cluster]:
        """Clusters from the latest run."""
        return await self._store.list_clusters()
