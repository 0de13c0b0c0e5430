"""
K-Means Clustering

Lloyd's algorithm over note embeddings.

Initialization picks k distinct items uniformly at random (shuffle, take
the first k), so cluster identity is not reproducible between runs unless
a seeded ``numpy.random.Generator`` is passed in. The partition converges
to a local optimum of within-cluster squared Euclidean distance.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np

from stickies.core.exceptions import InvalidDimensionError
from stickies.models import NoteVector
from stickies.services.similarity import as_vector, pairwise_euclidean

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS: int = 100


def kmeans(
    items: Sequence[NoteVector],
    k: int,
    *,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    rng: np.random.Generator | None = None,
) -> list[list[str]]:
    """
    Partition notes into at most ``k`` groups of note ids.

    Degenerate inputs:
        - no items: ``[]``
        - ``len(items) <= k``: one singleton group per item, in input order

    Otherwise each iteration assigns every item to its nearest centroid
    (ties go to the lowest centroid index), stops once the assignment is
    unchanged, and moves each centroid to the mean of its members. A
    centroid with no members keeps its previous position.

    Groups are returned in centroid index order with empty groups dropped,
    so fewer than ``k`` groups may come back. Member order follows input
    order.

    Args:
        items: Notes with their vectors; all vectors must share a length.
        k: Requested number of clusters (>= 1).
        max_iterations: Iteration cap when the assignment keeps changing.
        rng: Random source for centroid seeding.

    Raises:
        ValueError: If ``k`` or ``max_iterations`` is below 1.
        InvalidDimensionError: If vector lengths differ.
    """
    if k < 1:
        raise ValueError(f"k must be >= 1, got {k}")
    if max_iterations < 1:
        raise ValueError(f"max_iterations must be >= 1, got {max_iterations}")
    if not items:
        return []
    if len(items) <= k:
        return [[item.note.id] for item in items]

    note_ids = [item.note.id for item in items]
    points = _stack([item.vector for item in items])

    rng = rng if rng is not None else np.random.default_rng()
    seeds = rng.permutation(len(points))[:k]
    centroids = points[seeds].copy()

    # -1 never matches a real centroid index, so the first pass always assigns
    assignments = np.full(len(points), -1, dtype=np.intp)
    iterations = 0
    for iterations in range(1, max_iterations + 1):
        # argmin returns the first (lowest) index on ties
        new_assignments = pairwise_euclidean(points, centroids).argmin(axis=1)

        if np.array_equal(new_assignments, assignments):
            break
        assignments = new_assignments

        for c in range(k):
            members = points[assignments == c]
            if len(members) > 0:
                centroids[c] = members.mean(axis=0)

    logger.debug(
        "k-means finished: n=%d, k=%d, iterations=%d",
        len(points),
        k,
        iterations,
    )

    groups: list[list[str]] = [[] for _ in range(k)]
    for note_id, cluster_index in zip(note_ids, assignments, strict=True):
        groups[int(cluster_index)].append(note_id)
    return [group for group in groups if group]


def _stack(vectors: Sequence[object]) -> np.ndarray:
    """Stack vectors into an ``(n, d)`` float64 matrix, checking lengths."""
    rows = [as_vector(v) for v in vectors]  # type: ignore[arg-type]
    dimension = rows[0].shape[0]
    for row in rows:
        if row.shape[0] != dimension:
            raise InvalidDimensionError(dimension, row.shape[0])
    return np.vstack(rows)
