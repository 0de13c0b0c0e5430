"""
Vector Similarity

Numeric routines over fixed-length float vectors, shared by the search
ranker and the k-means engine.

Vectors produced by the embedding providers are already L2-normalized,
so ``cosine_similarity`` reduces to a plain dot product for them; the
division by the magnitudes only matters for hand-built or foreign
vectors. Length mismatches raise ``InvalidDimensionError`` instead of
being truncated or padded.
"""

from __future__ import annotations

import numpy as np

from stickies.core.exceptions import InvalidDimensionError
from stickies.models import VectorLike


def as_vector(values: VectorLike) -> np.ndarray:
    """Convert to a 1-D float64 array. Raises on non 1-D input."""
    vector = np.asarray(values, dtype=np.float64)
    if vector.ndim != 1:
        raise InvalidDimensionError(1, vector.ndim)
    return vector


def _pair(a: VectorLike, b: VectorLike) -> tuple[np.ndarray, np.ndarray]:
    va, vb = as_vector(a), as_vector(b)
    if va.shape[0] != vb.shape[0]:
        raise InvalidDimensionError(va.shape[0], vb.shape[0])
    return va, vb


def cosine_similarity(a: VectorLike, b: VectorLike) -> float:
    """
    Cosine similarity of two equal-length vectors.

    Returns a value in [-1, 1] (``1`` for identical directions).
    A zero-magnitude input has no direction; the result is ``0.0``.

    Raises:
        InvalidDimensionError: If the lengths differ.
    """
    va, vb = _pair(a, b)
    denominator = float(np.linalg.norm(va)) * float(np.linalg.norm(vb))
    if denominator == 0.0:
        return 0.0
    return float(np.sum(va * vb)) / denominator


def euclidean_distance(a: VectorLike, b: VectorLike) -> float:
    """
    L2 distance between two equal-length vectors.

    Raises:
        InvalidDimensionError: If the lengths differ.
    """
    va, vb = _pair(a, b)
    return float(np.sqrt(np.sum((va - vb) ** 2)))


def pairwise_euclidean(points: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """
    Distance from every point to every centroid.

    Args:
        points: ``(n, d)`` array.
        centroids: ``(k, d)`` array.

    Returns:
        ``(n, k)`` array where ``[i, c]`` is the distance of point i to centroid c.
    """
    if points.shape[1] != centroids.shape[1]:
        raise InvalidDimensionError(points.shape[1], centroids.shape[1])
    diff = points[:, np.newaxis, :] - centroids[np.newaxis, :, :]
    return np.sqrt(np.sum(diff**2, axis=2))
