"""
Vector Math - Similarity primitives shared by retrieval and graph layers

WHAT: Cosine similarity, normalization and weighted averaging over dense vectors
WHERE: engram/runtime/memory/vector_math.py - leaf utility, no engine imports
WHO: Retriever, Consolidator, Distiller and MemoryGraph
TIME: O(d) per call

All helpers accept plain float sequences or numpy arrays. Degenerate input
(empty vectors, zero norms, mismatched dimensions) maps to neutral values
instead of raising, so callers can use them speculatively on a hot path.
"""

from __future__ import annotations

from typing import Optional, Sequence, Union

import numpy as np

Vector = Union[Sequence[float], np.ndarray]


def as_array(vec: Optional[Vector]) -> np.ndarray:
    """Return ``vec`` as a 1-D float64 array (empty for ``None``)."""
    if vec is None:
        return np.zeros(0, dtype=np.float64)
    return np.asarray(vec, dtype=np.float64).reshape(-1)


def cosine_similarity(a: Optional[Vector], b: Optional[Vector]) -> float:
    """Compute cosine similarity in [-1, 1].

    Returns 0.0 when either vector is empty or has zero norm, and when the
    dimensions differ (treated as unrelated).
    """
    v1 = as_array(a)
    v2 = as_array(b)
    if v1.size == 0 or v2.size == 0 or v1.shape != v2.shape:
        return 0.0
    norm = float(np.linalg.norm(v1) * np.linalg.norm(v2))
    if norm <= 0.0 or not np.isfinite(norm):
        return 0.0
    sim = float(np.dot(v1, v2) / norm)
    # clamp float drift
    return max(-1.0, min(1.0, sim))


def normalize(vec: Optional[Vector]) -> np.ndarray:
    """Scale to unit L2 norm; zero vectors are returned unchanged."""
    arr = as_array(vec)
    norm = float(np.linalg.norm(arr))
    if norm <= 0.0:
        return arr.copy()
    return arr / norm


def weighted_average(vectors: Sequence[Vector], weights: Sequence[float]) -> np.ndarray:
    """Weighted mean of equally-sized vectors, normalized by total weight."""
    if not vectors:
        return np.zeros(0, dtype=np.float64)
    matrix = np.vstack([as_array(v) for v in vectors])
    w = np.asarray(weights, dtype=np.float64)
    total = float(w.sum())
    if total <= 0.0:
        return np.zeros(matrix.shape[1], dtype=np.float64)
    return (w[:, None] * matrix).sum(axis=0) / total


__all__ = [
    "Vector",
    "as_array",
    "cosine_similarity",
    "normalize",
    "weighted_average",
]
