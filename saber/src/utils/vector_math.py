"""
Saber - Vector Math
====================
Similarity primitives shared by the text and image indexes.

``cosine_similarity`` is total: it returns ``0.0`` instead of raising
when a vector is missing or empty, when the two vectors differ in
length, or when either has zero magnitude.  Records whose embedding
failed to compute therefore score 0 rather than breaking a search.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

Vector = Sequence[float]


def dot(a: Vector, b: Vector) -> float:
    """Dot product of two equal-length vectors."""
    return float(np.dot(np.asarray(a, dtype=np.float64), np.asarray(b, dtype=np.float64)))


def norm(a: Vector) -> float:
    """Euclidean (L2) magnitude of *a*."""
    return float(np.linalg.norm(np.asarray(a, dtype=np.float64)))


def cosine_similarity(a: Vector | None, b: Vector | None) -> float:
    """Cosine of the angle between *a* and *b*, or ``0.0`` when undefined."""
    if a is None or b is None or len(a) == 0 or len(a) != len(b):
        return 0.0
    na, nb = norm(a), norm(b)
    if na == 0.0 or nb == 0.0:
        return 0.0
    return dot(a, b) / (na * nb)
