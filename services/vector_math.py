"""Vector primitives used by the embedding search.

Pure numpy/scikit-learn helpers: L2 normalization and cosine similarity,
both of which treat the zero vector as "similar to nothing" instead of
dividing by zero.
"""

from typing import Sequence, Union

import numpy as np
from sklearn.metrics.pairwise import cosine_similarity as _pairwise_cosine

VectorLike = Union[Sequence[float], np.ndarray]


def as_vector(vector: VectorLike) -> np.ndarray:
    """Return `vector` as a 1-D float32 array."""
    arr = np.asarray(vector, dtype=np.float32)
    if arr.ndim != 1:
        raise ValueError(f"expected a 1-D vector, got shape {arr.shape}")
    return arr


def normalize(vector: VectorLike) -> np.ndarray:
    """Scale a vector to unit L2 norm; a zero vector is returned unchanged."""
    arr = as_vector(vector)
    norm = float(np.linalg.norm(arr))
    if norm == 0.0:
        return arr
    return arr / norm


def cosine_similarity(a: VectorLike, b: VectorLike) -> float:
    """Cosine similarity of two equal-length vectors.

    Returns 0.0 when either vector has zero norm.

    Raises:
        ValueError: If the vectors differ in length.
    """
    va = as_vector(a)
    vb = as_vector(b)
    if va.shape[0] != vb.shape[0]:
        raise ValueError(f"vector length mismatch: {va.shape[0]} != {vb.shape[0]}")
    denom = float(np.linalg.norm(va)) * float(np.linalg.norm(vb))
    if denom == 0.0:
        return 0.0
    score = float(np.dot(va, vb)) / denom
    # float rounding can push |score| slightly past 1
    return max(-1.0, min(1.0, score))


def similarity_scores(query: VectorLike, matrix: np.ndarray) -> np.ndarray:
    """Cosine similarity of `query` against every row of `matrix`.

    scikit-learn normalizes rows before the dot product and leaves zero rows
    at zero, so zero vectors score 0.0 on either side.

    Raises:
        ValueError: If the query length differs from the matrix width.
    """
    q = as_vector(query)
    if matrix.shape[0] == 0:
        return np.zeros(0, dtype=np.float32)
    if matrix.ndim != 2 or matrix.shape[1] != q.shape[0]:
        raise ValueError(f"query length {q.shape[0]} does not match catalog dimension {matrix.shape[-1]}")
    scores = _pairwise_cosine(q.reshape(1, -1), matrix)[0]
    return np.clip(scores, -1.0, 1.0)
