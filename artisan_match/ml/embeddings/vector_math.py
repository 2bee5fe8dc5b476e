"""
Vector math primitives for embedding fusion and similarity.

Pure numpy functions with no state or I/O. Every binary operation requires
equal-length inputs and raises DimensionMismatchError otherwise.
"""

import hashlib
from typing import Iterable, Sequence, Union

import numpy as np

from artisan_match.core.exceptions import DimensionMismatchError
from artisan_match.utils.constants import VECTOR_HASH_PRECISION

VectorLike = Union[np.ndarray, Sequence[float]]


def as_vector(v: VectorLike) -> np.ndarray:
    """Coerce input to a 1-D float64 array (a fresh copy)."""
    return np.array(v, dtype=np.float64).reshape(-1)


def _check_dimensions(a: np.ndarray, b: np.ndarray, context: str = "") -> None:
    if a.shape[0] != b.shape[0]:
        raise DimensionMismatchError(a.shape[0], b.shape[0], context)


def magnitude(v: VectorLike) -> float:
    """Euclidean (L2) norm of a vector."""
    return float(np.linalg.norm(as_vector(v)))


def normalize(v: VectorLike) -> np.ndarray:
    """
    Scale a vector to unit length.

    A zero vector comes back as a zero vector copy; callers treat that as
    "no signal".
    """
    arr = as_vector(v)
    norm = np.linalg.norm(arr)
    if norm == 0:
        return arr
    return arr / norm


def cosine_similarity(a: VectorLike, b: VectorLike) -> float:
    """
    Cosine similarity between two vectors.

    Returns 0.0 when either vector has zero magnitude.
    """
    va, vb = as_vector(a), as_vector(b)
    _check_dimensions(va, vb, "cosine_similarity")

    norm_a = np.linalg.norm(va)
    norm_b = np.linalg.norm(vb)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    similarity = float(np.dot(va, vb) / (norm_a * norm_b))
    # Clamp floating-point drift
    return max(-1.0, min(1.0, similarity))


def euclidean_distance(a: VectorLike, b: VectorLike) -> float:
    va, vb = as_vector(a), as_vector(b)
    _check_dimensions(va, vb, "euclidean_distance")
    return float(np.linalg.norm(va - vb))


def add(a: VectorLike, b: VectorLike) -> np.ndarray:
    va, vb = as_vector(a), as_vector(b)
    _check_dimensions(va, vb, "add")
    return va + vb


def subtract(a: VectorLike, b: VectorLike) -> np.ndarray:
    va, vb = as_vector(a), as_vector(b)
    _check_dimensions(va, vb, "subtract")
    return va - vb


def scale(v: VectorLike, factor: float) -> np.ndarray:
    return as_vector(v) * factor


def weighted_average(weighted_vectors: Iterable[tuple[VectorLike, float]]) -> np.ndarray:
    """
    Weight-normalized average of (vector, weight) pairs.

    When the total weight is zero the zero-initialized accumulator is
    returned unnormalized; callers must guard against all-zero weights.

    Raises:
        ValueError: If the list is empty or a weight is negative
        DimensionMismatchError: If vector lengths differ
    """
    pairs = [(as_vector(v), float(w)) for v, w in weighted_vectors]
    if not pairs:
        raise ValueError("weighted_average requires at least one vector")

    dimension = pairs[0][0].shape[0]
    accumulator = np.zeros(dimension, dtype=np.float64)
    total_weight = 0.0

    for vector, weight in pairs:
        if weight < 0:
            raise ValueError(f"Weights must be non-negative, got {weight}")
        if vector.shape[0] != dimension:
            raise DimensionMismatchError(dimension, vector.shape[0], "weighted_average")
        accumulator += vector * weight
        total_weight += weight

    if total_weight == 0:
        return accumulator
    return accumulator / total_weight


def centroid(vectors: Iterable[VectorLike]) -> np.ndarray:
    """Unweighted mean of a list of vectors."""
    return weighted_average((v, 1.0) for v in vectors)


def is_valid_vector(v: VectorLike, dimension: int | None = None) -> bool:
    """
    True when the vector is 1-D, non-empty, fully finite and (optionally)
    of the expected dimension.
    """
    try:
        arr = np.asarray(v, dtype=np.float64)
    except (TypeError, ValueError):
        return False

    if arr.ndim != 1 or arr.size == 0:
        return False
    if dimension is not None and arr.shape[0] != dimension:
        return False
    return bool(np.all(np.isfinite(arr)))


def is_zero_vector(v: VectorLike) -> bool:
    return not np.any(as_vector(v))


def hash_vector(v: VectorLike, precision: int = VECTOR_HASH_PRECISION) -> str:
    """
    Stable hash of a vector rounded to a fixed decimal precision.

    Near-duplicate vectors that agree to `precision` decimals share a hash.
    """
    rounded = np.round(as_vector(v), precision)
    # Normalize negative zero so -0.0 and 0.0 hash alike
    rounded = rounded + 0.0
    return hashlib.sha256(rounded.tobytes()).hexdigest()
