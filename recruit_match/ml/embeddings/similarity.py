"""
Similarity ranking primitives.

Pure, synchronous functions: cosine similarity between vectors and top-k
selection over scored items with a deterministic tie-break.
"""

import heapq
from dataclasses import dataclass
from typing import Any, Generic, Iterable, Sequence, TypeVar

import numpy as np

from recruit_match.utils.constants import COSINE_EPSILON

T = TypeVar("T")


@dataclass(frozen=True)
class Scored(Generic[T]):
    """An item with its similarity score and tie-break key."""

    item: T
    score: float
    tie_key: Any


def cosine(a: np.ndarray | Sequence[float], b: np.ndarray | Sequence[float]) -> float:
    """
    Cosine similarity between two vectors.

    ``dot(a, b) / (|a| * |b| + eps)``, so an all-zero vector scores 0.0.

    Raises:
        ValueError: If the vectors have different lengths.
    """
    a = np.asarray(a, dtype=np.float64).reshape(-1)
    b = np.asarray(b, dtype=np.float64).reshape(-1)
    if a.shape != b.shape:
        raise ValueError(f"Vector length mismatch: {a.shape[0]} != {b.shape[0]}")

    denominator = np.linalg.norm(a) * np.linalg.norm(b) + COSINE_EPSILON
    return float(np.dot(a, b) / denominator)


def cosine_matrix(left: np.ndarray, right: np.ndarray) -> np.ndarray:
    """
    Pairwise cosine similarity between two stacks of vectors.

    Args:
        left: Array of shape (n, d).
        right: Array of shape (m, d).

    Returns:
        Array of shape (n, m) where cell (i, j) equals ``cosine(left[i], right[j])``.
    """
    left = np.atleast_2d(np.asarray(left, dtype=np.float64))
    right = np.atleast_2d(np.asarray(right, dtype=np.float64))
    if left.shape[1] != right.shape[1]:
        raise ValueError(f"Vector length mismatch: {left.shape[1]} != {right.shape[1]}")

    dots = left @ right.T
    norms = np.outer(np.linalg.norm(left, axis=1), np.linalg.norm(right, axis=1))
    return dots / (norms + COSINE_EPSILON)


def top_k(scored: Iterable[Scored[T]], k: int) -> list[T]:
    """
    Select the ``k`` highest-scoring items.

    Ordered by score descending, ties broken by ``tie_key`` ascending.

    Returns:
        At most ``k`` items.
    """
    if k <= 0:
        return []
    best = heapq.nsmallest(k, scored, key=lambda s: (-s.score, s.tie_key))
    return [s.item for s in best]
