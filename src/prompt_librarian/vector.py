"""
Vector math - pure functions over embedding vectors.

No I/O, no state. Everything here is safe to call from any coroutine and
trivially unit-testable.

INTERVIEW TALKING POINT:
------------------------
"Ranking happens in Python rather than in SQL. The candidate set is already
scoped to one owner, so pulling it and scoring with numpy keeps the store
contract simple and lets us unit test ranking without a database."
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Iterable, Protocol, Sequence

import numpy as np

from prompt_librarian.errors import InvalidVectorError

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.7

Vector = Sequence[float] | np.ndarray


class Embedded(Protocol):
    """Anything with an id and an (optional) embedding."""

    id: str
    embedding: Vector | None


@dataclass(frozen=True)
class RankedMatch:
    """A candidate id with its similarity to the query vector."""

    id: str
    similarity: float


# ---------------------------------------------------------------------------
# SIMILARITY
# ---------------------------------------------------------------------------


def cosine_similarity(a: Vector, b: Vector) -> float:
    """
    Cosine similarity between two equal-length vectors.

    Returns 0.0 (not an error) when either vector has zero magnitude.

    Raises:
        InvalidVectorError: if either vector is empty, non-numeric or
            non-finite, or the lengths differ
    """
    if a is None or b is None:
        raise InvalidVectorError("Invalid vectors: must be non-empty arrays of equal length")

    try:
        va = np.asarray(a, dtype=np.float64)
        vb = np.asarray(b, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise InvalidVectorError(f"Invalid vectors: non-numeric values ({e})") from e

    if va.ndim != 1 or vb.ndim != 1 or va.size == 0 or va.shape != vb.shape:
        raise InvalidVectorError(
            f"Invalid vectors: must be non-empty arrays of equal length "
            f"(got {va.size} and {vb.size})"
        )

    # NaN here comes from None elements as well as stored NaN/inf
    if not (np.all(np.isfinite(va)) and np.all(np.isfinite(vb))):
        raise InvalidVectorError("Invalid vectors: contain NaN or infinite values")

    norm_a = float(np.linalg.norm(va))
    norm_b = float(np.linalg.norm(vb))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0

    similarity = float(np.dot(va, vb) / (norm_a * norm_b))
    if not math.isfinite(similarity):
        raise InvalidVectorError("Invalid vectors: similarity is not finite")
    # Rounding can push |similarity| a hair past 1
    return max(-1.0, min(1.0, similarity))


def rank_by_similarity(
    query: Vector,
    candidates: Iterable[Embedded],
    threshold: float = DEFAULT_THRESHOLD,
) -> list[RankedMatch]:
    """
    Score candidates against a query vector and keep those >= threshold.

    Candidates without an embedding are skipped. A candidate whose
    similarity can't be computed (e.g. dimension drift) is logged and
    skipped; one bad vector never aborts the batch.

    Returns:
        Matches sorted by similarity descending, stable on ties.
    """
    matches: list[RankedMatch] = []

    for candidate in candidates:
        if candidate.embedding is None:
            continue

        try:
            similarity = cosine_similarity(query, candidate.embedding)
        except (InvalidVectorError, ValueError, TypeError) as e:
            logger.warning(f"Failed to calculate similarity for document {candidate.id}: {e}")
            continue

        if similarity >= threshold:
            matches.append(RankedMatch(id=candidate.id, similarity=similarity))

    # list.sort is stable, including with reverse=True
    matches.sort(key=lambda m: m.similarity, reverse=True)
    return matches


# ---------------------------------------------------------------------------
# VALIDATION / NORMALIZATION
# ---------------------------------------------------------------------------


def validate_embedding(value: Any) -> bool:
    """True iff value is a non-empty 1-D sequence of finite numbers."""
    if isinstance(value, np.ndarray):
        if value.ndim != 1 or value.size == 0:
            return False
        if not np.issubdtype(value.dtype, np.number) or np.issubdtype(value.dtype, np.bool_):
            return False
        return bool(np.all(np.isfinite(value)))

    if not isinstance(value, (list, tuple)) or len(value) == 0:
        return False

    for item in value:
        if isinstance(item, bool) or not isinstance(item, (int, float, np.number)):
            return False
        if not math.isfinite(float(item)):
            return False
    return True


def normalize_vector(vector: Vector) -> list[float] | Vector:
    """
    Scale a vector to unit length.

    A zero-magnitude vector is returned unchanged.
    """
    v = np.asarray(vector, dtype=np.float64)
    magnitude = float(np.linalg.norm(v))
    if magnitude == 0.0:
        return vector
    return (v / magnitude).tolist()
