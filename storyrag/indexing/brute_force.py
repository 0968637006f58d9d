from __future__ import annotations
from typing import Sequence
import numpy as np

from storyrag.models.record import IndexedRecord
from .base import ScoringQuery


def _norm(v: np.ndarray) -> float:
    return float(np.linalg.norm(v))


def _dot(a: np.ndarray, b: np.ndarray) -> float:
    """Dot product of two vectors."""
    return float(a @ b)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity in [-1, 1].
    Different lengths, empty input or a zero vector give 0.0 ("no signal").
    """
    if a is None or b is None or len(a) != len(b) or len(a) == 0:
        return 0.0
    va = np.asarray(a, dtype=float)
    vb = np.asarray(b, dtype=float)
    denom = _norm(va) * _norm(vb)
    # tiny magnitudes can underflow the product to zero
    if denom == 0.0:
        return 0.0
    sim = _dot(va, vb) / denom
    if not np.isfinite(sim):
        return 0.0
    # rounding can push |sim| a hair above 1
    return float(min(1.0, max(-1.0, sim)))


def is_well_formed(vector: Sequence[float], dim: int) -> bool:
    """True when the vector can be compared against a query of length dim."""
    if len(vector) != dim:
        return False
    return bool(np.all(np.isfinite(np.asarray(vector, dtype=float))))


class CosineScorer:
    """Exact cosine similarity between the query vector and the record vector."""

    def score(self, query: ScoringQuery, record: IndexedRecord) -> float:
        if not query.vector or not record.vector:
            return 0.0
        return cosine_similarity(query.vector, record.vector)
