"""
Hybrid ranking of indexed records.

composite = (w.vector * cosine + w.keyword * keyword_match) * recency

Without a query vector the vector weight is forced to zero, so the ranking
degrades to keywords (times recency) instead of failing.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from storyrag.models.record import IndexedRecord
from storyrag.models.retrieval import HybridWeights, RetrievalCandidate
from .brute_force import cosine_similarity, is_well_formed
from .lexical import keyword_match_score
from .recency import time_decay

logger = logging.getLogger(__name__)


@dataclass
class RankedBatch:
    candidates: List[RetrievalCandidate] = field(default_factory=list)
    skipped_ids: List[str] = field(default_factory=list)
    vector_used: bool = False


def _sort_key(c: RetrievalCandidate):
    order = c.record.order if c.record.order is not None else -1
    # score desc, then the more recent document, then id for a stable order
    return (-c.composite_score, -order, c.record.id)


class HybridRanker:
    def __init__(self, weights: HybridWeights | None = None) -> None:
        self.weights = weights or HybridWeights()

    def score(
        self,
        record: IndexedRecord,
        query_vector: Optional[Sequence[float]],
        query_keywords: Sequence[str],
        max_order: int,
        weights: HybridWeights,
    ) -> RetrievalCandidate:
        vec_sim = 0.0
        if query_vector and record.vector:
            vec_sim = cosine_similarity(query_vector, record.vector)
        kw = keyword_match_score(query_keywords, record.text)
        recency = 1.0 if record.order is None else time_decay(record.order, max_order)
        composite = (weights.vector * vec_sim + weights.keyword * kw) * recency
        return RetrievalCandidate(
            record=record,
            vector_similarity=vec_sim,
            keyword_score=kw,
            recency_weight=recency,
            composite_score=composite,
        )

    def rank(
        self,
        query_vector: Optional[Sequence[float]],
        query_keywords: Sequence[str],
        records: Iterable[IndexedRecord],
        max_order: Optional[int] = None,
        weights: HybridWeights | None = None,
        k: int = 5,
    ) -> RankedBatch:
        weights = weights or self.weights
        vector_used = bool(query_vector)
        if not vector_used and weights.vector:
            weights = HybridWeights(vector=0.0, keyword=weights.keyword)

        usable: List[IndexedRecord] = []
        skipped: List[str] = []
        dim = len(query_vector) if query_vector else 0
        for r in records:
            if not r.text or not r.text.strip():
                skipped.append(r.id)
                continue
            if vector_used and r.vector is not None and not is_well_formed(r.vector, dim):
                skipped.append(r.id)
                continue
            usable.append(r)

        if skipped:
            logger.warning("Skipped %d malformed records during ranking", len(skipped))

        if k <= 0 or not usable:
            return RankedBatch(candidates=[], skipped_ids=skipped, vector_used=vector_used)

        if max_order is None:
            orders = [r.order for r in usable if r.order is not None]
            max_order = max(orders) if orders else 0

        scored = [self.score(r, query_vector, query_keywords, max_order, weights) for r in usable]
        scored.sort(key=_sort_key)
        return RankedBatch(candidates=scored[:k], skipped_ids=skipped, vector_used=vector_used)


def rank(
    query_vector: Optional[Sequence[float]],
    query_keywords: Sequence[str],
    candidates: Iterable[IndexedRecord],
    max_order: Optional[int],
    weights: HybridWeights,
    k: int,
) -> List[RetrievalCandidate]:
    """Top-k candidates by composite score; see HybridRanker for the report form."""
    return HybridRanker(weights).rank(query_vector, query_keywords, candidates, max_order, weights, k).candidates
