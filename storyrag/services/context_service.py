from __future__ import annotations
import logging
from typing import List, Optional, Tuple

from storyrag.adapters.embedding_providers.base import EmbeddingProvider
from storyrag.indexing.budget import dynamic_top_k
from storyrag.indexing.hybrid import HybridRanker, RankedBatch
from storyrag.indexing.lexical import extract_keywords
from storyrag.models.record import IndexedRecord
from storyrag.models.retrieval import (
    ContextOptions,
    ContextResult,
    DegradedReason,
    HybridWeights,
)
from storyrag.repositories.base import RecordStore, StoreError
from storyrag.services.context_assembler import ContextAssembler
from storyrag.services.query_embedder import QueryEmbedder

logger = logging.getLogger(__name__)


class ContextService:
    """
    Builds the retrieval context handed to the language model.

    Never raises for provider or store trouble: every failure becomes a
    DegradedReason on the result, and the caller still gets whatever context
    could be assembled (possibly empty).
    """

    def __init__(
        self,
        store: RecordStore,
        embedder: Optional[EmbeddingProvider] = None,
        *,
        weights: HybridWeights | None = None,
        avg_chunk_tokens: int = 500,
        min_k: int = 1,
        max_k: int = 10,
        query_timeout: float = 3.0,
        assembler: ContextAssembler | None = None,
    ) -> None:
        self.store = store
        self.embedder = embedder
        self.ranker = HybridRanker(weights)
        self.avg_chunk_tokens = avg_chunk_tokens
        self.min_k = min_k
        self.max_k = max_k
        self.query_timeout = query_timeout
        self.assembler = assembler or ContextAssembler()
        self.query_embedder = QueryEmbedder(embedder, query_timeout)

    def close(self) -> None:
        self.query_embedder.close()

    def _filter(self, records: List[IndexedRecord], options: ContextOptions) -> List[IndexedRecord]:
        excluded = set(options.exclude_related_ids)
        kinds = set(options.kinds) if options.kinds else None
        out = []
        for r in records:
            if r.related_id in excluded:
                continue
            if kinds is not None and r.kind not in kinds:
                continue
            if options.project_id is not None and r.metadata.project_id != options.project_id:
                continue
            out.append(r)
        return out

    def retrieve(self, query: str, token_budget: int, options: ContextOptions | None = None) -> Tuple[RankedBatch, ContextResult]:
        """Ranking half of build_context; the result has no text yet."""
        options = options or ContextOptions()
        result = ContextResult()

        min_k = self.min_k if options.min_k is None else options.min_k
        max_k = max(min_k, self.max_k if options.max_k is None else options.max_k)
        k = dynamic_top_k(token_budget, options.avg_chunk_tokens or self.avg_chunk_tokens, min_k, max_k)
        result.k = k

        keywords = extract_keywords(query)
        query_vector = None
        if options.use_embeddings:
            query_vector, reason = self.query_embedder.embed(query)
            if reason is not None:
                result.degraded_reasons.append(reason)
        else:
            result.degraded_reasons.append(DegradedReason.EMBEDDING_DISABLED)

        try:
            records = self.store.get_all()
        except StoreError as e:
            logger.warning("Record store unavailable; returning empty context: %s", e)
            result.degraded_reasons.append(DegradedReason.STORE_UNAVAILABLE)
            return RankedBatch(), result

        records = self._filter(records, options)
        batch = self.ranker.rank(query_vector, keywords, records, options.max_order, options.weights, k)
        if batch.skipped_ids:
            result.skipped_records = len(batch.skipped_ids)
            result.degraded_reasons.append(DegradedReason.MALFORMED_RECORDS)
        result.candidates = batch.candidates
        result.query_vector = query_vector
        return batch, result

    def build_context(self, query: str, token_budget: int, options: ContextOptions | None = None) -> ContextResult:
        _, result = self.retrieve(query, token_budget, options)
        result.text = self.assembler.assemble(result.candidates, token_budget)
        logger.info(
            "Built context: k=%d candidates=%d chars=%d degraded=%s",
            result.k, len(result.candidates), len(result.text),
            ",".join(r.value for r in result.degraded_reasons) or "no",
        )
        return result
