from __future__ import annotations
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, computed_field

from .record import IndexedRecord, RecordKind


class HybridWeights(BaseModel):
    """Weights of the semantic and lexical signals in the composite score."""
    vector: float = Field(default=0.7, ge=0.0)
    keyword: float = Field(default=0.3, ge=0.0)

    model_config = {"frozen": True}


class RetrievalCandidate(BaseModel):
    """Per-query scoring of one record. Discarded once the context is built."""
    record: IndexedRecord
    vector_similarity: float = 0.0
    keyword_score: float = 0.0
    recency_weight: float = 1.0
    composite_score: float = 0.0


class ContextOptions(BaseModel):
    """
    Knobs for one build_context call.
    Unset limits fall back to the service settings.
    """
    project_id: Optional[str] = None
    kinds: Optional[List[RecordKind]] = None
    exclude_related_ids: List[str] = Field(default_factory=list)
    weights: Optional[HybridWeights] = None
    max_order: Optional[int] = Field(default=None, ge=0)
    avg_chunk_tokens: Optional[int] = Field(default=None, gt=0)
    min_k: Optional[int] = Field(default=None, ge=0)
    max_k: Optional[int] = Field(default=None, ge=1)
    use_embeddings: bool = True


class DegradedReason(str, Enum):
    EMBEDDING_DISABLED = "embedding_disabled"
    EMBEDDING_FAILED = "embedding_failed"
    EMBEDDING_TIMEOUT = "embedding_timeout"
    STORE_UNAVAILABLE = "store_unavailable"
    MALFORMED_RECORDS = "malformed_records"


class ContextResult(BaseModel):
    text: str = ""
    candidates: List[RetrievalCandidate] = Field(default_factory=list)
    k: int = 0
    skipped_records: int = 0
    degraded_reasons: List[DegradedReason] = Field(default_factory=list)
    # reused by callers that rank more things against the same query
    query_vector: Optional[List[float]] = Field(default=None, exclude=True)

    @computed_field
    @property
    def degraded(self) -> bool:
        return bool(self.degraded_reasons)


class IndexStatus(str, Enum):
    INDEXED = "indexed"
    KEYWORD_ONLY = "keyword_only"  # stored without vectors
    SKIPPED = "skipped"
    FAILED = "failed"


class IndexOutcome(BaseModel):
    related_id: str
    kind: RecordKind
    status: IndexStatus
    records_written: int = 0
    error: Optional[str] = None
