from __future__ import annotations
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException
from fastapi import status as http
from pydantic import BaseModel, Field

from storyrag.api.deps import get_context_service
from storyrag.models.retrieval import ContextOptions
from storyrag.services.context_service import ContextService

router = APIRouter()


class SearchRequest(BaseModel):
    query: str
    k: int = Field(default=5, ge=1, le=100)
    options: ContextOptions = Field(default_factory=ContextOptions)


@router.post("/search")
def search(body: SearchRequest, svc: ContextService = Depends(get_context_service)) -> Dict[str, Any]:
    """
    Hybrid search without context assembly.
    Returns the top k records with every score that went into the ranking.
    """
    if not body.query.strip():
        raise HTTPException(http.HTTP_400_BAD_REQUEST, detail="query must not be empty")

    # pin k: dynamic top-k clamps into [k, k]
    options = body.options.model_copy(update={"min_k": body.k, "max_k": body.k})
    _, result = svc.retrieve(body.query, body.k * svc.avg_chunk_tokens, options)

    hits: List[Dict[str, Any]] = []
    for c in result.candidates:
        r = c.record
        hits.append({
            "id": r.id,
            "related_id": r.related_id,
            "kind": r.kind.value,
            "text": r.text,
            "order": r.order,
            "metadata": r.metadata.model_dump(mode="json"),
            "vector_similarity": c.vector_similarity,
            "keyword_score": c.keyword_score,
            "recency_weight": c.recency_weight,
            "composite_score": c.composite_score,
        })
    return {
        "k": result.k,
        "hits": hits,
        "degraded": result.degraded,
        "degraded_reasons": [r.value for r in result.degraded_reasons],
        "skipped_records": result.skipped_records,
    }
