from __future__ import annotations
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from storyrag.api.deps import get_context_service, get_settings, get_style_service
from storyrag.core.config import Settings
from storyrag.models.retrieval import ContextOptions
from storyrag.services.context_service import ContextService
from storyrag.services.style_service import StyleService, build_style_prompt_section

router = APIRouter()


class ContextRequest(BaseModel):
    query: str
    token_budget: Optional[int] = Field(default=None, ge=0)
    options: ContextOptions = Field(default_factory=ContextOptions)
    style_samples: int = Field(default=0, ge=0, le=10, description="How many style samples to attach")


@router.post("/context")
def build_context(
    body: ContextRequest,
    svc: ContextService = Depends(get_context_service),
    style: StyleService = Depends(get_style_service),
    cfg: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    """
    Context block for a generation request.
    Always 200: provider and store trouble shows up in degraded_reasons.
    """
    budget = cfg.DEFAULT_TOKEN_BUDGET if body.token_budget is None else body.token_budget
    result = svc.build_context(body.query, budget, body.options)

    out = result.model_dump(mode="json", exclude={"candidates": {"__all__": {"record": {"vector"}}}})
    out["style_section"] = ""
    if body.style_samples:
        # the query was embedded once above; a failed or slow embedding is not retried here
        samples = style.retrieve_similar(
            body.options.project_id, body.query, body.style_samples,
            query_vector=result.query_vector, embed=False,
        )
        out["style_section"] = build_style_prompt_section(samples)
    return out
