from __future__ import annotations
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi import status as http
from pydantic import BaseModel, Field

from storyrag.api.deps import get_style_service
from storyrag.models.sources import StyleSample
from storyrag.repositories.base import StoreError
from storyrag.services.style_service import StyleCapture, StyleService, StyleStats, build_style_prompt_section

router = APIRouter()


class CaptureRequest(BaseModel):
    project_id: Optional[str] = None
    chapter_id: Optional[str] = None
    original_ai: str
    user_final: str


class SimilarRequest(BaseModel):
    project_id: Optional[str] = None
    context: str = ""
    limit: int = Field(default=3, ge=1, le=20)


@router.post("/capture", response_model=StyleCapture)
def capture(body: CaptureRequest, svc: StyleService = Depends(get_style_service)):
    # below-threshold edits are not an error; saved=false says so
    return svc.capture(body.project_id, body.chapter_id, body.original_ai, body.user_final)


@router.get("", response_model=List[StyleSample])
def list_samples(project_id: Optional[str] = None, svc: StyleService = Depends(get_style_service)):
    return svc.list_samples(project_id)


@router.post("/similar")
def similar(body: SimilarRequest, svc: StyleService = Depends(get_style_service)) -> Dict[str, Any]:
    samples = svc.retrieve_similar(body.project_id, body.context, body.limit)
    return {
        "samples": [s.model_dump(mode="json") for s in samples],
        "prompt_section": build_style_prompt_section(samples),
    }


@router.get("/stats", response_model=StyleStats)
def stats(project_id: Optional[str] = None, svc: StyleService = Depends(get_style_service)):
    return svc.stats(project_id)


@router.delete("/{sample_id}", status_code=http.HTTP_204_NO_CONTENT)
def delete_sample(sample_id: str, svc: StyleService = Depends(get_style_service)):
    try:
        n = svc.delete_sample(sample_id)
    except StoreError as e:
        raise HTTPException(http.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    if n == 0:
        raise HTTPException(http.HTTP_404_NOT_FOUND, detail="Style sample not found")
    return None
