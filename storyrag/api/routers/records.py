from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Response
from fastapi import status as http
from starlette.concurrency import run_in_threadpool

from storyrag.api.deps import get_index_service, get_temporal_client
from storyrag.models.record import RecordKind
from storyrag.models.retrieval import IndexOutcome
from storyrag.models.sources import Chapter, Character, StyleSample, WikiEntry
from storyrag.repositories.base import StoreError
from storyrag.services.index_service import Entity, IndexService, kind_of
from storyrag.temporal_workflows.client import TemporalIndexClient
from storyrag.temporal_workflows.index_workflow import IndexRequest

router = APIRouter()
logger = logging.getLogger(__name__)


async def _submit(
    entity: Entity,
    sync: bool,
    durable: bool,
    background: BackgroundTasks,
    response: Response,
    svc: IndexService,
    temporal: TemporalIndexClient,
) -> Dict[str, Any] | IndexOutcome:
    """
    Three ways to index:
    - default: in-process background task, 202
    - sync=true: index now and return the outcome, 200
    - durable=true: start IndexWorkflow on Temporal, 202
    """
    if sync and durable:
        raise HTTPException(http.HTTP_400_BAD_REQUEST, detail="Choose either sync or durable")

    if sync:
        response.status_code = http.HTTP_200_OK
        # embedding and store calls block; keep them off the event loop
        return await run_in_threadpool(svc.index, entity)

    if durable:
        request = IndexRequest(kind=kind_of(entity).value, entity=entity.model_dump(mode="json"))
        try:
            workflow_id = await temporal.start_indexing(request)
        except Exception as e:
            logger.warning("Could not start indexing workflow for %s: %s", entity.id, e)
            raise HTTPException(http.HTTP_503_SERVICE_UNAVAILABLE, detail=f"Temporal unavailable: {e}")
        return {"accepted": True, "workflow_id": workflow_id, "durable_execution": True}

    background.add_task(svc.index, entity)
    return {"accepted": True, "durable_execution": False}


@router.post("/chapters", status_code=http.HTTP_202_ACCEPTED)
async def index_chapter(
    chapter: Chapter,
    background: BackgroundTasks,
    response: Response,
    sync: bool = Query(False, description="Index before responding and return the outcome"),
    durable: bool = Query(False, description="Use Temporal for durable execution"),
    svc: IndexService = Depends(get_index_service),
    temporal: TemporalIndexClient = Depends(get_temporal_client),
):
    return await _submit(chapter, sync, durable, background, response, svc, temporal)


@router.post("/characters", status_code=http.HTTP_202_ACCEPTED)
async def index_character(
    character: Character,
    background: BackgroundTasks,
    response: Response,
    sync: bool = Query(False),
    durable: bool = Query(False),
    svc: IndexService = Depends(get_index_service),
    temporal: TemporalIndexClient = Depends(get_temporal_client),
):
    return await _submit(character, sync, durable, background, response, svc, temporal)


@router.post("/wiki", status_code=http.HTTP_202_ACCEPTED)
async def index_wiki_entry(
    entry: WikiEntry,
    background: BackgroundTasks,
    response: Response,
    sync: bool = Query(False),
    durable: bool = Query(False),
    svc: IndexService = Depends(get_index_service),
    temporal: TemporalIndexClient = Depends(get_temporal_client),
):
    return await _submit(entry, sync, durable, background, response, svc, temporal)


@router.post("/style-samples", status_code=http.HTTP_202_ACCEPTED)
async def index_style_sample(
    sample: StyleSample,
    background: BackgroundTasks,
    response: Response,
    sync: bool = Query(False),
    durable: bool = Query(False),
    svc: IndexService = Depends(get_index_service),
    temporal: TemporalIndexClient = Depends(get_temporal_client),
):
    return await _submit(sample, sync, durable, background, response, svc, temporal)


@router.get("")
def list_records(
    kind: Optional[RecordKind] = None,
    related_id: Optional[str] = None,
    svc: IndexService = Depends(get_index_service),
) -> List[Dict[str, Any]]:
    try:
        records = svc.store.get_all()
    except StoreError as e:
        raise HTTPException(http.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    out = []
    for r in sorted(records, key=lambda r: r.id):
        if kind is not None and r.kind != kind:
            continue
        if related_id is not None and r.related_id != related_id:
            continue
        # vectors are large and useless to API clients
        item = r.model_dump(mode="json", exclude={"vector"})
        item["has_vector"] = r.vector is not None
        out.append(item)
    return out


@router.delete("/{related_id}", status_code=http.HTTP_204_NO_CONTENT)
def delete_records(related_id: str, svc: IndexService = Depends(get_index_service)):
    try:
        n = svc.delete_entity(related_id)
    except StoreError as e:
        raise HTTPException(http.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    if n == 0:
        raise HTTPException(http.HTTP_404_NOT_FOUND, detail="No records for this entity")
    return None


@router.delete("", status_code=http.HTTP_204_NO_CONTENT)
def clear_records(svc: IndexService = Depends(get_index_service)):
    try:
        svc.store.clear()
    except StoreError as e:
        raise HTTPException(http.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    return None
